"""YAMLで定義されたカスタムルールセットの読み込み。"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asynclint.formats import FORMATS, Format
from asynclint.functions.core import falsy, pattern, truthy
from asynclint.functions.messages import check_id
from asynclint.functions.references import channel_servers, security, unused_security_schemes
from asynclint.functions.uniqueness import message_id_uniqueness, operation_id_uniqueness, unique_tag_names
from asynclint.functions.variables import channel_parameters, server_variables
from asynclint.models.diagnostic import Severity
from asynclint.models.errors import ConfigurationError, UnknownFunctionError
from asynclint.models.rule import Rule, RuleAction, RuleFunction, Ruleset

logger = logging.getLogger(__name__)

# YAMLから名前で参照できるバリデータ関数（外部コラボレータを必要としないもの）
FUNCTIONS: dict[str, RuleFunction] = {
    "truthy": truthy,
    "falsy": falsy,
    "pattern": pattern,
    "checkId": check_id,
    "security": security,
    "serverVariables": server_variables,
    "channelParameters": channel_parameters,
    "channelServers": channel_servers,
    "operationIdUniqueness": operation_id_uniqueness,
    "messageIdUniqueness": message_id_uniqueness,
    "uniquenessTags": unique_tag_names,
    "unusedSecuritySchemes": unused_security_schemes,
}


class _ThenDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    function: str
    field: str | None = None
    function_options: dict[str, Any] = Field(default_factory=dict, alias="functionOptions")


class _RuleDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str
    message: str | None = None
    severity: Severity = "warn"
    recommended: bool = True
    formats: list[str] | None = None
    resolved: bool = True
    given: str | list[str]
    then: _ThenDefinition


class _RulesetDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    formats: list[str] = Field(default_factory=list)
    rules: dict[str, _RuleDefinition] = Field(default_factory=dict)


def _formats(names: list[str], where: str) -> tuple[Format, ...]:
    unknown = [name for name in names if name not in FORMATS]
    if unknown:
        raise ConfigurationError(f"Unknown format(s) in {where}: {', '.join(unknown)}")
    return tuple(FORMATS[name] for name in names)


def parse_ruleset(data: Any, source: str = "<ruleset>") -> Ruleset:
    """辞書形式のルールセット定義からRulesetを構築する。

    Raises:
        ConfigurationError: 定義が不正な場合（未知の関数・フォーマット、重複ID、不正なセレクタを含む）。
    """
    try:
        definition = _RulesetDefinition.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid ruleset definition in {source}: {e}") from e

    rules: list[Rule] = []
    for rule_id, rule_def in definition.rules.items():
        function = FUNCTIONS.get(rule_def.then.function)
        if function is None:
            raise UnknownFunctionError(rule_def.then.function, rule_id)
        rules.append(
            Rule(
                id=rule_id,
                description=rule_def.description,
                message=rule_def.message,
                severity=rule_def.severity,
                recommended=rule_def.recommended,
                formats=None if rule_def.formats is None else _formats(rule_def.formats, f"{source}#{rule_id}"),
                resolved=rule_def.resolved,
                given=rule_def.given,
                then=RuleAction(
                    function=function,
                    field=rule_def.then.field,
                    options=rule_def.then.function_options,
                ),
            )
        )

    return Ruleset(
        name=definition.name,
        description=definition.description,
        formats=_formats(definition.formats, source),
        rules=tuple(rules),
    )


def load_ruleset_file(path: Path) -> Ruleset:
    """YAMLファイルからルールセットを読み込む。"""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    ruleset = parse_ruleset(data, source=str(path))
    logger.info("Loaded ruleset %s (%d rules) from %s", ruleset.name, len(ruleset.rules), path)
    return ruleset


def load_ruleset_dir(rulesets_dir: Path) -> list[Ruleset]:
    """ディレクトリ内の*.yamlをファイル名順に読み込む。ディレクトリが無ければ空リスト。"""
    if not rulesets_dir.exists():
        return []
    return [load_ruleset_file(path) for path in sorted(rulesets_dir.glob("*.yaml"))]
