"""ルールセットのレジストリ。"""

import logging
from collections.abc import Iterable

from asynclint.models.errors import ConfigurationError, DuplicateRuleError, RulesetNotFoundError
from asynclint.models.rule import InstanceValidator, Ruleset
from asynclint.rulesets.v2 import build_core_ruleset, build_recommended_ruleset, build_schemas_ruleset
from asynclint.validators.schema import (
    JsonSchemaInstanceValidator,
    SchemaParserRegistry,
    create_default_parser_registry,
)

logger = logging.getLogger(__name__)


class RuleRegistry:
    """起動時に構築される、名前付きルールセットの順序付き集合。

    合成されたルールセット全体でルールIDは一意でなければならない。
    """

    def __init__(self, rulesets: Iterable[Ruleset]) -> None:
        self._rulesets: dict[str, Ruleset] = {}
        owners: dict[str, str] = {}
        for ruleset in rulesets:
            if ruleset.name in self._rulesets:
                raise ConfigurationError(f"Duplicate ruleset name: {ruleset.name}")
            for rule_id in ruleset.rule_ids:
                if rule_id in owners:
                    raise DuplicateRuleError(rule_id)
                owners[rule_id] = ruleset.name
            self._rulesets[ruleset.name] = ruleset

    @property
    def names(self) -> list[str]:
        return list(self._rulesets)

    def get(self, name: str) -> Ruleset:
        """名前でルールセットを取得する。

        Raises:
            RulesetNotFoundError: 登録されていない場合。
        """
        ruleset = self._rulesets.get(name)
        if ruleset is None:
            raise RulesetNotFoundError(name)
        return ruleset

    def select(self, names: Iterable[str] | None = None) -> list[Ruleset]:
        """指定された順にルールセットを返す。Noneの場合は登録順に全て返す。"""
        if names is None:
            return list(self._rulesets.values())
        return [self.get(name) for name in names]


def create_registry(
    parsers: SchemaParserRegistry | None = None,
    instance_validator: InstanceValidator | None = None,
    extra_rulesets: Iterable[Ruleset] = (),
) -> RuleRegistry:
    """組み込みのcore/recommended/schemasルールセットと追加ルールセットからレジストリを構築する。

    Args:
        parsers: schemasルールセットに渡すスキーマパーサ。Noneの場合は既定のパーサのみ。
        instance_validator: スキーマ適合チェッカー。Noneの場合はJSON Schema Draft 07。
        extra_rulesets: 追加のルールセット（YAMLから読み込んだものなど）。

    Raises:
        ConfigurationError: ルールIDやルールセット名が重複している場合。
    """
    if parsers is None:
        parsers = create_default_parser_registry()
    if instance_validator is None:
        instance_validator = JsonSchemaInstanceValidator()

    registry = RuleRegistry(
        [
            build_core_ruleset(instance_validator),
            build_recommended_ruleset(),
            build_schemas_ruleset(parsers, instance_validator),
            *extra_rulesets,
        ]
    )
    logger.info("Rule registry ready: %s", ", ".join(registry.names))
    return registry
