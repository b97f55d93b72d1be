"""スキーマ関連のバリデータ関数（default/examplesの適合、payloadスキーマの検証）。"""

from typing import Any

from asynclint.models.diagnostic import SCHEMA_MISMATCH, JsonPath, SchemaViolation, Violation
from asynclint.models.rule import InstanceValidator, RuleContext
from asynclint.validators.schema import SchemaParserRegistry, default_schema_format


def describe_schema_violation(label: str, violation: SchemaViolation) -> str:
    location = "".join(f"[{part}]" if isinstance(part, int) else f".{part}" for part in violation.instance_path)
    return f'"{label}{location}" property does not match its schema at {violation.keyword_path}: {violation.message}'


def check_conformance(
    context: RuleContext,
    validator: InstanceValidator,
    schema: Any,
    instance: Any,
    label: str,
    path: JsonPath | None = None,
) -> list[Violation]:
    """instanceをschemaに照らして検証し、違反をViolationに変換する。"""
    return [
        Violation(message=describe_schema_violation(label, v), path=path, kind=SCHEMA_MISMATCH)
        for v in context.state.check_instance(validator, schema, instance, context.tree)
    ]


def schema_validation(
    target: Any,
    options: dict[str, Any],
    context: RuleContext,
    *,
    instance_validator: InstanceValidator,
) -> list[Violation]:
    """スキーマのdefault/examplesがそのスキーマ自身に適合するか検証する。

    マッチ対象はdefault/examplesを宣言しているスキーマオブジェクト（セレクタ末尾の ^ による）。
    違反はスキーマオブジェクトの位置に報告する。

    Options:
        type: "default" または "examples"。
    """
    keyword = options["type"]
    if not isinstance(target, dict) or keyword not in target:
        return []

    if keyword == "default":
        return check_conformance(context, instance_validator, target, target["default"], "default")

    examples = target["examples"]
    if not isinstance(examples, list):
        return []
    results: list[Violation] = []
    for index, example in enumerate(examples):
        results.extend(check_conformance(context, instance_validator, target, example, f"examples[{index}]"))
    return results


def schema_parser(
    target: Any,
    options: dict[str, Any],
    context: RuleContext,
    *,
    parsers: SchemaParserRegistry,
) -> list[Violation]:
    """メッセージのpayloadがschemaFormatの観点で正しいスキーマか検証する。

    schemaFormatに対応するパーサが無い場合はschemaFormatとpayloadの2箇所に報告する。
    """
    if not isinstance(target, dict) or not target.get("payload"):
        return []

    schema_format = target.get("schemaFormat") or default_schema_format(context.document.version)
    parser = parsers.get(schema_format)
    if parser is None:
        return [
            Violation(message=f'Unknown schema format: "{schema_format}"', path=(*context.path, "schemaFormat")),
            Violation(
                message=f'Cannot validate and parse given schema due to unknown schema format: "{schema_format}"',
                path=(*context.path, "payload"),
            ),
        ]
    return parser.validate(target["payload"], (*context.path, "payload"), schema_format)
