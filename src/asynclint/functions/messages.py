"""オペレーション・メッセージ単位のバリデータ関数。"""

from typing import Any

from asynclint.functions.schemas import check_conformance
from asynclint.functions.traits import merge_traits
from asynclint.models.diagnostic import Violation
from asynclint.models.rule import InstanceValidator, RuleContext
from asynclint.selectors.resolver import truthy
from asynclint.validators.schema import is_default_schema_format


def check_id(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """トレイト適用後のオブジェクトにIDフィールドが定義されているか検証する。

    Options:
        idField: 検証するフィールド名（"operationId" / "messageId"）。
    """
    id_field = options["idField"]
    merged = merge_traits(target)
    if isinstance(merged, dict) and truthy(merged.get(id_field)):
        return []
    return [Violation(message=f'"{id_field}" property must be truthy', path=(*context.path, id_field))]


def message_examples(
    target: Any,
    options: dict[str, Any],
    context: RuleContext,
    *,
    instance_validator: InstanceValidator,
) -> list[Violation]:
    """メッセージのexamplesがpayload/headersスキーマに適合するか検証する。

    トレイト適用後のメッセージを対象とし、schemaFormatがAsyncAPI/JSON Schema以外の場合は検証しない。
    """
    message = merge_traits(target)
    if not isinstance(message, dict) or not isinstance(message.get("examples"), list):
        return []
    if not is_default_schema_format(message.get("schemaFormat")):
        return []

    results: list[Violation] = []
    for index, example in enumerate(message["examples"]):
        if not isinstance(example, dict):
            continue
        for part in ("payload", "headers"):
            if part not in example or part not in message:
                continue
            results.extend(
                check_conformance(
                    context,
                    instance_validator,
                    message[part],
                    example[part],
                    part,
                    path=(*context.path, "examples", index, part),
                )
            )
    return results
