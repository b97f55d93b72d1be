"""識別子（operationId / messageId / タグ名）の一意性チェック。

いずれも「全出現箇所を集める → 値ごとに2件目以降を報告する」の2パスで処理する。
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from asynclint.functions.traits import merge_traits
from asynclint.models.diagnostic import DUPLICATE_IDENTIFIER, JsonPath, Violation
from asynclint.models.document import iter_messages, iter_operations
from asynclint.models.rule import RuleContext


@dataclass(frozen=True)
class Duplicate:
    """重複した識別子の2件目以降の出現。first_pathは最初の出現位置。"""

    value: str
    path: JsonPath
    first_path: JsonPath


def find_duplicates(occurrences: Iterable[tuple[str, JsonPath]]) -> list[Duplicate]:
    """出現順を保ったまま、最初の出現以外の重複を返す。"""
    items = list(occurrences)
    first_index: dict[str, int] = {}
    for index, (value, _) in enumerate(items):
        first_index.setdefault(value, index)
    return [
        Duplicate(value=value, path=path, first_path=items[first_index[value]][1])
        for index, (value, path) in enumerate(items)
        if first_index[value] != index
    ]


def _identifier(value: Any, field: str) -> str | None:
    identifier = merge_traits(value).get(field)
    return identifier if isinstance(identifier, str) and identifier else None


def _violations(duplicates: list[Duplicate], message: str) -> list[Violation]:
    return [
        Violation(
            message=message.format(value=dup.value),
            path=dup.path,
            reference_path=dup.first_path,
            kind=DUPLICATE_IDENTIFIER,
        )
        for dup in duplicates
    ]


def operation_id_uniqueness(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """operationIdがドキュメント内の全オペレーションで一意か検証する。

    channelsとcomponents.channelsの両方を対象とし、トレイトで付与されたIDも含める。
    """
    if not isinstance(target, dict):
        return []
    occurrences = [
        (operation_id, (*path, "operationId"))
        for path, operation in iter_operations(target)
        if (operation_id := _identifier(operation, "operationId")) is not None
    ]
    return _violations(find_duplicates(occurrences), '"operationId" must be unique across all the operations.')


def message_id_uniqueness(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """messageIdがドキュメント内の全メッセージで一意か検証する。

    単体メッセージ、oneOfの各要素、components.messagesを対象とする。
    """
    if not isinstance(target, dict):
        return []
    occurrences = [
        (message_id, (*path, "messageId"))
        for path, message in iter_messages(target)
        if (message_id := _identifier(message, "messageId")) is not None
    ]
    return _violations(find_duplicates(occurrences), '"messageId" must be unique across all the messages.')


def unique_tag_names(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """tags配列の中でタグ名が重複していないか検証する。"""
    if not isinstance(target, list):
        return []
    occurrences = [
        (tag["name"], (*context.path, index, "name"))
        for index, tag in enumerate(target)
        if isinstance(tag, dict) and isinstance(tag.get("name"), str)
    ]
    return _violations(find_duplicates(occurrences), '"tags" object contains duplicate tag name "{value}".')
