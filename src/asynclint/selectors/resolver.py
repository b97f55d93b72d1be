"""セレクタをドキュメントツリーに適用してマッチしたノードを列挙する。"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from asynclint.models.diagnostic import JsonPath
from asynclint.selectors.syntax import (
    MISSING,
    And,
    Child,
    Compare,
    FieldRef,
    Filter,
    Literal,
    Not,
    Or,
    Predicate,
    PropertyName,
    Segment,
    Selector,
    Union,
    Wildcard,
    parse_selector,
)


@dataclass(frozen=True)
class Match:
    """セレクタにマッチしたノードとそのパス。"""

    value: Any
    path: JsonPath


def resolve(root: Any, selectors: Selector | str | Iterable[Selector | str]) -> list[Match]:
    """ツリーからセレクタにマッチするノードを列挙する。

    複数のセレクタは宣言順に独立して評価し、結果を連結する。
    同じパスへの重複マッチも除去しない。ツリーは変更しない。

    Args:
        root: ドキュメントのルート。
        selectors: 1つ以上のセレクタ。

    Returns:
        マッチのリスト。ドキュメント上の挿入順で並ぶ。
    """
    if isinstance(selectors, (Selector, str)):
        selectors = [selectors]

    matches: list[Match] = []
    for selector in selectors:
        if isinstance(selector, str):
            selector = parse_selector(selector)
        _walk(root, (), None, selector.segments, 0, selector.up, matches)
    return matches


def _walk(
    value: Any,
    path: JsonPath,
    parent: Any,
    segments: tuple[Segment, ...],
    index: int,
    up: bool,
    out: list[Match],
) -> None:
    if index == len(segments):
        if up:
            # マッチ判定は末端まで行い、報告は親の位置で行う
            out.append(Match(parent, path[:-1]))
        else:
            out.append(Match(value, path))
        return

    for key, child in _children(value, segments[index]):
        _walk(child, (*path, key), value, segments, index + 1, up, out)


def _items(value: Any) -> Iterator[tuple[str | int, Any]]:
    if isinstance(value, dict):
        yield from value.items()
    elif isinstance(value, list):
        yield from enumerate(value)


def _child(value: Any, key: str | int) -> Iterator[tuple[str | int, Any]]:
    if isinstance(value, dict):
        name = str(key)
        if name in value:
            yield name, value[name]
    elif isinstance(value, list):
        if isinstance(key, str):
            if not key.isdigit():
                return
            key = int(key)
        if 0 <= key < len(value):
            yield key, value[key]


def _children(value: Any, segment: Segment) -> Iterator[tuple[str | int, Any]]:
    if isinstance(segment, Child):
        yield from _child(value, segment.key)
    elif isinstance(segment, Wildcard):
        yield from _items(value)
    elif isinstance(segment, Union):
        for key in segment.keys:
            yield from _child(value, key)
    elif isinstance(segment, Filter):
        for key, child in _items(value):
            if truthy(evaluate(segment.predicate, key, child)):
                yield key, child


# ---------------------------------------------------------------------------
# フィルタ述語の評価
# ---------------------------------------------------------------------------


def evaluate(predicate: Predicate, key: str | int, value: Any) -> Any:
    """フィルタ述語を1つの子要素(key, value)に対して評価する。"""
    if isinstance(predicate, PropertyName):
        return key
    if isinstance(predicate, FieldRef):
        current = value
        for name in predicate.path:
            if not isinstance(current, dict) or name not in current:
                return MISSING
            current = current[name]
        return current
    if isinstance(predicate, Literal):
        return predicate.value
    if isinstance(predicate, Compare):
        left = evaluate(predicate.left, key, value)
        right = evaluate(predicate.right, key, value)
        if predicate.op in ("===", "!=="):
            equal = _strict_equal(left, right)
        else:
            equal = _loose_equal(left, right)
        return equal if predicate.op in ("===", "==") else not equal
    if isinstance(predicate, Not):
        return not truthy(evaluate(predicate.operand, key, value))
    if isinstance(predicate, And):
        return truthy(evaluate(predicate.left, key, value)) and truthy(evaluate(predicate.right, key, value))
    if isinstance(predicate, Or):
        return truthy(evaluate(predicate.left, key, value)) or truthy(evaluate(predicate.right, key, value))
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def truthy(value: Any) -> bool:
    """JSON値の真偽判定。空のオブジェクト・配列も真とする。"""
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def _strict_equal(left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING or left is None or right is None:
        return left is right
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _loose_equal(left: Any, right: Any) -> bool:
    nullish = (MISSING, None)
    if left in nullish or right in nullish:
        return left in nullish and right in nullish
    return _strict_equal(left, right)
