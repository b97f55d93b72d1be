"""汎用バリデータ関数（truthy / falsy / pattern）。"""

import re
from functools import lru_cache
from typing import Any

from asynclint.models.diagnostic import Violation
from asynclint.models.rule import RuleContext
from asynclint.selectors.resolver import truthy as _is_truthy

_REGEX_LITERAL = re.compile(r"^/(.+)/([imsx]*)$")


def _property(context: RuleContext) -> str:
    return str(context.path[-1]) if context.path else "document"


def truthy(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """値が真であることを検証する。"""
    if _is_truthy(target):
        return []
    return [Violation(message=f'"{_property(context)}" property must be truthy')]


def falsy(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """値が偽（未定義を含む）であることを検証する。"""
    if not _is_truthy(target):
        return []
    return [Violation(message=f'"{_property(context)}" property must be falsy')]


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    # "/regex/flags" 形式も受け付ける
    literal = _REGEX_LITERAL.match(pattern)
    if literal is None:
        return re.compile(pattern)
    flags = 0
    for flag in literal.group(2):
        flags |= {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}[flag]
    return re.compile(literal.group(1), flags)


def pattern(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """文字列が正規表現にマッチする(match)/しない(notMatch)ことを検証する。

    文字列以外の値は対象外。
    """
    if not isinstance(target, str):
        return []

    results: list[Violation] = []
    match = options.get("match")
    if match is not None and _compile(match).search(target) is None:
        results.append(Violation(message=f'"{target}" must match the pattern "{match}"'))
    not_match = options.get("notMatch")
    if not_match is not None and _compile(not_match).search(target) is not None:
        results.append(Violation(message=f'"{target}" must not match the pattern "{not_match}"'))
    return results
