"""セレクタ文字列の構文木と構文解析。

サポートする構文:

    $.servers.*.security.*
    $.channels[*][publish,subscribe].message
    $.components.messages[?(@.schemaFormat === void 0)].payload.default^

フィルタ式は @property / @.field / リテラルの比較と &&, ||, ! のみ。
任意の式評価は行わない。
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from asynclint.models.errors import SelectorSyntaxError


class _Missing:
    """存在しないプロパティを表す番兵（JSの undefined 相当）。"""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


# ---------------------------------------------------------------------------
# パスセグメント
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Child:
    key: str | int


@dataclass(frozen=True)
class Wildcard:
    pass


@dataclass(frozen=True)
class Union:
    keys: tuple[str | int, ...]


@dataclass(frozen=True)
class Filter:
    predicate: "Predicate"


Segment = Child | Wildcard | Union | Filter


# ---------------------------------------------------------------------------
# フィルタ述語
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropertyName:
    """@property: 評価対象の子要素のキー。"""


@dataclass(frozen=True)
class FieldRef:
    """@ または @.a.b: 評価対象の子要素（またはその配下の値）。"""

    path: tuple[str, ...] = ()


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Predicate"
    right: "Predicate"


@dataclass(frozen=True)
class Not:
    operand: "Predicate"


@dataclass(frozen=True)
class And:
    left: "Predicate"
    right: "Predicate"


@dataclass(frozen=True)
class Or:
    left: "Predicate"
    right: "Predicate"


Predicate = PropertyName | FieldRef | Literal | Compare | Not | And | Or


@dataclass(frozen=True)
class Selector:
    """構文解析済みのセレクタ。"""

    source: str
    segments: tuple[Segment, ...]
    up: bool = False

    def __str__(self) -> str:
        return self.source


# ---------------------------------------------------------------------------
# パーサ
# ---------------------------------------------------------------------------

_NAME_STOP = ".[^"
_IDENT = re.compile(r"[A-Za-z0-9_$\-]+")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_COMPARISON_OPS = ("===", "!==", "==", "!=")


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    def error(self, reason: str) -> SelectorSyntaxError:
        return SelectorSyntaxError(self.source, self.pos, reason)

    def peek(self, size: int = 1) -> str:
        return self.source[self.pos : self.pos + size]

    def at_end(self) -> bool:
        return self.pos >= len(self.source)

    def match(self, token: str) -> bool:
        if self.source.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def expect(self, token: str) -> None:
        if not self.match(token):
            raise self.error(f"expected {token!r}")

    def skip_ws(self) -> None:
        while not self.at_end() and self.source[self.pos].isspace():
            self.pos += 1

    # ---- パス ----

    def parse(self) -> Selector:
        self.expect("$")
        segments: list[Segment] = []
        up = False
        while not self.at_end():
            char = self.peek()
            if char == "^":
                if not segments:
                    raise self.error("'^' requires at least one segment")
                self.pos += 1
                if not self.at_end():
                    raise self.error("'^' must be the last token")
                up = True
            elif char == ".":
                self.pos += 1
                if self.peek() == ".":
                    raise self.error("recursive descent is not supported")
                if self.peek() == "[":
                    segments.append(self.parse_bracket())
                elif self.match("*"):
                    segments.append(Wildcard())
                else:
                    segments.append(Child(self.parse_name()))
            elif char == "[":
                segments.append(self.parse_bracket())
            else:
                raise self.error(f"unexpected character {char!r}")
        return Selector(source=self.source, segments=tuple(segments), up=up)

    def parse_name(self) -> str:
        start = self.pos
        while not self.at_end() and self.source[self.pos] not in _NAME_STOP:
            self.pos += 1
        name = self.source[start : self.pos]
        if not name:
            raise self.error("empty property name")
        return name

    def parse_bracket(self) -> Segment:
        self.expect("[")
        self.skip_ws()
        if self.match("*"):
            self.skip_ws()
            self.expect("]")
            return Wildcard()
        if self.match("?("):
            predicate = self.parse_or()
            self.skip_ws()
            self.expect(")")
            self.skip_ws()
            self.expect("]")
            return Filter(predicate)

        keys: list[str | int] = []
        while True:
            self.skip_ws()
            keys.append(self.parse_key())
            self.skip_ws()
            if self.match(","):
                continue
            self.expect("]")
            break
        if len(keys) == 1:
            return Child(keys[0])
        return Union(tuple(keys))

    def parse_key(self) -> str | int:
        if self.peek() in ("'", '"'):
            return self.parse_string()
        start = self.pos
        while not self.at_end() and self.source[self.pos] not in ",]":
            self.pos += 1
        key = self.source[start : self.pos].strip()
        if not key:
            raise self.error("empty key in brackets")
        return int(key) if key.isdigit() else key

    def parse_string(self) -> str:
        quote = self.source[self.pos]
        self.pos += 1
        chars: list[str] = []
        while not self.at_end():
            char = self.source[self.pos]
            if char == "\\" and self.pos + 1 < len(self.source):
                chars.append(self.source[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise self.error("unterminated string")

    # ---- フィルタ式 ----

    def parse_or(self) -> Predicate:
        left = self.parse_and()
        while True:
            self.skip_ws()
            if not self.match("||"):
                return left
            left = Or(left, self.parse_and())

    def parse_and(self) -> Predicate:
        left = self.parse_unary()
        while True:
            self.skip_ws()
            if not self.match("&&"):
                return left
            left = And(left, self.parse_unary())

    def parse_unary(self) -> Predicate:
        self.skip_ws()
        if self.peek() == "!" and self.peek(2) != "!=":
            self.pos += 1
            return Not(self.parse_unary())
        if self.match("("):
            inner = self.parse_or()
            self.skip_ws()
            self.expect(")")
            return inner
        left = self.parse_operand()
        self.skip_ws()
        for op in _COMPARISON_OPS:
            if self.match(op):
                return Compare(op, left, self.parse_operand())
        return left

    def parse_operand(self) -> Predicate:
        self.skip_ws()
        if self.source.startswith("@property", self.pos) and not _IDENT.match(self.source, self.pos + 9):
            self.pos += 9
            return PropertyName()
        if self.match("@"):
            path: list[str] = []
            while True:
                if self.match("."):
                    ident = _IDENT.match(self.source, self.pos)
                    if ident is None:
                        raise self.error("expected property name after '@.'")
                    path.append(ident.group())
                    self.pos = ident.end()
                elif self.peek(2) in ("['", '["'):
                    self.pos += 1
                    path.append(self.parse_string())
                    self.expect("]")
                else:
                    return FieldRef(tuple(path))
        if self.peek() in ("'", '"'):
            return Literal(self.parse_string())
        for keyword, value in (("void 0", MISSING), ("undefined", MISSING), ("null", None), ("true", True), ("false", False)):
            if self.source.startswith(keyword, self.pos) and not _IDENT.match(self.source, self.pos + len(keyword)):
                self.pos += len(keyword)
                return Literal(value)
        number = _NUMBER.match(self.source, self.pos)
        if number is not None:
            self.pos = number.end()
            text = number.group()
            return Literal(float(text) if "." in text else int(text))
        raise self.error("expected operand")


@lru_cache(maxsize=None)
def parse_selector(source: str) -> Selector:
    """セレクタ文字列を構文解析する。

    Raises:
        SelectorSyntaxError: 構文が不正な場合。
    """
    return _Parser(source.strip()).parse()
