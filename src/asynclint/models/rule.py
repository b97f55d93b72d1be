"""ルール・ルールセット関連のデータモデル。"""

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from asynclint.formats import Format
from asynclint.models.diagnostic import JsonPath, SchemaViolation, Severity, Violation
from asynclint.models.errors import DuplicateRuleError
from asynclint.selectors.syntax import Selector, parse_selector

if TYPE_CHECKING:
    from asynclint.models.document import AsyncAPIDocument

# (schema, instance, root) -> 違反。rootはスキーマ内に残ったローカル$refの解決に使うドキュメントツリー
InstanceValidator = Callable[[Any, Any, Any], list[SchemaViolation]]


class RunState:
    """1回の検証実行に閉じた共有状態。

    スキーマ適合チェックの結果を(スキーマの同一性, インスタンス)単位でメモ化する。
    キャッシュはスキーマ自体も保持し、実行中にidが再利用されないようにする。
    ワーカースレッドから並行に呼ばれる。
    """

    def __init__(self) -> None:
        self._schema_cache: dict[tuple[int, int, int, str], tuple[Any, list[SchemaViolation]]] = {}
        self._lock = threading.Lock()

    def check_instance(
        self,
        validator: InstanceValidator,
        schema: Any,
        instance: Any,
        root: Any = None,
    ) -> list[SchemaViolation]:
        key = (id(validator), id(schema), id(root), json.dumps(instance, sort_keys=True, default=str))
        with self._lock:
            cached = self._schema_cache.get(key)
        if cached is not None:
            return cached[1]
        result = list(validator(schema, instance, root))
        with self._lock:
            self._schema_cache.setdefault(key, (schema, result))
        return result


@dataclass(frozen=True)
class RuleContext:
    """バリデータ関数に渡される呼び出しコンテキスト。"""

    document: "AsyncAPIDocument"
    path: JsonPath
    rule: "Rule"
    state: RunState = field(default_factory=RunState)

    @property
    def tree(self) -> dict[str, Any]:
        return self.document.tree(self.rule.resolved)


RuleFunction = Callable[[Any, dict[str, Any], RuleContext], list[Violation]]


class RuleAction(BaseModel):
    """マッチしたノードに適用するバリデータ関数とその設定。"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    function: RuleFunction
    field: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)


class Rule(BaseModel):
    """ルール定義。プロセス起動時に一度だけ構築され、以後変更されない。"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    description: str
    message: str | None = None
    severity: Severity = "warn"
    recommended: bool = True
    formats: tuple[Any, ...] | None = None
    resolved: bool = True
    given: tuple[Any, ...]
    then: RuleAction

    @field_validator("given", mode="before")
    @classmethod
    def _parse_given(cls, value: Any) -> tuple[Selector, ...]:
        # 不正なセレクタはここでSelectorSyntaxErrorとなり、起動時に失敗する
        if isinstance(value, (str, Selector)):
            value = [value]
        return tuple(item if isinstance(item, Selector) else parse_selector(item) for item in value)

    @field_validator("formats", mode="before")
    @classmethod
    def _check_formats(cls, value: Any) -> tuple[Format, ...] | None:
        return None if value is None else _as_formats(value)

    def format_message(self, error: str, path: JsonPath, value: Any) -> str:
        """メッセージテンプレートを展開する。"""
        template = self.message or "{{error}}"
        prop = str(path[-1]) if path else ""
        rendered = (
            template.replace("{{error}}", error)
            .replace("{{description}}", self.description)
            .replace("{{path}}", ".".join(str(p) for p in path))
            .replace("{{property}}", prop)
            .replace("{{value}}", _printable(value))
        )
        return rendered or self.description


def _as_formats(value: Any) -> tuple[Format, ...]:
    formats = tuple(value)
    for fmt in formats:
        if not isinstance(fmt, Format):
            raise ValueError(f"Expected Format, got {type(fmt).__name__}")
    return formats


def _printable(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


class Ruleset(BaseModel):
    """名前付きで順序を持つルールの集合。"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    formats: tuple[Any, ...] = ()
    rules: tuple[Rule, ...] = ()

    @field_validator("formats", mode="before")
    @classmethod
    def _check_formats(cls, value: Any) -> tuple[Format, ...]:
        return _as_formats(value)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Ruleset":
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise DuplicateRuleError(rule.id, self.name)
            seen.add(rule.id)
        return self

    @property
    def rule_ids(self) -> list[str]:
        return [rule.id for rule in self.rules]

    def get(self, rule_id: str) -> Rule | None:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def effective_formats(self, rule: Rule) -> tuple[Format, ...]:
        """ルール個別のformatsが無ければルールセットのformatsを使う。"""
        return rule.formats if rule.formats is not None else self.formats

    def recommended(self) -> "Ruleset":
        return self.model_copy(update={"rules": tuple(rule for rule in self.rules if rule.recommended)})
