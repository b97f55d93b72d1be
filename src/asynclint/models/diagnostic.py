"""診断結果関連のデータモデル。"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["error", "warn", "info"]

JsonPath = tuple[str | int, ...]

# 違反の種類（cross-referenceチェック用）
UNDEFINED_REFERENCE = "UndefinedReference"
UNDEFINED_VARIABLE = "UndefinedVariable"
REDUNDANT_VARIABLE = "RedundantVariable"
DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
UNUSED_REFERENCE = "UnusedReference"
SCHEMA_MISMATCH = "SchemaMismatch"


def format_path(path: JsonPath) -> str:
    """パスをJSON Pointer形式の文字列に変換する。"""
    if not path:
        return "#"
    escaped = (str(segment).replace("~", "~0").replace("/", "~1") for segment in path)
    return "#/" + "/".join(escaped)


class Violation(BaseModel):
    """バリデータ関数が返す個別の違反。

    pathを省略した場合はマッチした位置に報告される。
    """

    model_config = ConfigDict(frozen=True)

    message: str
    path: JsonPath | None = None
    reference_path: JsonPath | None = None
    kind: str | None = None


class SchemaViolation(BaseModel):
    """JSON Schema適合チェックの個別結果。"""

    model_config = ConfigDict(frozen=True)

    keyword_path: str
    instance_path: JsonPath = ()
    message: str


class Diagnostic(BaseModel):
    """ルールを1箇所に適用した結果の診断。内容のみで同一性が決まる値オブジェクト。"""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    message: str
    path: JsonPath
    reference_path: JsonPath | None = None
    kind: str | None = None

    @property
    def pointer(self) -> str:
        return format_path(self.path)

    def __str__(self) -> str:
        return f"[{self.severity}] {self.rule_id} {self.pointer}: {self.message}"


class LintReport(BaseModel):
    """1回の検証実行で得られた診断結果のまとまり。"""

    diagnostics: list[Diagnostic] = Field(default_factory=list)
    recommended_rule_ids: frozenset[str] = frozenset()

    @property
    def is_valid(self) -> bool:
        """error重大度の診断が無ければ有効。warn/infoは有効性に影響しない。"""
        return not any(d.severity == "error" for d in self.diagnostics)

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity == severity)

    def only_recommended(self) -> "LintReport":
        """recommendedルールの診断だけに絞り込む。再実行はしない。"""
        return LintReport(
            diagnostics=[d for d in self.diagnostics if d.rule_id in self.recommended_rule_ids],
            recommended_rule_ids=self.recommended_rule_ids,
        )
