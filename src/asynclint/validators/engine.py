"""ルール実行エンジン。"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from asynclint.formats import document_matches_format
from asynclint.models.diagnostic import Diagnostic, JsonPath, Violation
from asynclint.models.document import AsyncAPIDocument
from asynclint.models.errors import AsyncLintError, DuplicateRuleError, RuleExecutionError
from asynclint.models.rule import Rule, RuleContext, Ruleset, RunState
from asynclint.selectors.resolver import Match, resolve

logger = logging.getLogger(__name__)


class RuleEngine:
    """ルールセットをドキュメントに適用し、診断結果を安定した順序で返す。

    各ルールはドキュメントを読むだけで共有の可変状態を持たないため、
    max_workers > 1 の場合はルール単位でスレッドプールに分散して実行する。
    結果は到着順ではなく常にルールの宣言順に並べ直す。
    """

    def __init__(self, max_workers: int = 1) -> None:
        self._max_workers = max(1, max_workers)

    def run(
        self,
        document: AsyncAPIDocument,
        rulesets: Iterable[Ruleset],
        *,
        recommended_only: bool = False,
    ) -> list[Diagnostic]:
        """ドキュメントを検証する。

        Args:
            document: 検証対象のドキュメント。
            rulesets: 適用するルールセット。ルールセット順→宣言順に実行する。
            recommended_only: Trueの場合はrecommendedなルールのみ実行する。

        Returns:
            診断結果のリスト。ルールの宣言順、同一ルール内はバリデータが返した順。

        Raises:
            DuplicateRuleError: 合成したルールセット間でルールIDが重複している場合。
            RuleExecutionError: バリデータ関数・コラボレータで予期しない例外が発生した場合。
        """
        rules = self._applicable_rules(document, rulesets, recommended_only)
        state = RunState()

        if self._max_workers == 1 or len(rules) <= 1:
            per_rule = [self._run_rule(rule, document, state) for rule in rules]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="asynclint") as executor:
                futures = [executor.submit(self._run_rule, rule, document, state) for rule in rules]
                try:
                    per_rule = [future.result() for future in futures]
                except BaseException:
                    for future in futures:
                        future.cancel()
                    raise

        diagnostics = [diagnostic for batch in per_rule for diagnostic in batch]
        logger.info(
            "Validated %s against %d rule(s): %d diagnostic(s)",
            document.source or "<document>",
            len(rules),
            len(diagnostics),
        )
        return diagnostics

    def _applicable_rules(
        self,
        document: AsyncAPIDocument,
        rulesets: Iterable[Ruleset],
        recommended_only: bool,
    ) -> list[Rule]:
        """ドキュメントのバージョンと推奨フラグで実行対象のルールを絞り込む。"""
        seen: set[str] = set()
        selected: list[Rule] = []
        for ruleset in rulesets:
            for rule in ruleset.rules:
                if rule.id in seen:
                    raise DuplicateRuleError(rule.id)
                seen.add(rule.id)
                if recommended_only and not rule.recommended:
                    continue
                if not document_matches_format(document, ruleset.effective_formats(rule)):
                    logger.debug("Skipping %s: not applicable to AsyncAPI %s", rule.id, document.version)
                    continue
                selected.append(rule)
        return selected

    def _run_rule(self, rule: Rule, document: AsyncAPIDocument, state: RunState) -> list[Diagnostic]:
        """単一のルールを実行する。同じルール内で位置とメッセージが同じ診断は1件にまとめる。"""
        try:
            matches = resolve(document.tree(rule.resolved), rule.given)
            diagnostics: list[Diagnostic] = []
            seen: set[tuple[JsonPath, str]] = set()
            for match in matches:
                for path, value in _targets(match, rule.then.field):
                    context = RuleContext(document=document, path=path, rule=rule, state=state)
                    for violation in rule.then.function(value, rule.then.options, context):
                        diagnostic = _to_diagnostic(rule, violation, path, value)
                        key = (diagnostic.path, diagnostic.message)
                        if key in seen:
                            continue
                        seen.add(key)
                        diagnostics.append(diagnostic)
        except AsyncLintError:
            raise
        except Exception as e:
            raise RuleExecutionError(rule.id, e) from e

        logger.debug("%s: %d match(es), %d diagnostic(s)", rule.id, len(matches), len(diagnostics))
        return diagnostics


def _targets(match: Match, field: str | None) -> list[tuple[JsonPath, Any]]:
    """then.fieldに従ってバリデータ関数に渡す(パス, 値)を決める。"""
    if field is None:
        return [(match.path, match.value)]
    if field == "@key":
        if not isinstance(match.value, dict):
            return []
        return [((*match.path, key), key) for key in match.value]

    path = match.path
    value = match.value
    for part in field.split("."):
        path = (*path, part)
        value = value.get(part) if isinstance(value, dict) else None
    return [(path, value)]


def _to_diagnostic(rule: Rule, violation: Violation, path: JsonPath, value: Any) -> Diagnostic:
    reported_path = violation.path if violation.path is not None else path
    return Diagnostic(
        rule_id=rule.id,
        severity=rule.severity,
        message=rule.format_message(violation.message, reported_path, value),
        path=reported_path,
        reference_path=violation.reference_path,
        kind=violation.kind,
    )
