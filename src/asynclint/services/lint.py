"""AsyncAPIドキュメントの検証を行うサービス。"""

import asyncio
import logging
from typing import Any

from asynclint.config import LintConfig
from asynclint.models.diagnostic import LintReport
from asynclint.models.document import AsyncAPIDocument
from asynclint.rulesets.registry import RuleRegistry
from asynclint.validators.engine import RuleEngine

logger = logging.getLogger(__name__)


class LintService:
    """テキストをパースし、選択されたルールセットで検証してレポートを返す。"""

    def __init__(self, registry: RuleRegistry, engine: RuleEngine, config: LintConfig | None = None) -> None:
        self._registry = registry
        self._engine = engine
        self._config = config or LintConfig()

    async def lint(
        self,
        content: str,
        rulesets: list[str] | None = None,
        recommended_only: bool | None = None,
        source: str | None = None,
    ) -> LintReport:
        """AsyncAPIドキュメント（YAML/JSON）を検証する。

        Args:
            content: ドキュメント本文。
            rulesets: 適用するルールセット名。Noneの場合は設定値（未設定なら全ルールセット）。
            recommended_only: recommendedなルールのみ実行するか。Noneの場合は設定値。
            source: ログ・エラーメッセージ用のドキュメント名。

        Raises:
            DocumentParseError: ドキュメントをパースできない場合。
            RulesetNotFoundError: 未登録のルールセット名が指定された場合。
            RuleExecutionError: ルール実行中に予期しないエラーが発生した場合。
        """
        document = AsyncAPIDocument.from_text(content, source=source)
        selected = self._registry.select(rulesets if rulesets is not None else self._config.rulesets)
        if recommended_only is None:
            recommended_only = self._config.recommended_only

        diagnostics = await asyncio.to_thread(
            self._engine.run, document, selected, recommended_only=recommended_only
        )
        recommended_ids = frozenset(rule.id for ruleset in selected for rule in ruleset.rules if rule.recommended)
        return LintReport(diagnostics=diagnostics, recommended_rule_ids=recommended_ids)

    def list_rules(self, ruleset: str | None = None) -> list[dict[str, Any]]:
        """登録済みルールのメタデータを返す。

        Raises:
            RulesetNotFoundError: 未登録のルールセット名が指定された場合。
        """
        selected = self._registry.select(None if ruleset is None else [ruleset])
        return [
            {
                "id": rule.id,
                "ruleset": rs.name,
                "description": rule.description,
                "severity": rule.severity,
                "recommended": rule.recommended,
                "formats": [fmt.name for fmt in rs.effective_formats(rule)],
                "resolved": rule.resolved,
                "given": [selector.source for selector in rule.given],
            }
            for rs in selected
            for rule in rs.rules
        ]
