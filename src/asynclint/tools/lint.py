"""検証関連のMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from asynclint.models.diagnostic import format_path
from asynclint.models.errors import AsyncLintError
from asynclint.services.lint import LintService


def register_lint_tools(mcp: FastMCP, lint_service: LintService) -> None:
    """検証関連のMCPツールを登録する。"""

    @mcp.tool()
    async def lint_document(
        content: str,
        rulesets: list[str] | None = None,
        recommended_only: bool | None = None,
    ) -> dict[str, Any]:
        """AsyncAPI 2.xドキュメントを検証する。

        サーバー変数・チャネルパラメータ・セキュリティ参照・ID一意性・スキーマ適合などの
        意味的な整合性をチェックし、診断結果の一覧を返します。

        Args:
            content: AsyncAPIドキュメント本文（YAMLまたはJSON）。
            rulesets: 適用するルールセット名（core, recommended, schemas など）。省略時はサーバー設定（未設定なら全て）。
            recommended_only: Trueの場合はrecommendedなルールのみ実行する。省略時はサーバー設定に従う。
        """
        try:
            report = await lint_service.lint(content, rulesets=rulesets, recommended_only=recommended_only)
        except AsyncLintError as e:
            return {"error": type(e).__name__, "message": str(e)}
        return {
            "diagnostics": [
                {
                    "rule_id": d.rule_id,
                    "severity": d.severity,
                    "message": d.message,
                    "path": d.pointer,
                    "reference_path": None if d.reference_path is None else format_path(d.reference_path),
                    "kind": d.kind,
                }
                for d in report.diagnostics
            ],
            "error_count": report.count("error"),
            "warning_count": report.count("warn"),
            "info_count": report.count("info"),
            "valid": report.is_valid,
        }

    @mcp.tool()
    async def list_rules(ruleset: str | None = None) -> dict[str, Any]:
        """利用可能な検証ルールの一覧を取得する。

        Args:
            ruleset: ルールセット名。省略時は全ルールセットのルールを返す。
        """
        try:
            return {"rules": lint_service.list_rules(ruleset)}
        except AsyncLintError as e:
            return {"error": type(e).__name__, "message": str(e)}
