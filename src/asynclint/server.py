"""FastMCPベースのMCPサーバーエントリポイント。"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from asynclint.config import LintConfig
from asynclint.resources.rulesets import register_ruleset_resources
from asynclint.rulesets.loader import load_ruleset_dir
from asynclint.rulesets.registry import create_registry
from asynclint.services.lint import LintService
from asynclint.tools.lint import register_lint_tools
from asynclint.validators.engine import RuleEngine


def create_server(config: LintConfig | None = None) -> FastMCP:
    """asynclint MCPサーバーを作成し、ツール・リソースを登録する。

    Args:
        config: サーバー設定。Noneの場合はデフォルト設定を使用。

    Returns:
        設定済みのFastMCPインスタンス。

    Raises:
        ConfigurationError: カスタムルールセットの定義が不正な場合。
    """
    if config is None:
        config = LintConfig()

    mcp = FastMCP("asynclint")

    # ルール層
    registry = create_registry(extra_rulesets=load_ruleset_dir(config.rulesets_dir))
    # 存在しないルールセット名は起動時に検出する
    registry.select(config.rulesets)

    # サービス層
    lint_service = LintService(registry=registry, engine=RuleEngine(max_workers=config.max_workers), config=config)

    # MCPインターフェース登録
    register_lint_tools(mcp, lint_service)
    register_ruleset_resources(mcp, registry)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "rulesets": registry.names})

    return mcp
