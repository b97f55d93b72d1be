"""asynclintサーバーの設定管理。"""

from pathlib import Path

from pydantic_settings import BaseSettings

_PACKAGE_ROOT = Path(__file__).parent
_REPO_ROOT = _PACKAGE_ROOT.parent.parent


class LintConfig(BaseSettings):
    """サーバー・検証設定。環境変数から読み込み可能。"""

    model_config = {"env_prefix": "ASYNCLINT_"}

    config_dir: Path = _REPO_ROOT / "config"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # 既定で有効にするルールセット名。Noneの場合は登録済みの全ルールセット
    rulesets: list[str] | None = None
    recommended_only: bool = False

    # ルール実行のワーカー数（1で逐次実行）
    max_workers: int = 1

    @property
    def rulesets_dir(self) -> Path:
        return self.config_dir / "rulesets"
