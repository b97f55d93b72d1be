"""ルールセット関連のMCPリソース定義。"""

import yaml
from fastmcp import FastMCP

from asynclint.rulesets.registry import RuleRegistry


def register_ruleset_resources(mcp: FastMCP, registry: RuleRegistry) -> None:
    """ルールセット関連のMCPリソースを登録する。"""

    @mcp.resource("asynclint://rulesets")
    async def rulesets() -> str:
        """登録済みルールセットの定義を取得する。

        各ルールセットの名前、説明、対象フォーマット、ルールID・重大度・推奨フラグを返します。
        """
        data = {
            "rulesets": [
                {
                    "name": ruleset.name,
                    "description": ruleset.description,
                    "formats": [fmt.name for fmt in ruleset.formats],
                    "rules": [
                        {
                            "id": rule.id,
                            "description": rule.description,
                            "severity": rule.severity,
                            "recommended": rule.recommended,
                        }
                        for rule in ruleset.rules
                    ],
                }
                for ruleset in registry.select()
            ]
        }
        return yaml.dump(data, allow_unicode=True, default_flow_style=False, sort_keys=False)
