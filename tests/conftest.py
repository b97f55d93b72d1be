"""テスト共通フィクスチャ。"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from asynclint.config import LintConfig
from asynclint.functions.core import truthy
from asynclint.models.diagnostic import JsonPath
from asynclint.models.document import AsyncAPIDocument
from asynclint.models.rule import Rule, RuleAction, RuleContext
from asynclint.rulesets.registry import RuleRegistry, create_registry
from asynclint.services.lint import LintService
from asynclint.validators.engine import RuleEngine

VALID_DOCUMENT = """\
asyncapi: 2.6.0
info:
  title: Account Service
  version: 1.0.0
  contact:
    name: API Team
tags:
  - name: accounts
servers:
  production:
    url: broker.example.com:{port}
    protocol: mqtt
    variables:
      port:
        default: "1883"
        enum: ["1883", "8883"]
    security:
      - oauth: ["accounts:write"]
channels:
  user/{user_id}/signedup:
    parameters:
      user_id:
        schema:
          type: string
    servers: [production]
    subscribe:
      operationId: onUserSignedUp
      message:
        $ref: "#/components/messages/UserSignedUp"
components:
  messages:
    UserSignedUp:
      messageId: userSignedUp
      payload:
        type: object
        properties:
          email:
            type: string
          age:
            type: integer
      examples:
        - payload:
            email: a@example.com
            age: 30
  securitySchemes:
    oauth:
      type: oauth2
      flows:
        clientCredentials:
          tokenUrl: https://example.com/token
          scopes:
            "accounts:write": Write accounts
"""


@pytest.fixture
def config_dir() -> Path:
    """設定ファイルディレクトリ。"""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def valid_document_text() -> str:
    """全ての組み込みルールを満たすAsyncAPI 2.6.0ドキュメント。"""
    return VALID_DOCUMENT


@pytest.fixture
def make_document() -> Callable[..., AsyncAPIDocument]:
    """辞書からAsyncAPIDocumentを作るファクトリ。asyncapi/infoは省略時に補う。"""

    def _make(data: dict[str, Any] | None = None, version: str = "2.6.0") -> AsyncAPIDocument:
        raw: dict[str, Any] = {"asyncapi": version, "info": {"title": "Test", "version": "1.0.0"}}
        raw.update(data or {})
        return AsyncAPIDocument(raw)

    return _make


@pytest.fixture
def make_context() -> Callable[..., RuleContext]:
    """バリデータ関数を直接呼ぶためのRuleContextファクトリ。"""

    def _make(document: AsyncAPIDocument, path: JsonPath = (), rule: Rule | None = None) -> RuleContext:
        if rule is None:
            rule = Rule(id="test-rule", description="Test rule.", given="$", then=RuleAction(function=truthy))
        return RuleContext(document=document, path=path, rule=rule)

    return _make


@pytest.fixture
def registry() -> RuleRegistry:
    """組み込みルールセットのみのレジストリ。"""
    return create_registry()


@pytest.fixture
def engine() -> RuleEngine:
    """逐次実行のRuleEngine。"""
    return RuleEngine()


@pytest.fixture
def lint_config(config_dir: Path) -> LintConfig:
    """テスト用LintConfig。"""
    return LintConfig(config_dir=config_dir)


@pytest.fixture
def lint_service(registry: RuleRegistry, engine: RuleEngine, lint_config: LintConfig) -> LintService:
    """テスト用LintService。"""
    return LintService(registry=registry, engine=engine, config=lint_config)
