"""スキーマ関連のバリデータ関数のユニットテスト。"""

from collections.abc import Callable
from typing import Any

from asynclint.functions.schemas import describe_schema_violation, schema_parser, schema_validation
from asynclint.models.diagnostic import SCHEMA_MISMATCH, SchemaViolation
from asynclint.models.document import AsyncAPIDocument
from asynclint.models.rule import RuleContext
from asynclint.validators.schema import JsonSchemaInstanceValidator, create_default_parser_registry

ContextFactory = Callable[..., RuleContext]
DocumentFactory = Callable[..., AsyncAPIDocument]


class _CountingValidator:
    """呼び出し回数を記録するスキーマ適合チェッカー。"""

    def __init__(self) -> None:
        self.calls = 0
        self._inner = JsonSchemaInstanceValidator()

    def __call__(self, schema: Any, instance: Any, root: Any = None) -> list[SchemaViolation]:
        self.calls += 1
        return self._inner(schema, instance, root)


class TestDescribeSchemaViolation:
    def test_nested_instance_path(self) -> None:
        violation = SchemaViolation(keyword_path="#/properties/a/type", instance_path=("a", 0), message="bad")
        assert describe_schema_violation("payload", violation) == (
            '"payload.a[0]" property does not match its schema at #/properties/a/type: bad'
        )


class TestSchemaValidation:
    def test_invalid_default(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "schemas", "Age"))
        violations = schema_validation(
            {"type": "integer", "default": "x"},
            {"type": "default"},
            context,
            instance_validator=JsonSchemaInstanceValidator(),
        )
        assert len(violations) == 1
        assert violations[0].path is None
        assert violations[0].kind == SCHEMA_MISMATCH
        assert violations[0].message.startswith('"default" property does not match its schema at #/type:')

    def test_valid_default(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "schemas", "Age"))
        violations = schema_validation(
            {"type": "integer", "default": 5},
            {"type": "default"},
            context,
            instance_validator=JsonSchemaInstanceValidator(),
        )
        assert violations == []

    def test_each_example_is_checked(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "schemas", "Name"))
        violations = schema_validation(
            {"type": "string", "examples": ["ok", 1, "fine", False]},
            {"type": "examples"},
            context,
            instance_validator=JsonSchemaInstanceValidator(),
        )
        assert [v.message.split(" property")[0] for v in violations] == ['"examples[1]"', '"examples[3]"']

    def test_repeated_checks_are_memoised(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        validator = _CountingValidator()
        context = make_context(make_document(), ("components", "schemas", "Name"))
        schema = {"type": "string", "examples": ["a", "a", "b"]}
        schema_validation(schema, {"type": "examples"}, context, instance_validator=validator)
        schema_validation(schema, {"type": "examples"}, context, instance_validator=validator)
        assert validator.calls == 2


class TestSchemaParser:
    def test_valid_payload(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "messages", "M"))
        message = {"payload": {"type": "object", "properties": {"a": {"type": "string"}}}}
        assert schema_parser(message, {}, context, parsers=create_default_parser_registry()) == []

    def test_invalid_payload_is_reported_under_payload(
        self, make_document: DocumentFactory, make_context: ContextFactory
    ) -> None:
        context = make_context(make_document(), ("components", "messages", "M"))
        message = {"payload": {"type": "object", "properties": {"a": {"type": 5}}}}
        violations = schema_parser(message, {}, context, parsers=create_default_parser_registry())
        assert len(violations) >= 1
        assert all(v.path[:4] == ("components", "messages", "M", "payload") for v in violations)  # type: ignore[index]

    def test_unknown_schema_format(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "messages", "M"))
        message = {"schemaFormat": "application/vnd.apache.avro;version=1.9.0", "payload": {"type": "record"}}
        violations = schema_parser(message, {}, context, parsers=create_default_parser_registry())
        assert [v.path for v in violations] == [
            ("components", "messages", "M", "schemaFormat"),
            ("components", "messages", "M", "payload"),
        ]

    def test_message_without_payload(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        context = make_context(make_document(), ("components", "messages", "M"))
        assert schema_parser({"name": "M"}, {}, context, parsers=create_default_parser_registry()) == []
