"""組み込みAsyncAPI 2.xルールセットのユニットテスト。"""

from collections.abc import Callable
from typing import Any

from asynclint.formats import AAS2_ALL
from asynclint.models.diagnostic import Diagnostic
from asynclint.models.document import AsyncAPIDocument
from asynclint.rulesets.registry import RuleRegistry
from asynclint.rulesets.v2 import build_core_ruleset, build_recommended_ruleset, build_schemas_ruleset
from asynclint.validators.engine import RuleEngine
from asynclint.validators.schema import JsonSchemaInstanceValidator, create_default_parser_registry

DocumentFactory = Callable[..., AsyncAPIDocument]

PAYLOAD = {"type": "object", "properties": {"age": {"type": "integer"}}}


def _run(
    engine: RuleEngine, registry: RuleRegistry, document: AsyncAPIDocument, rule_id: str
) -> list[Diagnostic]:
    return [d for d in engine.run(document, registry.select()) if d.rule_id == rule_id]


class TestRulesetShape:
    def test_core_rule_ids(self) -> None:
        ruleset = build_core_ruleset(JsonSchemaInstanceValidator())
        assert ruleset.rule_ids == [
            "asyncapi2-server-security",
            "asyncapi2-server-variables",
            "asyncapi2-channel-no-query-nor-fragment",
            "asyncapi2-channel-parameters",
            "asyncapi2-channel-servers",
            "asyncapi2-operation-operationId-uniqueness",
            "asyncapi2-operation-security",
            "asyncapi2-message-examples",
            "asyncapi2-message-messageId-uniqueness",
            "asyncapi2-tags-uniqueness",
        ]
        assert all(rule.severity == "error" for rule in ruleset.rules)
        assert ruleset.formats == AAS2_ALL

    def test_recommended_rule_ids(self) -> None:
        ruleset = build_recommended_ruleset()
        assert len(ruleset.rules) == 8
        message_id = ruleset.get("asyncapi2-message-messageId")
        assert message_id is not None
        assert message_id.formats == AAS2_ALL[4:]
        unused = ruleset.get("asyncapi2-unused-securityScheme")
        assert unused is not None
        assert unused.severity == "info"
        assert unused.resolved is False

    def test_schemas_ruleset_uses_injected_collaborators(self) -> None:
        ruleset = build_schemas_ruleset(create_default_parser_registry(), JsonSchemaInstanceValidator())
        assert ruleset.rule_ids == ["asyncapi2-schemas", "asyncapi2-schema-default", "asyncapi2-schema-examples"]


class TestCoreRules:
    def test_server_security(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"servers": {"prod": {"url": "x", "security": [{"missing": []}]}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-server-security")
        assert [(d.path, d.message) for d in diagnostics] == [
            (("servers", "prod", "security", 0, "missing"), "Server must not reference an undefined security scheme.")
        ]
        assert diagnostics[0].reference_path == ("components", "securitySchemes", "missing")

    def test_server_variables_in_components(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"servers": {"dev": {"url": "{host}"}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-server-variables")
        assert [d.path for d in diagnostics] == [("components", "servers", "dev", "variables")]

    def test_channel_query_and_fragment(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"channels": {"users?id=1": {}, "users#top": {}, "users": {}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-channel-no-query-nor-fragment")
        assert [d.path for d in diagnostics] == [("channels", "users?id=1"), ("channels", "users#top")]

    def test_channel_parameters(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"channels": {"users/{id}/{missing}": {"parameters": {"id": {}}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-channel-parameters")
        assert len(diagnostics) == 1
        assert diagnostics[0].kind == "UndefinedVariable"

    def test_channel_servers(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"servers": {"prod": {"url": "x"}}, "channels": {"c": {"servers": ["dev"]}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-channel-servers")
        assert [d.path for d in diagnostics] == [("channels", "c", "servers", 0)]

    def test_operation_security(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"channels": {"c": {"subscribe": {"security": [{"missing": []}]}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-operation-security")
        assert [d.message for d in diagnostics] == ["Operation must not reference an undefined security scheme."]

    def test_message_examples(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        message = {"payload": PAYLOAD, "examples": [{"payload": {"age": "old"}}]}
        document = make_document({"channels": {"c": {"publish": {"message": message}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-message-examples")
        assert [d.path for d in diagnostics] == [("channels", "c", "publish", "message", "examples", 0, "payload")]

    def test_message_id_uniqueness(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document(
            {
                "channels": {"c": {"publish": {"message": {"messageId": "m"}}}},
                "components": {"messages": {"Other": {"messageId": "m"}}},
            }
        )
        diagnostics = _run(engine, registry, document, "asyncapi2-message-messageId-uniqueness")
        assert [d.path for d in diagnostics] == [("components", "messages", "Other", "messageId")]

    def test_tags_uniqueness_on_operations_and_messages(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        tags = [{"name": "a"}, {"name": "a"}]
        document = make_document({"channels": {"c": {"publish": {"tags": tags, "message": {"tags": tags}}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-tags-uniqueness")
        assert [d.path for d in diagnostics] == [
            ("channels", "c", "publish", "tags", 1, "name"),
            ("channels", "c", "publish", "message", "tags", 1, "name"),
        ]


class TestRecommendedRules:
    def test_missing_root_tags(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        diagnostics = _run(engine, registry, make_document(), "asyncapi2-tags")
        assert [(d.path, d.message, d.severity) for d in diagnostics] == [
            (("tags",), '"tags" property must be truthy', "warn")
        ]

    def test_server_url_patterns(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"servers": {"a": {"url": "example.com/{}"}, "b": {"url": "example.com/"}}})
        assert [d.path for d in _run(engine, registry, document, "asyncapi2-server-no-empty-variable")] == [
            ("servers", "a", "url")
        ]
        assert [d.path for d in _run(engine, registry, document, "asyncapi2-server-no-trailing-slash")] == [
            ("servers", "b", "url")
        ]

    def test_channel_address_patterns(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"channels": {"users/{}": {}, "users/": {}, "/": {}}})
        assert [d.path for d in _run(engine, registry, document, "asyncapi2-channel-no-empty-parameter")] == [
            ("channels", "users/{}")
        ]
        assert [d.path for d in _run(engine, registry, document, "asyncapi2-channel-no-trailing-slash")] == [
            ("channels", "users/")
        ]

    def test_operation_id_required(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"channels": {"c": {"publish": {"summary": "s"}}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-operation-operationId")
        assert [d.path for d in diagnostics] == [("components", "channels", "c", "publish", "operationId")]

    def test_message_id_required_from_2_4(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        data: dict[str, Any] = {"channels": {"c": {"publish": {"message": {"payload": {"type": "string"}}}}}}
        diagnostics = _run(engine, registry, make_document(data, version="2.4.0"), "asyncapi2-message-messageId")
        assert [d.path for d in diagnostics] == [("channels", "c", "publish", "message", "messageId")]
        assert _run(engine, registry, make_document(data, version="2.3.0"), "asyncapi2-message-messageId") == []

    def test_message_id_checks_each_one_of_item(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        message = {"oneOf": [{"messageId": "a"}, {"name": "b"}]}
        document = make_document({"channels": {"c": {"subscribe": {"message": message}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-message-messageId")
        assert [d.path for d in diagnostics] == [("channels", "c", "subscribe", "message", "oneOf", 1, "messageId")]

    def test_unused_security_scheme_is_info(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"securitySchemes": {"key": {"type": "httpApiKey"}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-unused-securityScheme")
        assert [(d.path, d.severity) for d in diagnostics] == [(("components", "securitySchemes", "key"), "info")]


class TestSchemaRules:
    def test_invalid_payload_schema(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"messages": {"M": {"payload": {"type": "strin"}}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-schemas")
        assert diagnostics
        assert all(d.path[:4] == ("components", "messages", "M", "payload") for d in diagnostics)

    def test_unknown_schema_format(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        message = {"schemaFormat": "application/vnd.apache.avro;version=1.9.0", "payload": {"type": "record"}}
        document = make_document({"components": {"messages": {"M": message}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-schemas")
        assert [d.path[-1] for d in diagnostics] == ["schemaFormat", "payload"]

    def test_default_is_reported_at_enclosing_schema(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"schemas": {"Age": {"type": "integer", "default": "x"}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-schema-default")
        assert len(diagnostics) == 1
        assert diagnostics[0].severity == "error"
        assert diagnostics[0].path == ("components", "schemas", "Age")

    def test_valid_default(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        document = make_document({"components": {"schemas": {"Age": {"type": "integer", "default": 5}}}})
        assert _run(engine, registry, document, "asyncapi2-schema-default") == []

    def test_payload_default_skipped_for_custom_schema_format(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        message = {"schemaFormat": "application/vnd.apache.avro;version=1.9.0", "payload": {"default": "x"}}
        document = make_document({"channels": {"c": {"publish": {"message": message}}}})
        assert _run(engine, registry, document, "asyncapi2-schema-default") == []

    def test_examples_in_channel_parameter_schema(
        self, engine: RuleEngine, registry: RuleRegistry, make_document: DocumentFactory
    ) -> None:
        schema = {"type": "string", "examples": ["ok", 3]}
        document = make_document({"channels": {"u/{id}": {"parameters": {"id": {"schema": schema}}}}})
        diagnostics = _run(engine, registry, document, "asyncapi2-schema-examples")
        assert [d.path for d in diagnostics] == [("channels", "u/{id}", "parameters", "id", "schema")]
        assert diagnostics[0].message.startswith('"examples[1]" property does not match its schema')
