"""サーバー変数・チャネルパラメータの突き合わせのユニットテスト。"""

from collections.abc import Callable

from asynclint.functions.variables import channel_parameters, parse_template_variables, server_variables
from asynclint.models.diagnostic import REDUNDANT_VARIABLE, UNDEFINED_VARIABLE
from asynclint.models.document import AsyncAPIDocument
from asynclint.models.rule import RuleContext

ContextFactory = Callable[..., RuleContext]
DocumentFactory = Callable[..., AsyncAPIDocument]


class TestParseTemplateVariables:
    def test_order_is_kept_and_duplicates_removed(self) -> None:
        assert parse_template_variables("{b}.{a}.{b}") == ["b", "a"]

    def test_empty_braces_are_ignored(self) -> None:
        assert parse_template_variables("/users/{}/{id}") == ["id"]

    def test_non_string(self) -> None:
        assert parse_template_variables(None) == []


class TestChannelParameters:
    def test_redundant_parameter(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        path = ("channels", "/users/{id}")
        channel = {"parameters": {"id": {"schema": {"type": "string"}}, "extra": {}}}
        violations = channel_parameters(channel, {}, make_context(make_document(), path))
        assert len(violations) == 1
        assert violations[0].kind == REDUNDANT_VARIABLE
        assert violations[0].path == ("channels", "/users/{id}", "parameters", "extra")
        assert violations[0].message == 'Channel\'s "parameters" object has redundant defined "extra" parameter.'

    def test_undefined_parameter(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        path = ("channels", "/users/{id}/{missing}")
        channel = {"parameters": {"id": {}}}
        violations = channel_parameters(channel, {}, make_context(make_document(), path))
        assert len(violations) == 1
        assert violations[0].kind == UNDEFINED_VARIABLE
        assert violations[0].path == ("channels", "/users/{id}/{missing}", "parameters")
        assert violations[0].message == (
            'Not all channel\'s parameters are described with "parameters" object. Missed: missing.'
        )

    def test_parameter_without_schema_is_valid(
        self, make_document: DocumentFactory, make_context: ContextFactory
    ) -> None:
        path = ("channels", "/users/{id}")
        assert channel_parameters({"parameters": {"id": {}}}, {}, make_context(make_document(), path)) == []

    def test_no_parameters_object(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        path = ("channels", "/users/{a}/{b}")
        violations = channel_parameters({}, {}, make_context(make_document(), path))
        assert [v.message[-3:] for v in violations] == [" a.", " b."]


class TestServerVariables:
    def test_both_directions_are_reported(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        path = ("servers", "prod")
        server = {"url": "{host}:{port}", "variables": {"host": {}, "stage": {}}}
        violations = server_variables(server, {}, make_context(make_document(), path))
        assert [(v.kind, v.path) for v in violations] == [
            (UNDEFINED_VARIABLE, ("servers", "prod", "variables")),
            (REDUNDANT_VARIABLE, ("servers", "prod", "variables", "stage")),
        ]
        assert violations[0].message == 'Not all server\'s variables are described with "variables" object. Missed: port.'

    def test_enum_default_and_examples(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        path = ("servers", "prod")
        server = {
            "url": "example.com:{port}",
            "variables": {"port": {"enum": ["80", "443"], "default": "8080", "examples": ["80", "21"]}},
        }
        violations = server_variables(server, {}, make_context(make_document(), path))
        assert [v.path for v in violations] == [
            ("servers", "prod", "variables", "port", "default"),
            ("servers", "prod", "variables", "port", "examples", 1),
        ]

    def test_matching_variables_pass(self, make_document: DocumentFactory, make_context: ContextFactory) -> None:
        server = {"url": "{host}", "variables": {"host": {"default": "localhost"}}}
        assert server_variables(server, {}, make_context(make_document(), ("servers", "dev"))) == []
