"""AsyncAPI 2.x 向けの組み込みルールセット。"""

from functools import partial

from asynclint.formats import AAS2_ALL
from asynclint.functions.core import pattern, truthy
from asynclint.functions.messages import check_id, message_examples
from asynclint.functions.references import channel_servers, security, unused_security_schemes
from asynclint.functions.schemas import schema_parser, schema_validation
from asynclint.functions.uniqueness import message_id_uniqueness, operation_id_uniqueness, unique_tag_names
from asynclint.functions.variables import channel_parameters, server_variables
from asynclint.models.rule import InstanceValidator, Rule, RuleAction, Ruleset
from asynclint.validators.schema import SchemaParserRegistry

CORE = "core"
RECOMMENDED = "recommended"
SCHEMAS = "schemas"

_OPERATIONS = "[publish,subscribe]"

# メッセージ（単体 / oneOf / components）
_MESSAGES = [
    f"$.channels.*.{_OPERATIONS}.message",
    f"$.channels.*.{_OPERATIONS}.message.oneOf.*",
    f"$.components.channels.*.{_OPERATIONS}.message",
    f"$.components.channels.*.{_OPERATIONS}.message.oneOf.*",
    "$.components.messages.*",
]

_MESSAGE_TRAITS = [
    f"$.channels.*.{_OPERATIONS}.message.traits.*",
    f"$.channels.*.{_OPERATIONS}.message.oneOf.*.traits.*",
    f"$.components.channels.*.{_OPERATIONS}.message.traits.*",
    f"$.components.channels.*.{_OPERATIONS}.message.oneOf.*.traits.*",
    "$.components.messages.*.traits.*",
    "$.components.messageTraits.*",
]

_TAGS = [
    # root
    "$.tags",
    # operations
    f"$.channels.*.{_OPERATIONS}.tags",
    f"$.components.channels.*.{_OPERATIONS}.tags",
    # operation traits
    f"$.channels.*.{_OPERATIONS}.traits.*.tags",
    f"$.components.channels.*.{_OPERATIONS}.traits.*.tags",
    "$.components.operationTraits.*.tags",
    # messages
    *(f"{selector}.tags" for selector in _MESSAGES),
    # message traits
    *(f"{selector}.tags" for selector in _MESSAGE_TRAITS),
]


def _schema_keyword_selectors(keyword: str) -> list[str]:
    """default/examplesを持つスキーマを、キーワードの親（^）として選択するセレクタ。"""
    raw_message = "[?(@property === 'message' && @.schemaFormat === void 0)]"
    return [
        f"$.channels[*]{_OPERATIONS}{raw_message}.payload.{keyword}^",
        f"$.channels.*.parameters.*.schema.{keyword}^",
        f"$.components.channels[*]{_OPERATIONS}{raw_message}.payload.{keyword}^",
        f"$.components.channels.*.parameters.*.schema.{keyword}^",
        f"$.components.schemas.*.{keyword}^",
        f"$.components.parameters.*.schema.{keyword}^",
        f"$.components.messages[?(@.schemaFormat === void 0)].payload.{keyword}^",
        f"$.components.messageTraits[?(@.schemaFormat === void 0)].payload.{keyword}^",
    ]


def build_core_ruleset(instance_validator: InstanceValidator) -> Ruleset:
    """AsyncAPI 2.x のコアルールセットを構築する。

    Args:
        instance_validator: メッセージexamplesの検証に使うスキーマ適合チェッカー。
    """
    return Ruleset(
        name=CORE,
        description="Core AsyncAPI 2.x.x ruleset.",
        formats=AAS2_ALL,
        rules=(
            # Server Object
            Rule(
                id="asyncapi2-server-security",
                description="Server have to reference a defined security schemes.",
                message="{{error}}",
                severity="error",
                given="$.servers.*.security.*",
                then=RuleAction(function=security, options={"objectType": "Server"}),
            ),
            Rule(
                id="asyncapi2-server-variables",
                description="Server variables must be defined and there must be no redundant variables.",
                message="{{error}}",
                severity="error",
                given=["$.servers.*", "$.components.servers.*"],
                then=RuleAction(function=server_variables),
            ),
            Rule(
                id="asyncapi2-channel-no-query-nor-fragment",
                description='Channel address should not include query ("?") or fragment ("#") delimiter.',
                severity="error",
                given="$.channels",
                then=RuleAction(function=pattern, field="@key", options={"notMatch": r"[\?#]"}),
            ),
            # Channel Object
            Rule(
                id="asyncapi2-channel-parameters",
                description="Channel parameters must be defined and there must be no redundant parameters.",
                message="{{error}}",
                severity="error",
                given="$.channels.*",
                then=RuleAction(function=channel_parameters),
            ),
            Rule(
                id="asyncapi2-channel-servers",
                description='Channel servers must be defined in the "servers" object.',
                message="{{error}}",
                severity="error",
                given="$",
                then=RuleAction(function=channel_servers),
            ),
            # Operation Object
            Rule(
                id="asyncapi2-operation-operationId-uniqueness",
                description='"operationId" must be unique across all the operations.',
                severity="error",
                given="$",
                then=RuleAction(function=operation_id_uniqueness),
            ),
            Rule(
                id="asyncapi2-operation-security",
                description="Operation have to reference a defined security schemes.",
                message="{{error}}",
                severity="error",
                given=f"$.channels[*]{_OPERATIONS}.security.*",
                then=RuleAction(function=security, options={"objectType": "Operation"}),
            ),
            # Message Object
            Rule(
                id="asyncapi2-message-examples",
                description='Examples of message object should follow by "payload" and "headers" schemas.',
                message="{{error}}",
                severity="error",
                given=[*_MESSAGES, *_MESSAGE_TRAITS],
                then=RuleAction(function=partial(message_examples, instance_validator=instance_validator)),
            ),
            Rule(
                id="asyncapi2-message-messageId-uniqueness",
                description='"messageId" must be unique across all the messages.',
                severity="error",
                given="$",
                then=RuleAction(function=message_id_uniqueness),
            ),
            # Misc
            Rule(
                id="asyncapi2-tags-uniqueness",
                description="Each tag must have a unique name.",
                message="{{error}}",
                severity="error",
                given=_TAGS,
                then=RuleAction(function=unique_tag_names),
            ),
        ),
    )


def build_schemas_ruleset(parsers: SchemaParserRegistry, instance_validator: InstanceValidator) -> Ruleset:
    """スキーマ検証ルールセットを構築する。

    Args:
        parsers: schemaFormatごとのスキーマパーサ。
        instance_validator: default/examplesの適合チェックに使うスキーマ適合チェッカー。
    """
    return Ruleset(
        name=SCHEMAS,
        description="Schemas AsyncAPI 2.x.x ruleset.",
        formats=AAS2_ALL,
        rules=(
            Rule(
                id="asyncapi2-schemas",
                description="Custom schema must be correctly formatted from the point of view of the used format.",
                message="{{error}}",
                severity="error",
                given=_MESSAGES,
                then=RuleAction(function=partial(schema_parser, parsers=parsers)),
            ),
            Rule(
                id="asyncapi2-schema-default",
                description="Default must be valid against its defined schema.",
                message="{{error}}",
                severity="error",
                given=_schema_keyword_selectors("default"),
                then=RuleAction(
                    function=partial(schema_validation, instance_validator=instance_validator),
                    options={"type": "default"},
                ),
            ),
            Rule(
                id="asyncapi2-schema-examples",
                description="Examples must be valid against their defined schema.",
                message="{{error}}",
                severity="error",
                given=_schema_keyword_selectors("examples"),
                then=RuleAction(
                    function=partial(schema_validation, instance_validator=instance_validator),
                    options={"type": "examples"},
                ),
            ),
        ),
    )


def build_recommended_ruleset() -> Ruleset:
    """AsyncAPI 2.x の推奨ルールセットを構築する。"""
    return Ruleset(
        name=RECOMMENDED,
        description="Recommended AsyncAPI 2.x.x ruleset.",
        formats=AAS2_ALL,
        rules=(
            # Root Object
            Rule(
                id="asyncapi2-tags",
                description='AsyncAPI object should have non-empty "tags" array.',
                given="$",
                then=RuleAction(function=truthy, field="tags"),
            ),
            # Server Object
            Rule(
                id="asyncapi2-server-no-empty-variable",
                description="Server URL should not have empty variable substitution pattern.",
                given="$.servers[*].url",
                then=RuleAction(function=pattern, options={"notMatch": "{}"}),
            ),
            Rule(
                id="asyncapi2-server-no-trailing-slash",
                description="Server URL should not end with slash.",
                given="$.servers[*].url",
                then=RuleAction(function=pattern, options={"notMatch": "/$"}),
            ),
            # Channel Object
            Rule(
                id="asyncapi2-channel-no-empty-parameter",
                description="Channel address should not have empty parameter substitution pattern.",
                given="$.channels",
                then=RuleAction(function=pattern, field="@key", options={"notMatch": "{}"}),
            ),
            Rule(
                id="asyncapi2-channel-no-trailing-slash",
                description="Channel address should not end with slash.",
                given="$.channels",
                then=RuleAction(function=pattern, field="@key", options={"notMatch": r".+\/$"}),
            ),
            # Operation Object
            Rule(
                id="asyncapi2-operation-operationId",
                description='Operation should have an "operationId" field defined.',
                given=[f"$.channels[*]{_OPERATIONS}", f"$.components.channels[*]{_OPERATIONS}"],
                then=RuleAction(function=check_id, options={"idField": "operationId"}),
            ),
            # Message Object
            Rule(
                id="asyncapi2-message-messageId",
                description='Message should have a "messageId" field defined.',
                formats=AAS2_ALL[4:],
                given=[
                    f'$.channels.*.{_OPERATIONS}[?(@property === "message" && @.oneOf == void 0)]',
                    f"$.channels.*.{_OPERATIONS}.message.oneOf.*",
                    f'$.components.channels.*.{_OPERATIONS}[?(@property === "message" && @.oneOf == void 0)]',
                    f"$.components.channels.*.{_OPERATIONS}.message.oneOf.*",
                    "$.components.messages.*",
                ],
                then=RuleAction(function=check_id, options={"idField": "messageId"}),
            ),
            # Components Object
            Rule(
                id="asyncapi2-unused-securityScheme",
                description="Potentially unused security scheme has been detected in AsyncAPI document.",
                severity="info",
                resolved=False,
                given="$",
                then=RuleAction(function=unused_security_schemes),
            ),
        ),
    )
