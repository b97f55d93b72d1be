"""JSON Schemaによるスキーマ検証コラボレータ。

- JsonSchemaInstanceValidator: 値がスキーマに適合するかを検証する（default/examples用）
- SchemaParserRegistry: schemaFormatごとのスキーマパーサを保持する（payloadスキーマ自体の検証用）
"""

import logging
import re
from typing import Any, Protocol

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from referencing import Registry
from referencing.exceptions import Unresolvable

from asynclint.models.diagnostic import JsonPath, SchemaViolation, Violation

logger = logging.getLogger(__name__)

# AsyncAPI 2.x のスキーマオブジェクトは JSON Schema Draft 07 の上位集合
_ASYNCAPI_SCHEMA_FORMAT = re.compile(r"^application/vnd\.aai\.asyncapi(?:\+json|\+yaml)?;version=2\.[0-6](?:\.\d+)?$")
_JSON_SCHEMA_FORMAT = re.compile(r"^application/schema(?:\+json|\+yaml)?;version=draft-07$")


def default_schema_format(asyncapi_version: str) -> str:
    """schemaFormat省略時に使われるフォーマット文字列。"""
    return f"application/vnd.aai.asyncapi;version={asyncapi_version}"


def is_default_schema_format(schema_format: Any) -> bool:
    """schemaFormatが未指定、またはAsyncAPI/JSON Schemaのフォーマットか判定する。"""
    if schema_format is None:
        return True
    if not isinstance(schema_format, str):
        return False
    return bool(_ASYNCAPI_SCHEMA_FORMAT.match(schema_format) or _JSON_SCHEMA_FORMAT.match(schema_format))


def _pointer(parts: Any) -> str:
    return "#/" + "/".join(str(part) for part in parts) if parts else "#"


class JsonSchemaInstanceValidator:
    """Draft 07 で値をスキーマに照らして検証する。

    スキーマ内に残ったローカル$ref（再帰スキーマ）はドキュメントのルートを基準に遅延解決する。
    スキーマ自体が不正な場合や参照を解決できない場合は空のリストを返す
    （スキーマの不正はasyncapi2-schemasルールが報告する）。
    """

    def __init__(self) -> None:
        # リモート参照は取得しない
        self._registry: Registry = Registry()

    def __call__(self, schema: Any, instance: Any, root: Any = None) -> list[SchemaViolation]:
        if not isinstance(schema, (dict, bool)):
            return []
        try:
            Draft7Validator.check_schema(schema)
        except SchemaError as e:
            logger.debug("Skipping conformance check against invalid schema: %s", e.message)
            return []

        if isinstance(root, dict):
            validator = Draft7Validator(root, registry=self._registry).evolve(schema=schema)
        else:
            validator = Draft7Validator(schema, registry=self._registry)
        try:
            errors = list(validator.iter_errors(instance))
        except Unresolvable as e:
            logger.debug("Skipping conformance check with unresolvable reference: %s", e)
            return []
        return [
            SchemaViolation(
                keyword_path=_pointer(error.absolute_schema_path),
                instance_path=tuple(error.absolute_path),
                message=error.message,
            )
            for error in errors
        ]


class SchemaParser(Protocol):
    """schemaFormatに応じてpayloadスキーマを検証するパーサ。"""

    def supports(self, schema_format: str) -> bool: ...

    def validate(self, schema: Any, path: JsonPath, schema_format: str) -> list[Violation]: ...


class AsyncAPISchemaParser:
    """AsyncAPIスキーマ/JSON Schema Draft 07 のpayloadを検証する既定パーサ。"""

    def __init__(self) -> None:
        self._meta_validator = Draft7Validator(Draft7Validator.META_SCHEMA)

    def supports(self, schema_format: str) -> bool:
        return is_default_schema_format(schema_format)

    def validate(self, schema: Any, path: JsonPath, schema_format: str) -> list[Violation]:
        return [
            Violation(
                message=f"{error.message} (at {_pointer(error.absolute_schema_path)} of the meta-schema)",
                path=(*path, *error.absolute_path),
            )
            for error in self._meta_validator.iter_errors(schema)
        ]


class SchemaParserRegistry:
    """登録順にschemaFormatを解決するパーサのレジストリ。"""

    def __init__(self, parsers: list[SchemaParser] | None = None) -> None:
        self._parsers: list[SchemaParser] = list(parsers or [])

    def register(self, parser: SchemaParser) -> None:
        self._parsers.append(parser)

    def get(self, schema_format: str) -> SchemaParser | None:
        return next((parser for parser in self._parsers if parser.supports(schema_format)), None)


def create_default_parser_registry() -> SchemaParserRegistry:
    """AsyncAPI/JSON Schemaパーサのみを登録したレジストリを作成する。"""
    return SchemaParserRegistry([AsyncAPISchemaParser()])
