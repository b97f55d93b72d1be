"""名前参照（セキュリティスキーム・サーバー）の整合性チェック。"""

from collections.abc import Iterator
from typing import Any

from asynclint.models.diagnostic import UNDEFINED_REFERENCE, UNUSED_REFERENCE, Violation
from asynclint.models.document import iter_operations
from asynclint.models.rule import RuleContext

# スコープを指定できるセキュリティスキーム種別
_SCOPED_SCHEME_TYPES = {"oauth2", "openIdConnect"}

_OAUTH2_FLOWS = ("implicit", "password", "clientCredentials", "authorizationCode")


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _oauth2_scopes(flows: Any) -> list[str]:
    scopes: list[str] = []
    for flow_name in _OAUTH2_FLOWS:
        for scope in _mapping(_mapping(_mapping(flows).get(flow_name)).get("scopes")):
            if scope not in scopes:
                scopes.append(scope)
    return scopes


def security(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """セキュリティ要求が定義済みのスキームを参照しているか検証する。

    マッチ対象はセキュリティ要求オブジェクト（{スキーム名: [スコープ, ...]}）。
    oauth2 はフロー内で宣言されたスコープのみ、openIdConnect は任意のスコープを許可し、
    それ以外の種別に空でないスコープを指定した場合は違反とする。

    Options:
        objectType: メッセージに使う参照元の種別（"Server" / "Operation"）。
    """
    if not isinstance(target, dict):
        return []

    object_type = options.get("objectType", "Object")
    schemes = _mapping(_mapping(context.tree.get("components")).get("securitySchemes"))
    results: list[Violation] = []

    for name, scopes in target.items():
        scheme_path = ("components", "securitySchemes", name)
        scheme = schemes.get(name)
        if not isinstance(scheme, dict):
            results.append(
                Violation(
                    message=f"{object_type} must not reference an undefined security scheme.",
                    path=(*context.path, name),
                    reference_path=scheme_path,
                    kind=UNDEFINED_REFERENCE,
                )
            )
            continue

        scope_list = scopes if isinstance(scopes, list) else []
        scheme_type = scheme.get("type")
        if scheme_type == "oauth2":
            available = _oauth2_scopes(scheme.get("flows"))
            for index, scope in enumerate(scope_list):
                if scope not in available:
                    results.append(
                        Violation(
                            message=(
                                "Non-existing security scope for the specified security scheme. "
                                f"Available: [{', '.join(available)}]"
                            ),
                            path=(*context.path, name, index),
                            reference_path=(*scheme_path, "flows"),
                            kind=UNDEFINED_REFERENCE,
                        )
                    )
        elif scheme_type not in _SCOPED_SCHEME_TYPES and scope_list:
            results.append(
                Violation(
                    message=(
                        f'Security scheme "{name}" of type "{scheme_type}" does not accept scopes. '
                        'Scopes are only allowed for "oauth2" and "openIdConnect".'
                    ),
                    path=(*context.path, name),
                    reference_path=scheme_path,
                    kind=UNDEFINED_REFERENCE,
                )
            )
    return results


def channel_servers(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """チャネルのserversが"servers"オブジェクトで定義されたサーバー名か検証する。"""
    if not isinstance(target, dict):
        return []
    channels = target.get("channels")
    if not isinstance(channels, dict):
        return []

    server_names = set(_mapping(target.get("servers")))
    results: list[Violation] = []
    for address, channel in channels.items():
        servers = _mapping(channel).get("servers")
        if not isinstance(servers, list):
            continue
        for index, server_name in enumerate(servers):
            if server_name not in server_names:
                results.append(
                    Violation(
                        message='Channel contains server that are not defined on the "servers" object.',
                        path=("channels", address, "servers", index),
                        reference_path=("servers", str(server_name)),
                        kind=UNDEFINED_REFERENCE,
                    )
                )
    return results


def _requirement_names(requirements: Any) -> Iterator[str]:
    if not isinstance(requirements, list):
        return
    for requirement in requirements:
        yield from _mapping(requirement)


def collect_security_references(spec: dict[str, Any]) -> set[str]:
    """ドキュメント全体で参照されているセキュリティスキーム名を集める。

    対象: servers, components.servers, 全オペレーションとそのトレイト, components.operationTraits。
    """
    used: set[str] = set()
    components = _mapping(spec.get("components"))

    for servers in (spec.get("servers"), components.get("servers")):
        for server in _mapping(servers).values():
            used.update(_requirement_names(_mapping(server).get("security")))

    for _, operation in iter_operations(spec):
        used.update(_requirement_names(operation.get("security")))
        traits = operation.get("traits")
        if isinstance(traits, list):
            for trait in traits:
                used.update(_requirement_names(_mapping(trait).get("security")))

    for trait in _mapping(components.get("operationTraits")).values():
        used.update(_requirement_names(_mapping(trait).get("security")))
    return used


def unused_security_schemes(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """宣言されているがどこからも参照されていないセキュリティスキームを検出する。

    2パスで処理する: 参照されている名前を全て集めてから、宣言済みの名前と突き合わせる。
    """
    if not isinstance(target, dict):
        return []
    schemes = _mapping(target.get("components")).get("securitySchemes")
    if not isinstance(schemes, dict):
        return []

    used = collect_security_references(target)
    return [
        Violation(
            message="Potentially unused security scheme has been detected in AsyncAPI document.",
            path=("components", "securitySchemes", name),
            kind=UNUSED_REFERENCE,
        )
        for name in schemes
        if name not in used
    ]
