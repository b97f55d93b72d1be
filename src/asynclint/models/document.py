"""AsyncAPIドキュメントツリーのラッパー。"""

import copy
import logging
from collections.abc import Iterator
from typing import Any

import yaml

from asynclint.models.diagnostic import JsonPath
from asynclint.models.errors import DocumentParseError

logger = logging.getLogger(__name__)

_OPERATION_KINDS = ("publish", "subscribe")


class _JsonCompatibleLoader(yaml.SafeLoader):
    """日付・時刻を文字列のまま読み込むSafeLoader（JSONの値域に揃える）。"""


_JsonCompatibleLoader.yaml_implicit_resolvers = {
    first: [resolver for resolver in resolvers if resolver[0] != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class AsyncAPIDocument:
    """パース済みAsyncAPIドキュメント。

    参照解決前のツリー(raw)と、ローカル$refを解決したツリー(data)の両方を保持する。
    解決後のツリーでは同じ参照先を指すノードが同一オブジェクトになる。
    インライン化すると循環になる再帰参照だけは$refオブジェクトのまま残る。
    検証中はどちらのツリーも変更しない。
    """

    def __init__(self, raw: dict[str, Any], source: str | None = None) -> None:
        self._raw = raw
        self._source = source
        self._data = _resolve_local_refs(raw, source)

    @classmethod
    def from_text(cls, text: str, source: str | None = None) -> "AsyncAPIDocument":
        """YAMLまたはJSON文字列からドキュメントを生成する。

        Raises:
            DocumentParseError: パースできない、またはトップレベルがオブジェクトでない場合。
        """
        try:
            data = yaml.load(text, Loader=_JsonCompatibleLoader)
        except yaml.YAMLError as e:
            raise DocumentParseError(f"Invalid YAML/JSON: {e}", source) from e
        if not isinstance(data, dict):
            raise DocumentParseError("Top-level value must be an object", source)
        return cls(data, source=source)

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def version(self) -> str:
        value = self._raw.get("asyncapi")
        return "" if value is None else str(value)

    def tree(self, resolved: bool = True) -> dict[str, Any]:
        return self._data if resolved else self._raw


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def iter_operations(spec: dict[str, Any]) -> Iterator[tuple[JsonPath, dict[str, Any]]]:
    """チャネルとcomponents.channels配下の全オペレーションを列挙する。

    参照解決により同一オブジェクトとなったオペレーションは最初の1回だけ返す。
    """
    seen: set[int] = set()
    sources: list[tuple[JsonPath, Any]] = [
        (("channels",), spec.get("channels")),
        (("components", "channels"), _mapping(spec.get("components")).get("channels")),
    ]
    for prefix, channels in sources:
        for address, channel in _mapping(channels).items():
            if not isinstance(channel, dict):
                continue
            for kind in _OPERATION_KINDS:
                operation = channel.get(kind)
                if not isinstance(operation, dict) or id(operation) in seen:
                    continue
                seen.add(id(operation))
                yield (*prefix, address, kind), operation


def iter_messages(spec: dict[str, Any]) -> Iterator[tuple[JsonPath, dict[str, Any]]]:
    """オペレーション配下(単体/oneOf)とcomponents.messagesの全メッセージを列挙する。"""
    seen: set[int] = set()

    def _emit(path: JsonPath, message: Any) -> Iterator[tuple[JsonPath, dict[str, Any]]]:
        if not isinstance(message, dict) or id(message) in seen:
            return
        seen.add(id(message))
        yield path, message

    for op_path, operation in iter_operations(spec):
        message = operation.get("message")
        if not isinstance(message, dict):
            continue
        one_of = message.get("oneOf")
        if isinstance(one_of, list):
            for index, item in enumerate(one_of):
                yield from _emit((*op_path, "message", "oneOf", index), item)
        else:
            yield from _emit((*op_path, "message"), message)

    for name, message in _mapping(_mapping(spec.get("components")).get("messages")).items():
        yield from _emit(("components", "messages", name), message)


def _is_local_ref(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    ref = value.get("$ref")
    return isinstance(ref, str) and (ref == "#" or ref.startswith("#/"))


def _lookup_pointer(root: Any, ref: str) -> tuple[bool, Any]:
    node = root
    for token in ref[2:].split("/") if ref != "#" else []:
        token = token.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and token in node:
            node = node[token]
        elif isinstance(node, list) and token.isdigit() and int(token) < len(node):
            node = node[int(token)]
        else:
            return False, None
    return True, node


def _reaches(start: Any, goal: Any) -> bool:
    """startからコンテナを辿ってgoalに到達できるか判定する。"""
    seen: set[int] = set()
    stack = [start]
    while stack:
        node = stack.pop()
        if node is goal:
            return True
        if id(node) in seen:
            continue
        seen.add(id(node))
        if isinstance(node, dict):
            stack.extend(value for value in node.values() if isinstance(value, (dict, list)))
        elif isinstance(node, list):
            stack.extend(value for value in node if isinstance(value, (dict, list)))
    return False


def _ref_sites(root: dict[str, Any]) -> list[tuple[Any, str | int, dict[str, Any]]]:
    """ローカル$refオブジェクトの(親, キー, $refオブジェクト)を文書順に集める。"""
    sites: list[tuple[Any, str | int, dict[str, Any]]] = []
    seen: set[int] = set()

    def _collect(node: Any) -> None:
        if id(node) in seen:
            return
        seen.add(id(node))
        entries = node.items() if isinstance(node, dict) else enumerate(node)
        for key, value in entries:
            if _is_local_ref(value):
                sites.append((node, key, value))
            elif isinstance(value, (dict, list)):
                _collect(value)

    _collect(root)
    return sites


def _resolve_local_refs(raw: dict[str, Any], source: str | None) -> dict[str, Any]:
    """ローカル参照(#/...)を解決したツリーを返す。rawは変更しない。

    参照先から参照元のコンテナへ到達できる場合（再帰スキーマなど）は、その位置の$refオブジェクトを残す。
    そのため解決後のツリーは共有ノードを含むが循環はしない。
    """
    root = copy.deepcopy(raw)

    def _target(value: Any) -> Any:
        # $ref -> $ref の連鎖を辿る。循環した場合は元の参照オブジェクトのまま
        visited: set[int] = set()
        while _is_local_ref(value):
            if id(value) in visited:
                return value
            visited.add(id(value))
            found, target = _lookup_pointer(root, value["$ref"])
            if not found:
                logger.warning("Unresolvable reference %s in %s", value["$ref"], source or "<document>")
                return value
            value = target
        return value

    for parent, key, ref in _ref_sites(root):
        target = _target(ref)
        if _is_local_ref(target):
            continue
        if _reaches(target, parent):
            logger.debug("Keeping recursive reference %s in %s", ref["$ref"], source or "<document>")
            continue
        parent[key] = target
    return root
