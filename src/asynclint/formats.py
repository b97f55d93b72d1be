"""AsyncAPIドキュメントのフォーマット（バージョン）判定。"""

import re
from dataclasses import dataclass, field
from typing import Protocol


class VersionedDocument(Protocol):
    @property
    def version(self) -> str: ...


@dataclass(frozen=True)
class Format:
    """AsyncAPIのマイナーバージョン単位のフォーマット。

    パッチバージョンは問わない（"2.4" は 2.4, 2.4.0, 2.4.1 にマッチする）。
    """

    name: str
    major: int
    minor: int
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pattern", re.compile(rf"^{self.major}\.{self.minor}(?:\.\d+)?$"))

    def matches(self, version: str) -> bool:
        return bool(self._pattern.match(version.strip()))

    def __call__(self, document: VersionedDocument) -> bool:
        return self.matches(document.version)


aas2_0 = Format("aas2_0", 2, 0)
aas2_1 = Format("aas2_1", 2, 1)
aas2_2 = Format("aas2_2", 2, 2)
aas2_3 = Format("aas2_3", 2, 3)
aas2_4 = Format("aas2_4", 2, 4)
aas2_5 = Format("aas2_5", 2, 5)
aas2_6 = Format("aas2_6", 2, 6)

AAS2_ALL: tuple[Format, ...] = (aas2_0, aas2_1, aas2_2, aas2_3, aas2_4, aas2_5, aas2_6)

FORMATS: dict[str, Format] = {fmt.name: fmt for fmt in AAS2_ALL}


def document_matches_format(document: VersionedDocument, formats: tuple[Format, ...] | None) -> bool:
    """ドキュメントがいずれかのフォーマットに該当するか判定する。

    formatsが空またはNoneの場合は常にTrue。
    """
    if not formats:
        return True
    return any(fmt(document) for fmt in formats)
