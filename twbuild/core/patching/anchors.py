from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class SplitFound:
    prefix: str
    match: str
    suffix: str


@dataclass(frozen=True)
class SplitNotFound:
    anchor: str


@dataclass(frozen=True)
class SplitAmbiguous:
    anchor: str
    occurrences: int


SplitResult = Union[SplitFound, SplitNotFound, SplitAmbiguous]


def split_once(content: str, anchor: str) -> SplitResult:
    """Split ``content`` around the single occurrence of the literal ``anchor``.

    Plain substring search; no regex. More than one occurrence is reported as
    ambiguous rather than picking one.
    """
    if not anchor:
        raise ValueError("anchor must be non-empty")

    first = content.find(anchor)
    if first < 0:
        return SplitNotFound(anchor=anchor)

    second = content.find(anchor, first + len(anchor))
    if second >= 0:
        return SplitAmbiguous(anchor=anchor, occurrences=content.count(anchor))

    end = first + len(anchor)
    return SplitFound(prefix=content[:first], match=anchor, suffix=content[end:])


class InsertMode(str, Enum):
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class PatchAnchor:
    text: str
    mode: InsertMode = InsertMode.AFTER
    trailing_delimiter: bool = False
    spacer: str = ""
    line_break: bool = True

    def _tail(self) -> str:
        return ("," if self.trailing_delimiter else "") + ("\n" if self.line_break else "")

    def inserted_text(self, fragment: str) -> str:
        """The text this anchor adds for ``fragment``, without the anchor itself."""
        if self.mode == InsertMode.BEFORE:
            return fragment + self._tail()
        return self.spacer + fragment + self._tail()

    def block(self, fragment: str) -> str:
        if self.mode == InsertMode.BEFORE:
            return self.inserted_text(fragment) + self.text + self.spacer
        return self.text + self.inserted_text(fragment)

    def is_applied(self, content: str, fragment: str) -> bool:
        # other plugins may have been inserted at the same anchor since
        return self.inserted_text(fragment) in content

    def apply(self, content: str, fragment: str) -> Union[str, SplitNotFound, SplitAmbiguous]:
        """Insert ``fragment`` at the anchor; returns new content or the failed split."""
        split = split_once(content, self.text)
        if not isinstance(split, SplitFound):
            return split
        return split.prefix + self.block(fragment) + split.suffix
