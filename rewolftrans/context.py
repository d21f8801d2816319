"""Structural addresses of translatable strings.

A path serializes as ``<category>:<segment>/<segment>/...`` where a segment
is ``[<index>]<name>`` when it carries a display name and a bare ``<index>``
otherwise. Only the category and the indices identify a path; names are
display hints that travel with it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Tuple, Union

from .errors import ContextError
from .escaping import SEPARATOR, escape_string, split_escaped, unescape_string

INDEX_ESCAPE = SEPARATOR + "[]"
NAME_ESCAPE = SEPARATOR

IndexLike = Union[str, int]


@dataclass(frozen=True)
class ContextPathPart:
    """One path segment: a stable index plus an optional display name."""

    index: str
    name: Optional[str] = field(default=None, compare=False)

    def __init__(self, index: IndexLike, name: Optional[str] = None) -> None:
        if str(index) == "":
            raise ContextError("Path segment index must not be empty")
        object.__setattr__(self, "index", str(index))
        object.__setattr__(self, "name", name)

    @property
    def num_index(self) -> int:
        try:
            return int(self.index)
        except ValueError:
            raise ContextError(f"Path segment {self.index!r} is not numeric") from None

    def __str__(self) -> str:
        index = escape_string(self.index, INDEX_ESCAPE)
        if self.name is None:
            return index
        return f"[{index}]{escape_string(self.name, NAME_ESCAPE)}"

    @classmethod
    def parse(cls, raw: str) -> "ContextPathPart":
        """Parse one still-escaped segment."""

        if not raw.startswith("["):
            return cls(unescape_string(raw, INDEX_ESCAPE))
        index = 1
        while index < len(raw):
            char = raw[index]
            if char == "\\":
                index += 2
                continue
            if char == "]":
                return cls(
                    unescape_string(raw[1:index], INDEX_ESCAPE),
                    unescape_string(raw[index + 1:], NAME_ESCAPE),
                )
            index += 1
        raise ContextError(f"Unterminated index in path segment {raw!r}")


@dataclass(frozen=True)
class ContextPath:
    category: str
    parts: Tuple[ContextPathPart, ...] = ()

    def __init__(self, category: str, parts: Iterable[ContextPathPart] = ()) -> None:
        if not category or ":" in category:
            raise ContextError(f"Invalid context category {category!r}")
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "parts", tuple(parts))

    def __len__(self) -> int:
        return len(self.parts)

    def __iter__(self) -> Iterator[ContextPathPart]:
        return iter(self.parts)

    def __str__(self) -> str:
        return f"{self.category}:{SEPARATOR.join(str(part) for part in self.parts)}"

    @property
    def key(self) -> str:
        return str(self)

    @property
    def indices(self) -> Tuple[str, ...]:
        return tuple(part.index for part in self.parts)

    def child(self, index: IndexLike, name: Optional[str] = None) -> "ContextPath":
        return ContextPath(self.category, self.parts + (ContextPathPart(index, name),))

    def names_differ(self, other: "ContextPath") -> bool:
        return any(a.name != b.name for a, b in zip(self.parts, other.parts))

    @classmethod
    def parse(cls, text: str) -> "ContextPath":
        category, colon, rest = text.partition(":")
        if not colon:
            raise ContextError(f"Invalid context string: {text}")
        if not rest:
            return cls(category)
        return cls(category, (ContextPathPart.parse(raw) for raw in split_escaped(rest)))
