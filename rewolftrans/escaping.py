"""Escaping rules for context paths and patch-file text blocks."""

from __future__ import annotations

import re
from typing import Iterable, List

SEPARATOR = "/"
MULTILINE_ESCAPE = ">#"

_CONTROL_ESCAPES = {"\n": "n", "\0": "0", "\r": "r", "\t": "t"}
_CONTROL_UNESCAPES = {value: key for key, value in _CONTROL_ESCAPES.items()}

_BLANK_RE = re.compile(r"[\n\t ]*")
_PATH_UNSAFE_RE = re.compile(r'[\0/\\?%*:|"<>]')


def escape_string(
    text: str,
    escape_chars: str = SEPARATOR,
    escape_newline: bool = True,
) -> str:
    """Backslash-escape control characters, backslashes and ``escape_chars``."""

    out: List[str] = []
    for char in text:
        if char == "\n" and not escape_newline:
            out.append(char)
        elif char in _CONTROL_ESCAPES:
            out.append("\\" + _CONTROL_ESCAPES[char])
        elif char == "\\" or char in escape_chars:
            out.append("\\" + char)
        else:
            out.append(char)
    return "".join(out)


def unescape_string(
    text: str,
    escape_chars: str = SEPARATOR,
    *,
    space_escape: bool = False,
) -> str:
    """Reverse :func:`escape_string`. Unknown escapes are kept verbatim."""

    out: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char != "\\" or index + 1 >= length:
            out.append(char)
            index += 1
            continue
        nxt = text[index + 1]
        if nxt in _CONTROL_UNESCAPES:
            out.append(_CONTROL_UNESCAPES[nxt])
        elif nxt == "\\" or nxt in escape_chars:
            out.append(nxt)
        elif nxt == "s" and space_escape:
            out.append(" ")
        else:
            out.append(char + nxt)
        index += 2
    return "".join(out)


def split_escaped(text: str, separators: str = SEPARATOR) -> List[str]:
    """Split on unescaped separators, leaving every part still escaped."""

    parts: List[str] = []
    last = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char in separators:
            parts.append(text[last:index])
            last = index + 1
        index += 1
    parts.append(text[last:])
    return parts


def safe_split(text: str, separators: str = SEPARATOR) -> List[str]:
    return [unescape_string(part, separators) for part in split_escaped(text, separators)]


def safe_join(parts: Iterable[object], separator: str = SEPARATOR) -> str:
    return separator.join(escape_string(str(part), separator) for part in parts)


def escape_multiline(text: str) -> str:
    """Escape a text block so it can sit between patch-file instructions.

    Newlines stay literal except for a trailing run, which becomes ``\\n``
    repeated; a trailing run of spaces becomes ``\\s`` repeated.
    """

    text = escape_string(text, MULTILINE_ESCAPE, escape_newline=False)
    stripped = text.rstrip("\n")
    text = stripped + "\\n" * (len(text) - len(stripped))
    stripped = text.rstrip(" ")
    return stripped + "\\s" * (len(text) - len(stripped))


def unescape_multiline(text: str) -> str:
    return unescape_string(text, MULTILINE_ESCAPE, space_escape=True)


def escape_path(text: str) -> str:
    """Drop characters that are not allowed in file names."""

    return _PATH_UNSAFE_RE.sub("", text)


def is_translatable(text: str) -> bool:
    return not _BLANK_RE.fullmatch(text)
