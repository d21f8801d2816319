"""Patch-file text format.

A patch file is a header line followed by string blocks::

    > REWOLF TRANS PATCH FILE VERSION 1.0

    > BEGIN STRING
    <original text>
    > CONTEXT [NEW] DB:DataBase/[0]Items/[3]Potion/[0]Name
    <translated text>
    > END STRING

Lines starting with ``#`` are comments. Files written by the predecessor
tool carry a ``WOLF TRANS PATCH FILE VERSION`` header instead and use
shallower context paths (see :mod:`rewolftrans.legacy`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import LEGACY_PATCH_HEADER, PATCH_FILE_VERSION, PATCH_HEADER, TOOL_VERSION
from .errors import ErrorCategory, PatchFormatError, PatchVersionError
from .escaping import escape_multiline, unescape_multiline
from .policy import ErrorPolicy

NEW_TAG = "[NEW]"
LEGACY_SUFFIXES = (" < UNUSED", " < UNTRANSLATED")

_TAG_RE = re.compile(r"^\[([^\]]*)\] (.*)$", re.DOTALL)


class PatchFormat(Enum):
    NONE = "none"
    LEGACY = "wolftrans"
    MODERN = "rewolftrans"


class ParseState(Enum):
    HEADER = "header"
    BLANK = "blank"
    ORIGINAL = "original"
    CONTEXT = "context"
    TRANSLATED = "translated"


@dataclass
class PatchContextLine:
    """One ``> CONTEXT`` instruction, still unparsed."""

    text: str
    is_new: bool
    line: int


@dataclass
class PatchBlock:
    original: str
    translated: str
    contexts: List[PatchContextLine] = field(default_factory=list)
    line: int = 0


@dataclass
class PatchDocument:
    filename: str
    format: PatchFormat
    version: Optional[str]
    blocks: List[PatchBlock] = field(default_factory=list)


def parse_version(version: str) -> Tuple[int, ...]:
    parts = []
    for piece in version.strip().split("."):
        match = re.match(r"\d+", piece)
        if not match:
            raise ValueError(f"Invalid version {version!r}")
        parts.append(int(match.group()))
    return tuple(parts)


def compare_version(lhs: str, rhs: str) -> int:
    left, right = parse_version(lhs), parse_version(rhs)
    width = max(len(left), len(right))
    left += (0,) * (width - len(left))
    right += (0,) * (width - len(right))
    return (left > right) - (left < right)


def strip_legacy_suffix(text: str) -> str:
    for suffix in LEGACY_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
    return text


def render_block(
    original: str,
    contexts: Iterable[Tuple[str, bool]],
    translated: str,
) -> List[str]:
    lines = ["> BEGIN STRING", escape_multiline(original)]
    for path, is_new in contexts:
        prefix = f"CONTEXT {NEW_TAG}" if is_new else "CONTEXT"
        lines.append(f"> {prefix} {path}")
    lines.append(escape_multiline(translated))
    lines.append("> END STRING")
    return lines


def render_patch(blocks: Sequence[Sequence[str]]) -> str:
    lines = [f"> {PATCH_HEADER} {PATCH_FILE_VERSION}", ""]
    for block in blocks:
        lines.extend(block)
        lines.append("")
    return "\n".join(lines)


class PatchFileParser:
    """Line-oriented state machine over the text of one patch file."""

    def __init__(self, filename: str, policy: Optional[ErrorPolicy] = None) -> None:
        self.filename = filename
        self.policy = policy or ErrorPolicy()
        self.state = ParseState.HEADER
        self.format = PatchFormat.NONE
        self.version: Optional[str] = None
        self.blocks: List[PatchBlock] = []
        self._line = 0
        self._original: List[str] = []
        self._translated: List[str] = []
        self._contexts: List[PatchContextLine] = []
        self._block_line = 0

    def error(self, message: str) -> PatchFormatError:
        return PatchFormatError(self.filename, self._line, message)

    def warn(self, category: ErrorCategory, message: str) -> None:
        self.policy.handle_error(category, f"{self.filename}:{self._line} > {message}")

    def parse(self, text: str) -> Optional[PatchDocument]:
        """Return the parsed document, or ``None`` when the text is not a patch file."""

        for number, line in enumerate(text.split("\n"), start=1):
            self._line = number
            line = line.rstrip("\r")
            if line.startswith("#"):
                continue
            if line.startswith(">"):
                if not self._instruction(line):
                    return None
                continue
            if not self._text_line(line):
                return None

        if self.state is ParseState.HEADER:
            self.warn(ErrorCategory.NOT_A_PATCH, "No patch file header found")
            return None
        if self.state is not ParseState.BLANK:
            raise self.error(f"Unexpected end of file in state {self.state.value}")
        return PatchDocument(self.filename, self.format, self.version, self.blocks)

    # --- Instructions -----------------------------------------------------

    def _instruction(self, line: str) -> bool:
        body = line[1:].lstrip(" ")
        if body.startswith(LEGACY_PATCH_HEADER):
            self._header(PatchFormat.LEGACY, body[len(LEGACY_PATCH_HEADER):].strip())
        elif body.startswith(PATCH_HEADER):
            self._header(PatchFormat.MODERN, body[len(PATCH_HEADER):].strip())
        elif self.state is ParseState.HEADER:
            self.warn(ErrorCategory.NOT_A_PATCH, f"Not a patch file: {line}")
            return False
        elif body.startswith("BEGIN STRING"):
            if self.state is not ParseState.BLANK:
                raise self.error(f"Unexpected BEGIN STRING in state {self.state.value}")
            self._original = []
            self._translated = []
            self._contexts = []
            self._block_line = self._line
            self.state = ParseState.ORIGINAL
        elif body.startswith("END STRING"):
            if self.state is not ParseState.TRANSLATED:
                raise self.error(f"Unexpected END STRING in state {self.state.value}")
            self.blocks.append(
                PatchBlock(
                    original=unescape_multiline("\n".join(self._original)),
                    translated=unescape_multiline("\n".join(self._translated)),
                    contexts=self._contexts,
                    line=self._block_line,
                )
            )
            self.state = ParseState.BLANK
        elif body.startswith("CONTEXT"):
            if self.state not in (ParseState.ORIGINAL, ParseState.CONTEXT):
                raise self.error(f"Unexpected CONTEXT in state {self.state.value}")
            self._contexts.append(self._context_line(body[len("CONTEXT"):].lstrip()))
            self.state = ParseState.CONTEXT
        else:
            self.warn(ErrorCategory.UNKNOWN_INSTRUCTION, f"Unknown instruction: {line}")
        return True

    def _header(self, patch_format: PatchFormat, version: str) -> None:
        if self.state is not ParseState.HEADER or self.format is not PatchFormat.NONE:
            raise self.error(f"Unexpected header in state {self.state.value}")
        if patch_format is PatchFormat.MODERN:
            try:
                newer = compare_version(TOOL_VERSION, version) < 0
            except ValueError as exc:
                raise self.error(str(exc)) from exc
            if newer:
                raise PatchVersionError(
                    self.filename,
                    self._line,
                    f"Cannot parse patch version {version} with tool version {TOOL_VERSION}",
                )
        else:
            self.warn(
                ErrorCategory.LEGACY_PATCH,
                "Parsing legacy patch file; some contexts may not be recovered",
            )
        self.format = patch_format
        self.version = version
        self.state = ParseState.BLANK

    def _context_line(self, text: str) -> PatchContextLine:
        is_new = False
        match = _TAG_RE.match(text)
        if match:
            is_new = f"[{match.group(1)}]" == NEW_TAG
            text = match.group(2)
        if self.format is PatchFormat.LEGACY:
            text = strip_legacy_suffix(text)
        return PatchContextLine(text=text, is_new=is_new, line=self._line)

    # --- Text lines -------------------------------------------------------

    def _text_line(self, line: str) -> bool:
        if self.state is ParseState.HEADER:
            if line.strip():
                self.warn(ErrorCategory.NOT_A_PATCH, "Not a patch file")
                return False
            return True
        if self.state is ParseState.CONTEXT:
            self.state = ParseState.TRANSLATED
        if self.state is ParseState.BLANK:
            if line.strip():
                self.warn(ErrorCategory.FORMAT, "Unexpected text outside a string block")
        elif self.state is ParseState.ORIGINAL:
            self._original.append(line)
        elif self.state is ParseState.TRANSLATED:
            self._translated.append(line)
        return True


def parse_patch_text(
    text: str, filename: str, policy: Optional[ErrorPolicy] = None
) -> Optional[PatchDocument]:
    return PatchFileParser(filename, policy).parse(text)
