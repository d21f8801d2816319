"""Error definitions for ReWolf Trans."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises recoverable conditions so a run can report a summary."""

    MISSING_CONTEXT = auto()
    CONFLICT = auto()
    VAGUE_MATCH = auto()
    LOST_MATCH = auto()
    UNKNOWN_INSTRUCTION = auto()
    NOT_A_PATCH = auto()
    FORMAT = auto()
    LEGACY_PATCH = auto()
    DECODE = auto()
    BAD_RECORD = auto()


class RewolfTransError(Exception):
    """Base exception for all custom errors."""


class LocatedError(RewolfTransError):
    """Raised on a structural violation inside a binary buffer."""

    def __init__(self, source: str, offset: int, message: str) -> None:
        self.source = source
        self.offset = offset
        self.message = message
        super().__init__(f"{source}:{offset:x} > {message}")


class CodecError(LocatedError):
    """Raised when text cannot be converted to or from its codepage."""


class PatchFormatError(RewolfTransError):
    """Raised when a patch file violates the patch-file grammar."""

    def __init__(self, filename: str, line: int, message: str) -> None:
        self.filename = filename
        self.line = line
        self.message = message
        super().__init__(f"{filename}:{line} > {message}")


class PatchVersionError(PatchFormatError):
    """Raised when a patch file was written by a newer tool version."""


class ContextError(RewolfTransError):
    """Raised on malformed context paths or unbalanced path construction."""


class ConfigurationError(RewolfTransError):
    """Raised when settings are invalid."""


class OverwriteRefusedError(RewolfTransError):
    """Raised when an output directory would overwrite the game data."""


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
