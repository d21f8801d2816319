"""Core data structures for ReWolf Trans."""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .constants import DEFAULT_READ_ENCODING, DEFAULT_WRITE_ENCODING


@dataclass
class TranslationString:
    """A single string slot owned by a document tree node.

    ``raw`` keeps the bytes the text was decoded from, so an untranslated
    string is written back byte for byte.
    """

    text: str
    is_translated: bool = False
    raw: Optional[bytes] = field(default=None, repr=False, compare=False)

    def patch(self, translated: str) -> None:
        self.text = translated
        self.is_translated = True


@dataclass(frozen=True)
class CodecOptions:
    """Codepages used when decoding archives and encoding translations."""

    read_encoding: str = DEFAULT_READ_ENCODING
    write_encoding: str = DEFAULT_WRITE_ENCODING


@dataclass
class PathResolver:
    """Maps archive paths between the game data directory and an output tree."""

    from_dir: pathlib.Path
    to_dir: Optional[pathlib.Path] = None

    def relative_from(self, absolute: pathlib.Path) -> str:
        return pathlib.Path(os.path.relpath(absolute, self.from_dir)).as_posix()

    def absolute_to(self, relative: str) -> pathlib.Path:
        if self.to_dir is None:
            raise ValueError("No output directory configured.")
        return self.to_dir.joinpath(*relative.split("/"))

    def patch_path(self, patch_file: str) -> pathlib.Path:
        return self.absolute_to(patch_file)

    def translate_path(self, absolute_in_from: pathlib.Path) -> pathlib.Path:
        return self.absolute_to(self.relative_from(absolute_in_from))


@dataclass
class RunSummary:
    """Report returned after a generate or apply run."""

    operation: str
    game_dir: pathlib.Path
    archives: int
    entries: int
    contexts: int
    translated_contexts: int
    files_written: int
    elapsed_seconds: float
    error_counts: Dict[str, int] = field(default_factory=dict)
    error_messages: List[str] = field(default_factory=list)
