"""Archive interface and recognition of archive files inside a game data tree."""

from __future__ import annotations

import logging
import pathlib
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, List, Optional

from .dictionary import TranslationDict
from .policy import ErrorPolicy
from .structures import CodecOptions, PathResolver

log = logging.getLogger(__name__)


class ArchiveKind(Enum):
    DATABASE = "database"
    MAP = "map"
    COMMON_EVENT = "common_event"


class BaseArchive(ABC):
    """One parsed archive: a document tree that can be extracted and re-serialized."""

    kind: ArchiveKind

    def __init__(
        self,
        source_path: pathlib.Path,
        options: Optional[CodecOptions] = None,
        policy: Optional[ErrorPolicy] = None,
    ):
        self.source_path = source_path
        self.options = options or CodecOptions()
        self.policy = policy or ErrorPolicy()

    @property
    def source_paths(self) -> List[pathlib.Path]:
        """Every file this archive was read from."""

        return [self.source_path]

    @abstractmethod
    def parse(self) -> None:
        """Read the archive files into the document tree."""

    @abstractmethod
    def generate_patch(self, resolver: PathResolver, dictionary: TranslationDict) -> None:
        """Register every translatable string with ``dictionary``."""

    @abstractmethod
    def serialize(self) -> List[bytes]:
        """Return the encoded contents of :attr:`source_paths`, in the same order."""

    def write(self, resolver: PathResolver) -> List[pathlib.Path]:
        """Serialize fully in memory, then write each file under the output tree."""

        buffers = self.serialize()
        written = []
        for source, data in zip(self.source_paths, buffers):
            target = resolver.translate_path(source)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            written.append(target)
        return written


def detect_kind(path: pathlib.Path) -> Optional[ArchiveKind]:
    """Recognise an archive from its file name and parent directory."""

    parent = path.parent.name.lower()
    name = path.name.lower()
    if parent == "mapdata" and name.endswith(".mps"):
        return ArchiveKind.MAP
    if parent == "basicdata":
        if name.endswith(".project"):
            if name == "sysdatabasebasic.project":
                return None
            if path.with_suffix(".dat").exists():
                return ArchiveKind.DATABASE
        elif name == "commonevent.dat":
            return ArchiveKind.COMMON_EVENT
    return None


def detect_archive(
    path: pathlib.Path,
    options: Optional[CodecOptions] = None,
    policy: Optional[ErrorPolicy] = None,
) -> Optional[BaseArchive]:
    """Select an archive implementation for ``path``; unknown files yield ``None``."""

    kind = detect_kind(path)
    if kind is ArchiveKind.DATABASE:
        from .database import WolfDatabase

        return WolfDatabase(path, path.with_suffix(".dat"), options, policy)
    if kind is not None:
        log.debug("No parser for %s archive %s, skipping", kind.value, path)
    return None


def iter_archives(
    data_dir: pathlib.Path,
    options: Optional[CodecOptions] = None,
    policy: Optional[ErrorPolicy] = None,
) -> Iterator[BaseArchive]:
    """Yield archives below ``data_dir`` in sorted traversal order."""

    for path in sorted(data_dir.rglob("*")):
        if not path.is_file():
            continue
        archive = detect_archive(path, options, policy)
        if archive is not None:
            log.debug("Found %s archive %s", archive.kind.value, path)
            yield archive
