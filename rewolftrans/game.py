"""High-level orchestration of extract and apply runs over one game."""

from __future__ import annotations

import logging
import pathlib
import time
from typing import List, Optional, Sequence

from .archives import BaseArchive, iter_archives
from .dictionary import TranslationDict
from .errors import OverwriteRefusedError
from .policy import ErrorPolicy
from .structures import CodecOptions, PathResolver, RunSummary

log = logging.getLogger(__name__)

DATA_DIR_NAME = "Data"


def resolve_data_dir(game_dir: pathlib.Path) -> pathlib.Path:
    """Return the archive root of a game: its ``Data`` folder."""

    data_dir = game_dir / DATA_DIR_NAME
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Directory {data_dir} does not exist.")
    return data_dir


class WolfGame:
    """The archives of one game and the translation dictionary built over them."""

    def __init__(
        self,
        game_dir: pathlib.Path,
        *,
        options: Optional[CodecOptions] = None,
        policy: Optional[ErrorPolicy] = None,
    ) -> None:
        self.game_dir = game_dir
        self.data_dir = resolve_data_dir(game_dir)
        self.options = options or CodecOptions()
        self.policy = policy or ErrorPolicy()
        self.dictionary = TranslationDict(self.policy)
        self.archives: List[BaseArchive] = list(
            iter_archives(self.data_dir, self.options, self.policy)
        )

    def parse(self) -> None:
        for archive in self.archives:
            log.debug("Parsing %s", archive.source_path)
            archive.parse()

    def generate_patch(self) -> None:
        resolver = PathResolver(self.data_dir)
        for archive in self.archives:
            archive.generate_patch(resolver, self.dictionary)

    def load_patch(self, patch_dir: pathlib.Path) -> int:
        if not patch_dir.is_dir():
            raise FileNotFoundError(f"Patch directory {patch_dir} does not exist.")
        return self.dictionary.load_tree(patch_dir)

    def write_patch(self, patch_dir: pathlib.Path) -> List[pathlib.Path]:
        return self.dictionary.write(PathResolver(self.data_dir, patch_dir))

    def write_data(self, output_dir: pathlib.Path) -> List[pathlib.Path]:
        self.dictionary.propagate()
        resolver = PathResolver(self.data_dir, output_dir)
        written: List[pathlib.Path] = []
        for archive in self.archives:
            written.extend(archive.write(resolver))
        return written


def validate_output_dir(game: WolfGame, output_dir: pathlib.Path) -> None:
    """Refuse output directories that would overwrite the source archives."""

    data_dir = game.data_dir.resolve()
    target = output_dir.resolve()
    if target == data_dir or data_dir in target.parents:
        raise OverwriteRefusedError(
            "The output directory is inside the game data. Refusing to overwrite the source files."
        )


class PatchRunner:
    """Coordinates parse, extraction, patch loading and writing for one command."""

    def __init__(
        self,
        *,
        game_dir: pathlib.Path,
        patch_dir: pathlib.Path,
        options: Optional[CodecOptions] = None,
    ) -> None:
        self.game_dir = game_dir
        self.patch_dir = patch_dir
        self.options = options or CodecOptions()
        self.error_policy = ErrorPolicy()

    def _open(self) -> WolfGame:
        game = WolfGame(self.game_dir, options=self.options, policy=self.error_policy)
        game.parse()
        game.generate_patch()
        log.info(
            "Extracted %d entries from %d archives.",
            len(game.dictionary.entries),
            len(game.archives),
        )
        return game

    def generate(self, source_dirs: Sequence[pathlib.Path] = ()) -> RunSummary:
        """Write patch files for the game, merging translations from ``source_dirs``."""

        start_time = time.time()
        game = self._open()
        for source_dir in source_dirs:
            loaded = game.load_patch(source_dir)
            log.info("Loaded %d patch files from %s.", loaded, source_dir)
        written = game.write_patch(self.patch_dir)
        return self._summary("generate", game, written, start_time)

    def apply(self, output_dir: pathlib.Path) -> RunSummary:
        """Write translated copies of every archive under ``output_dir``."""

        start_time = time.time()
        game = self._open()
        validate_output_dir(game, output_dir)
        loaded = game.load_patch(self.patch_dir)
        log.info("Loaded %d patch files from %s.", loaded, self.patch_dir)
        written = game.write_data(output_dir)
        return self._summary("apply", game, written, start_time)

    def _summary(
        self,
        operation: str,
        game: WolfGame,
        written: List[pathlib.Path],
        start_time: float,
    ) -> RunSummary:
        dictionary = game.dictionary
        return RunSummary(
            operation=operation,
            game_dir=self.game_dir,
            archives=len(game.archives),
            entries=len(dictionary.entries),
            contexts=dictionary.context_count,
            translated_contexts=dictionary.translated_count,
            files_written=len(written),
            elapsed_seconds=time.time() - start_time,
            error_counts=self.error_policy.summary(),
            error_messages=[record.message for record in self.error_policy.records],
        )
