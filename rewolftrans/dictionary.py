"""The translation registry: extraction, patch-file persistence and reapplication."""

from __future__ import annotations

import logging
import pathlib
from typing import Dict, Iterator, List, Optional, Tuple

from .context import ContextPath
from .entry import EntryDangerLevel, EntryKey, TranslationContext, TranslationEntry
from .errors import ContextError, ErrorCategory, PatchFormatError
from .escaping import is_translatable
from .legacy import match_legacy_context
from .patchfile import PatchFormat, parse_patch_text, render_patch
from .policy import ErrorPolicy
from .structures import PathResolver, TranslationString
from .trie import ContextTrie

log = logging.getLogger(__name__)

PATCH_ENCODING = "utf-8"


class TranslationDict:
    """Entries keyed by ``(original, danger level)`` plus a trie of their contexts."""

    def __init__(self, policy: Optional[ErrorPolicy] = None) -> None:
        self.policy = policy or ErrorPolicy()
        self.entries: Dict[EntryKey, TranslationEntry] = {}
        self.trie = ContextTrie()

    # --- Extraction -------------------------------------------------------

    def add(
        self,
        original: str,
        danger_level: EntryDangerLevel,
        patch_file: str,
        ctx: TranslationContext,
    ) -> Optional[TranslationContext]:
        """Register one occurrence of ``original``. Blank text is ignored."""

        if not is_translatable(original):
            return None
        key = (original, danger_level)
        entry = self.entries.get(key)
        if entry is None:
            entry = TranslationEntry(original, danger_level)
            self.entries[key] = entry
        entry.set_patch_file_prefix_if_empty(patch_file)
        held = self.assign(ctx, entry)
        self.trie.add_ctx(held)
        return held

    def assign(self, ctx: TranslationContext, entry: TranslationEntry) -> TranslationContext:
        """Move ``ctx`` under ``entry``, detaching it from its previous owner."""

        if ctx.entry_key == entry.key and entry.find_ctx(ctx.path) is ctx:
            return ctx
        if not ctx.is_translated and ctx.text.text != entry.original:
            raise ContextError(
                f"Context {ctx.path} holds {ctx.text.text!r}, not {entry.original!r}"
            )
        if ctx.entry_key is not None:
            previous = self.entries.get(ctx.entry_key)
            if previous is not None:
                previous.remove_ctx(ctx)
        return entry.add_ctx(ctx, self.policy)

    def entry_of(self, ctx: TranslationContext) -> Optional[TranslationEntry]:
        if ctx.entry_key is None:
            return None
        return self.entries.get(ctx.entry_key)

    # --- Reapplication ----------------------------------------------------

    def patch(self, *contexts: TranslationContext, original: Optional[str] = None) -> int:
        """Apply transient contexts to their live counterparts; return how many matched.

        When ``original`` is given, a live context whose entry holds different
        text is skipped.
        """

        applied = 0
        for ctx in contexts:
            live = self.trie.get_ctx(ctx.path)
            if live is None:
                self.policy.handle_error(
                    ErrorCategory.MISSING_CONTEXT, f"Context not found: {ctx.path}"
                )
                continue
            if original is not None and live.entry_key and live.entry_key[0] != original:
                self.policy.handle_error(
                    ErrorCategory.MISSING_CONTEXT,
                    f"Original text changed at {ctx.path}",
                    f"{original!r} in patch, {live.entry_key[0]!r} in game",
                )
                continue
            live.patch(ctx, self.policy)
            applied += 1
        return applied

    def propagate(self) -> int:
        return sum(entry.propagate() for entry in self.entries.values())

    # --- Patch files ------------------------------------------------------

    def load(self, path: pathlib.Path) -> bool:
        """Apply one patch file. Returns ``False`` when the file is not a patch file.

        The whole file is parsed and every context resolved before anything
        is applied, so a malformed file leaves the document trees untouched.
        """

        text = path.read_text(encoding=PATCH_ENCODING + "-sig")
        document = parse_patch_text(text, str(path), self.policy)
        if document is None:
            log.debug("Skipping %s: not a patch file", path)
            return False
        log.info("Loading patch %s", path)

        # Legacy matches are fuzzy, so their original is not compared again.
        is_legacy = document.format is PatchFormat.LEGACY
        pending: List[Tuple[Optional[str], TranslationContext]] = []
        for block in document.blocks:
            if not is_translatable(block.original):
                continue
            for line in block.contexts:
                try:
                    if is_legacy:
                        live = match_legacy_context(
                            line.text, block.original, self.trie, self.policy
                        )
                        if live is None:
                            continue
                        ctx_path = live.path
                    else:
                        ctx_path = ContextPath.parse(line.text)
                except ContextError as exc:
                    raise PatchFormatError(str(path), line.line, str(exc)) from exc
                translation = TranslationString(
                    block.translated, is_translated=bool(block.translated)
                )
                expected = None if is_legacy else block.original
                is_new = line.is_new or is_legacy
                pending.append((expected, TranslationContext(ctx_path, translation, is_new)))

        for expected, ctx in pending:
            self.patch(ctx, original=expected)
        return True

    def load_tree(self, root: pathlib.Path) -> int:
        """Load every patch file below ``root`` in sorted order; return how many loaded."""

        loaded = 0
        for path in sorted(root.rglob("*.txt")):
            if path.is_file() and self.load(path):
                loaded += 1
        return loaded

    def group_by_patch_file(self) -> Dict[str, List[TranslationEntry]]:
        groups: Dict[str, List[TranslationEntry]] = {}
        for entry in self.entries.values():
            if entry.contexts:
                groups.setdefault(entry.patch_file, []).append(entry)
        return groups

    def write(self, resolver: PathResolver) -> List[pathlib.Path]:
        """Write every patch file, reloading existing ones first to keep their edits.

        Entries added after the grouping is computed are not written.
        """

        groups = self.group_by_patch_file()
        for patch_file in groups:
            target = resolver.patch_path(patch_file)
            if target.exists():
                self.load(target)

        written = []
        for patch_file, entries in groups.items():
            target = resolver.patch_path(patch_file)
            content = render_patch([block for entry in entries for block in entry.render()])
            if target.exists():
                log.info("Patch file %s will be overwritten", target)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content.encode(PATCH_ENCODING))
            written.append(target)
        return written

    # --- Statistics -------------------------------------------------------

    def contexts(self) -> Iterator[TranslationContext]:
        for entry in self.entries.values():
            yield from entry.contexts

    @property
    def context_count(self) -> int:
        return sum(len(entry.contexts) for entry in self.entries.values())

    @property
    def translated_count(self) -> int:
        return sum(1 for ctx in self.contexts() if ctx.is_translated)

