"""Registry records: one entry per distinct original string, one context per occurrence."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .constants import PATCH_SUFFIX
from .context import ContextPath
from .errors import ContextError, ErrorCategory
from .escaping import is_translatable
from .patchfile import render_block
from .policy import ErrorPolicy
from .structures import TranslationString

log = logging.getLogger(__name__)


class EntryDangerLevel(Enum):
    """How safe a string is to translate; also routes it to its own patch file."""

    EXTRA = "Extra"
    NORMAL = "Normal"
    WARN = "Warn"
    DANGER = "Danger"
    CONTEXT = "Context"


EntryKey = Tuple[str, EntryDangerLevel]


@dataclass(eq=False)
class TranslationContext:
    """One occurrence of a string inside a document tree.

    ``text`` is the slot owned by the tree node; patching the context writes
    straight into it. ``entry_key`` names the owning entry in the dictionary
    arena, or is ``None`` while the context is unbound.
    """

    path: ContextPath
    text: TranslationString
    is_new: bool = True
    entry_key: Optional[EntryKey] = None

    @property
    def key(self) -> str:
        return str(self.path)

    @property
    def is_translated(self) -> bool:
        return self.text.is_translated

    @property
    def translated(self) -> str:
        return self.text.text if self.text.is_translated else ""

    def patch(self, rhs: "TranslationContext", policy: Optional[ErrorPolicy] = None) -> None:
        if self.path != rhs.path:
            raise ContextError(f"Cannot patch {self.path} with {rhs.path}")
        if self.path.names_differ(rhs.path):
            log.debug("Names differ for %s: patch file has %s", self.path, rhs.path)
        self.is_new = self.is_new and rhs.is_new
        if not rhs.is_translated:
            return
        if self.is_translated and self.text.text != rhs.text.text:
            message = f"Conflicting translations for {self.path}"
            details = f"{self.text.text!r} replaced by {rhs.text.text!r}"
            if policy is None:
                log.warning("%s: %s", message, details)
            else:
                policy.handle_error(ErrorCategory.CONFLICT, message, details)
        self.text.patch(rhs.text.text)


@dataclass(eq=False)
class TranslationEntry:
    original: str
    danger_level: EntryDangerLevel = EntryDangerLevel.NORMAL
    patch_file_prefix: str = ""
    contexts: List[TranslationContext] = field(default_factory=list)

    @property
    def key(self) -> EntryKey:
        return (self.original, self.danger_level)

    @property
    def patch_file(self) -> str:
        if self.danger_level is EntryDangerLevel.NORMAL:
            return f"{self.patch_file_prefix}{PATCH_SUFFIX}"
        return f"{self.patch_file_prefix}_{self.danger_level.value}{PATCH_SUFFIX}"

    @property
    def is_translatable(self) -> bool:
        return is_translatable(self.original)

    def find_ctx(self, path: ContextPath) -> Optional[TranslationContext]:
        for ctx in self.contexts:
            if ctx.path == path:
                return ctx
        return None

    def add_ctx(
        self, ctx: TranslationContext, policy: Optional[ErrorPolicy] = None
    ) -> TranslationContext:
        """Attach ``ctx``, or merge it into the context already holding its path.

        Returns the context that ends up attached.
        """

        existing = self.find_ctx(ctx.path)
        if existing is not None and existing is not ctx:
            existing.patch(ctx, policy)
            return existing
        if existing is None:
            self.contexts.append(ctx)
        ctx.entry_key = self.key
        return ctx

    def remove_ctx(self, ctx: TranslationContext) -> None:
        for index, held in enumerate(self.contexts):
            if held is ctx:
                del self.contexts[index]
                ctx.entry_key = None
                return

    def set_patch_file_prefix_if_empty(self, prefix: str) -> None:
        if not self.patch_file_prefix and prefix:
            self.patch_file_prefix = prefix

    def propagate(self) -> int:
        """Copy the first translation onto untranslated contexts; return how many changed."""

        source = next((ctx for ctx in self.contexts if ctx.is_translated), None)
        if source is None:
            return 0
        changed = 0
        for ctx in self.contexts:
            if not ctx.is_translated:
                ctx.text.patch(source.text.text)
                changed += 1
        return changed

    def render(self) -> List[List[str]]:
        """Return one block of lines per distinct translation."""

        self.propagate()
        groups: Dict[str, List[TranslationContext]] = {}
        for ctx in self.contexts:
            groups.setdefault(ctx.translated, []).append(ctx)
        blocks = []
        for translated, contexts in groups.items():
            contexts = sorted(contexts, key=lambda ctx: ctx.key)
            blocks.append(
                render_block(
                    self.original,
                    ((ctx.key, ctx.is_new) for ctx in contexts),
                    translated,
                )
            )
        return blocks
