"""Incremental construction of context paths while a document tree is walked."""

from __future__ import annotations

from typing import List, Optional

from .context import ContextPath, ContextPathPart, IndexLike
from .entry import TranslationContext
from .errors import ContextError
from .structures import TranslationString


class ContextBuilder:
    """Tracks the path under construction and the patch file it belongs to.

    Every :meth:`enter` must be matched by a :meth:`leave` of the same index,
    and every :meth:`enter_patch` by a :meth:`leave_patch`.
    """

    def __init__(self, category: str, patch_file: str = "") -> None:
        self.category = category
        self._parts: List[ContextPathPart] = []
        self._patch_files: List[str] = [patch_file] if patch_file else []

    @property
    def path(self) -> ContextPath:
        return ContextPath(self.category, self._parts)

    @property
    def depth(self) -> int:
        return len(self._parts)

    @property
    def patch_file(self) -> str:
        """Patch-file prefix: the entered patch segments joined by slashes."""

        return "/".join(self._patch_files)

    def enter(self, index: IndexLike, name: Optional[str] = None) -> None:
        self._parts.append(ContextPathPart(index, name))

    def leave(self, index: IndexLike) -> None:
        if not self._parts:
            raise ContextError(f"Leaving {index} but no segment was entered")
        last = self._parts.pop()
        if last.index != str(index):
            raise ContextError(f"Leaving {index} but expected {last.index}")

    def enter_patch(self, patch_file: str) -> None:
        self._patch_files.append(patch_file)

    def leave_patch(self, patch_file: Optional[str] = None) -> None:
        if not self._patch_files:
            raise ContextError("Leaving a patch file that was never entered")
        last = self._patch_files.pop()
        if patch_file is not None and last != patch_file:
            raise ContextError(f"Leaving patch {patch_file} but expected {last}")

    def build(self, text: TranslationString) -> TranslationContext:
        return TranslationContext(self.path, text)
