"""Trie of translation contexts keyed by category, then by segment index."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, Optional

from .context import ContextPath

if TYPE_CHECKING:
    from .entry import TranslationContext


class ContextTrieNode:
    def __init__(self) -> None:
        self.children: Dict[str, ContextTrieNode] = {}
        self.ctx: Optional[TranslationContext] = None

    def walk(self) -> Iterator[TranslationContext]:
        """Yield contexts at and below this node, depth first, in insertion order."""

        if self.ctx is not None:
            yield self.ctx
        for child in self.children.values():
            yield from child.walk()


class ContextTrie:
    def __init__(self) -> None:
        self.roots: Dict[str, ContextTrieNode] = {}

    def add_ctx(self, ctx: TranslationContext) -> None:
        node = self.roots.setdefault(ctx.path.category, ContextTrieNode())
        for part in ctx.path.parts:
            node = node.children.setdefault(part.index, ContextTrieNode())
        node.ctx = ctx

    def get_node(self, path: ContextPath) -> Optional[ContextTrieNode]:
        node = self.roots.get(path.category)
        for part in path.parts:
            if node is None:
                return None
            node = node.children.get(part.index)
        return node

    def get_ctx(self, path: ContextPath) -> Optional[TranslationContext]:
        node = self.get_node(path)
        return node.ctx if node is not None else None

    def walk(self) -> Iterator[TranslationContext]:
        for root in self.roots.values():
            yield from root.walk()
