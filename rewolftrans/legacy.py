"""Migration of contexts written by the predecessor patch tool.

Legacy context strings are shallower than current ones and some of their
indices are 1-based. They are rewritten into a path prefix by fixed rules
per category, and the string is then matched by text similarity against
every live context under that prefix.
"""

from __future__ import annotations

import logging
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from .constants import CTX
from .context import ContextPath, ContextPathPart
from .entry import TranslationContext
from .errors import ContextError, ErrorCategory
from .escaping import is_translatable
from .patchfile import strip_legacy_suffix
from .policy import ErrorPolicy
from .trie import ContextTrie

log = logging.getLogger(__name__)

VAGUE_THRESHOLD = 0.999


def similarity(lhs: str, rhs: str) -> float:
    return SequenceMatcher(None, lhs, rhs).ratio()


def legacy_prefix(text: str) -> ContextPath:
    """Rewrite a legacy context string into the prefix of a current path."""

    path = ContextPath.parse(strip_legacy_suffix(text))
    parts = path.parts
    if path.category == CTX.DB:
        if len(parts) != 4:
            raise ContextError(f"Invalid DB context: {text}")
        return path
    if path.category == CTX.CE:
        if len(parts) != 3:
            raise ContextError(f"Invalid CommonEvent context: {text}")
        event, line, command = parts
        return ContextPath(
            CTX.CE,
            (
                ContextPathPart(event.index),
                ContextPathPart("cmd"),
                ContextPathPart(line.num_index - 1),
                ContextPathPart(command.index),
            ),
        )
    if path.category == CTX.MPS:
        if len(parts) != 7:
            raise ContextError(f"Invalid MPS context: {text}")
        map_name, events, event, pages, page, line, command = parts
        if events.index != "events" or pages.index != "pages":
            raise ContextError(f"Invalid element in MPS context: {text}")
        return ContextPath(
            CTX.MPS,
            (
                ContextPathPart(map_name.index),
                ContextPathPart(event.num_index),
                ContextPathPart(page.num_index - 1),
                ContextPathPart(line.num_index - 1),
                ContextPathPart(command.index),
            ),
        )
    raise ContextError(f"Cannot parse legacy context type: {path.category}")


def rank_candidates(
    original: str, candidates: List[TranslationContext]
) -> List[Tuple[float, TranslationContext]]:
    """Score candidates against ``original``, best first; ties keep walk order."""

    scored = [(similarity(original, candidate_text(ctx)), ctx) for ctx in candidates]
    return sorted(scored, key=lambda item: -item[0])


def candidate_text(ctx: TranslationContext) -> str:
    return ctx.entry_key[0] if ctx.entry_key else ctx.text.text


def match_legacy_context(
    text: str,
    original: str,
    trie: ContextTrie,
    policy: ErrorPolicy,
) -> Optional[TranslationContext]:
    """Return the live context a legacy context line most likely refers to."""

    if not is_translatable(original):
        log.debug("Text not translatable, ignored: %s", text)
        return None
    prefix = legacy_prefix(text)
    node = trie.get_node(prefix)
    if node is None:
        policy.handle_error(ErrorCategory.LOST_MATCH, f"Cannot locate on trie: {prefix}")
        return None
    candidates = list(node.walk())
    if not candidates:
        policy.handle_error(ErrorCategory.LOST_MATCH, f"No text found under context: {prefix}")
        return None

    ranked = rank_candidates(original, candidates)
    score, best = ranked[0]
    for rejected_score, rejected in ranked[1:]:
        log.debug("Rejected %s for %s (score %.3f)", rejected.path, prefix, rejected_score)
    if score <= VAGUE_THRESHOLD:
        details = [
            original,
            "<^^^^^ PATCH ^^^^^ // vvvvv GAME vvvvv>",
            candidate_text(best),
            f"score {score:.3f} at {best.path}",
        ]
        details.extend(
            f"rejected {rejected.path} (score {rejected_score:.3f})"
            for rejected_score, rejected in ranked[1:]
        )
        policy.handle_error(
            ErrorCategory.VAGUE_MATCH, f"Vague match for {prefix}", "\n".join(details)
        )
    return best
