"""Recoverable error policy implementation."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional

from .errors import ErrorCategory, ErrorRecord

log = logging.getLogger(__name__)


class ErrorPolicy:
    """Logs and counts conditions that skip one translation but not the run."""

    INFO_CATEGORIES = frozenset({ErrorCategory.VAGUE_MATCH})

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []
        self.counts: Counter[ErrorCategory] = Counter()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> None:
        """Record a recoverable condition and log it."""

        self.records.append(ErrorRecord(category=category, message=message, details=details))
        self.counts[category] += 1

        level = logging.INFO if category in self.INFO_CATEGORIES else logging.WARNING
        if details:
            log.log(level, "%s\n%s", message, details)
        else:
            log.log(level, "%s", message)

    def count(self, category: ErrorCategory) -> int:
        return self.counts[category]

    @property
    def total(self) -> int:
        return len(self.records)

    def summary(self) -> Dict[str, int]:
        """Return counts keyed by category name, in declaration order."""

        return {
            category.name: self.counts[category]
            for category in ErrorCategory
            if self.counts[category]
        }
