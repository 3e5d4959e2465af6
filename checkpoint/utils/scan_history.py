"""
==============================================================================
Scan History Module
==============================================================================

Bounded, newest-first record of a session's verification results.

Locally synthesized error results are kept alongside gateway results so
the operator always sees that a scan happened.

==============================================================================
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from checkpoint.schemas.scan import ScanResult, ScanStatus


# Module logger
logger = logging.getLogger(__name__)


class ScanHistory:
    """
    Recent scan results for one check-in session.

    Example:
        >>> history = ScanHistory(limit=10)
        >>> history.add(result)
        >>> history.latest.status
        <ScanStatus.VERIFIED: 'verified'>
    """

    def __init__(self, limit: int = 10) -> None:
        """
        Initialize history.

        Args:
            limit: Maximum number of results kept
        """
        self._items: Deque[ScanResult] = deque(maxlen=limit)

    def add(self, result: ScanResult) -> None:
        """Record a result as the newest entry."""
        self._items.appendleft(result)
        logger.debug(f"History: {result.status} ({len(self._items)} kept)")

    def recent(self, limit: Optional[int] = None) -> List[ScanResult]:
        """Results newest first."""
        items = list(self._items)
        return items[:limit] if limit is not None else items

    def count(self, status: ScanStatus) -> int:
        """Number of kept results with a given status."""
        return sum(1 for item in self._items if item.status == status)

    def clear(self) -> None:
        """Forget all results."""
        self._items.clear()

    @property
    def latest(self) -> Optional[ScanResult]:
        """Most recent result."""
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)
