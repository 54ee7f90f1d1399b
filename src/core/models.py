"""Immutable dataclasses shared by the cache and its consumers.

Includes the eviction policy names and the CacheStats snapshot handed
out to monitoring callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional


EvictionPolicy = Literal["sweep", "timer"]

EVICTION_POLICIES = ("sweep", "timer")


@dataclass(frozen=True)
class CacheStats:
    """Read-only occupancy snapshot of a cache.

    Timestamps are monotonic milliseconds. Both are None when the cache
    holds no live entries.
    """

    size: int
    oldest_item: Optional[float] = None
    newest_item: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "oldestItem": self.oldest_item,
            "newestItem": self.newest_item,
        }


EMPTY_STATS = CacheStats(size=0)
