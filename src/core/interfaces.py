"""Core protocol definitions.

Defines the two sides of the cache/scheduler seam: EvictionTarget is what
a scheduler may call on the cache, EvictionScheduler is what the cache
notifies on every mutation.
"""

from __future__ import annotations

from typing import Protocol


class EvictionTarget(Protocol):
    """Contract a cache offers to its eviction scheduler."""

    @property
    def timeout(self) -> float:
        ...

    def sweep(self) -> int:
        ...

    def expire(self, key: str, version: int) -> bool:
        ...


class EvictionScheduler(Protocol):
    """Contract for any eviction strategy (sweep, per-entry timer)."""

    policy: str

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def timeout_changed(self, timeout_ms: float) -> None:
        ...

    def entry_updated(self, key: str, version: int, ttl_ms: float) -> None:
        ...

    def entry_removed(self, key: str, version: int) -> None:
        ...
