"""In-memory TTL cache with lock-striped shards and background eviction.

Each entry stores its value together with a monotonic insertion time
(milliseconds) and a version number. Reads re-check freshness against
the current timeout, so a value older than the timeout is never returned
even when the scheduler runs late.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, TypeVar

from core.errors import InvalidTimeoutError, ValidationError
from core.models import EMPTY_STATS, EVICTION_POLICIES, CacheStats, EvictionPolicy
from core.scheduler import make_scheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 60_000.0
DEFAULT_SWEEP_INTERVAL_MS = 1_000.0
DEFAULT_SHARDS = 16


def now_ms() -> float:
    # time.monotonic so wall-clock adjustments never expire or revive entries
    return time.monotonic() * 1000.0


def validate_timeout(timeout_ms: object) -> float:
    """Return `timeout_ms` as a float or raise InvalidTimeoutError."""
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
        raise InvalidTimeoutError(f"Timeout must be a number of milliseconds, got {timeout_ms!r}")

    value = float(timeout_ms)
    if not math.isfinite(value) or value < 0:
        raise InvalidTimeoutError(f"Timeout must be a non-negative finite number, got {timeout_ms!r}")
    return value


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    # Value + insertion time are written together, never separately
    value: T
    stamp: float  # now_ms() at update
    version: int


class _Shard:
    __slots__ = ("lock", "entries")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: Dict[str, CacheEntry] = {}


class Cache(Generic[T]):
    """TTL cache keyed by string id.

    The store is split into `shards` independently locked dicts, so
    operations on ids living in different shards never block each other.
    Operations on the same id are serialized by its shard lock.
    """

    def __init__(
        self,
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        *,
        policy: EvictionPolicy = "sweep",
        sweep_interval_ms: float = DEFAULT_SWEEP_INTERVAL_MS,
        shards: int = DEFAULT_SHARDS,
        autostart: bool = True,
    ) -> None:
        self._timeout = validate_timeout(timeout_ms)

        if policy not in EVICTION_POLICIES:
            raise ValidationError(f"Unknown eviction policy: {policy!r}")
        if isinstance(shards, bool) or not isinstance(shards, int) or shards < 1:
            raise ValidationError(f"Shard count must be a positive integer, got {shards!r}")

        self._shards: List[_Shard] = [_Shard() for _ in range(shards)]
        self._versions = itertools.count(1)
        self._closed = False
        self._scheduler = make_scheduler(policy, self, sweep_interval_ms=sweep_interval_ms)

        if autostart:
            self._scheduler.start()

    @property
    def policy(self) -> str:
        return self._scheduler.policy

    @property
    def scheduler(self):
        return self._scheduler

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def timeout(self) -> float:
        """Maximum entry age in milliseconds. Defaults to 60 seconds."""
        return self._timeout

    @timeout.setter
    def timeout(self, timeout_ms: float) -> None:
        value = validate_timeout(timeout_ms)
        self._timeout = value
        logger.debug("Cache timeout set to %.1fms", value)
        self._scheduler.timeout_changed(value)

    def _shard_for(self, key: str) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def update(self, key: str, value: T) -> None:
        """Insert or overwrite `key`, resetting its age to zero."""
        shard = self._shard_for(key)
        with shard.lock:
            entry = CacheEntry(value=value, stamp=now_ms(), version=next(self._versions))
            shard.entries[key] = entry
            # Inside the lock so timers are armed in the same order as writes land.
            self._scheduler.entry_updated(key, entry.version, self._timeout)

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        shard = self._shard_for(key)
        now = now_ms()
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None:
                return None

            if now - entry.stamp < self._timeout:
                return entry

            # Stale: drop it now instead of waiting for the scheduler.
            del shard.entries[key]
            self._scheduler.entry_removed(key, entry.version)

        logger.debug("Expired %r on read", key)
        return None

    def get(self, key: str) -> Optional[T]:
        """Return the cached value for `key`, or None when absent or expired."""
        entry = self._lookup(key)
        return None if entry is None else entry.value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def delete(self, key: str) -> None:
        """Remove `key` if present. Deleting a missing key is a no-op."""
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.pop(key, None)
            if entry is not None:
                self._scheduler.entry_removed(key, entry.version)

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                for key, entry in shard.entries.items():
                    self._scheduler.entry_removed(key, entry.version)
                shard.entries.clear()

    def sweep(self) -> int:
        """Remove every entry older than the current timeout; return the count."""
        timeout = self._timeout
        removed = 0

        for shard in self._shards:
            now = now_ms()
            with shard.lock:
                # Ages are re-read under the lock, so a concurrent update always survives.
                stale = [key for key, entry in shard.entries.items() if now - entry.stamp >= timeout]
                for key in stale:
                    entry = shard.entries.pop(key)
                    self._scheduler.entry_removed(key, entry.version)
            removed += len(stale)

        if removed:
            logger.debug("Swept %d expired entries", removed)
        return removed

    def expire(self, key: str, version: int) -> bool:
        """Remove `key` only if it still holds `version` and has aged out.

        A matching entry that is still fresh (the timeout was raised after
        it was written) is re-armed for its remaining lifetime instead.
        """
        shard = self._shard_for(key)
        now = now_ms()
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None or entry.version != version:
                return False

            remaining = entry.stamp + self._timeout - now
            if remaining > 0:
                self._scheduler.entry_updated(key, version, remaining)
                return False

            del shard.entries[key]
            self._scheduler.entry_removed(key, version)

        logger.debug("Evicted %r after timeout", key)
        return True

    @property
    def stats(self) -> CacheStats:
        """Occupancy of live entries, recomputed on every read."""
        timeout = self._timeout
        size = 0
        oldest: Optional[float] = None
        newest: Optional[float] = None

        for shard in self._shards:
            now = now_ms()
            with shard.lock:
                for entry in shard.entries.values():
                    if now - entry.stamp >= timeout:
                        continue
                    size += 1
                    oldest = entry.stamp if oldest is None else min(oldest, entry.stamp)
                    newest = entry.stamp if newest is None else max(newest, entry.stamp)

        if size == 0:
            return EMPTY_STATS
        return CacheStats(size=size, oldest_item=oldest, newest_item=newest)

    def __len__(self) -> int:
        return self.stats.size

    def close(self) -> None:
        """Stop background eviction and cancel every pending timer."""
        if self._closed:
            return
        self._closed = True
        self._scheduler.stop()
        logger.debug("Cache closed (policy=%s)", self.policy)

    def __enter__(self) -> "Cache[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
