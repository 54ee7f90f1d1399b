"""Eviction schedulers for the TTL cache.

Two policies are available:

- SweepScheduler ("sweep"): a daemon worker scans the whole cache every
  `interval_ms` and right after every timeout change. Lowering the
  timeout therefore expires already-cached entries sooner.
- TimerScheduler ("timer"): one worker thread waiting on a heap of
  per-entry deadlines, re-armed on every update. A timeout change only
  applies to entries written after it.

Background failures are logged and never reach cache callers; reads
enforce freshness on their own.
"""

from __future__ import annotations

import heapq
import logging
import math
import threading
import time
from typing import Dict, List, Optional, Tuple

from core.errors import ValidationError
from core.interfaces import EvictionScheduler, EvictionTarget

logger = logging.getLogger(__name__)

_HEAP_SLACK = 64


class SweepScheduler:
    policy = "sweep"

    def __init__(self, target: EvictionTarget, *, interval_ms: float) -> None:
        if isinstance(interval_ms, bool) or not isinstance(interval_ms, (int, float)):
            raise ValidationError(f"Sweep interval must be a number of milliseconds, got {interval_ms!r}")
        interval = float(interval_ms)
        if not math.isfinite(interval) or interval <= 0:
            raise ValidationError(f"Sweep interval must be a positive number of milliseconds, got {interval_ms!r}")

        self._target = target
        self._interval = interval / 1000.0
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.sweeps = 0

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None or self._stopped.is_set():
                return
            self._thread = threading.Thread(target=self._run, name="cache-sweeper", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        self._wake.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

    def timeout_changed(self, timeout_ms: float) -> None:
        # Re-evaluate every entry against the new timeout right away.
        self._wake.set()

    def entry_updated(self, key: str, version: int, ttl_ms: float) -> None:
        # Nothing to arm: the next sweep reads the fresh timestamp.
        pass

    def entry_removed(self, key: str, version: int) -> None:
        pass

    def run_once(self) -> int:
        try:
            removed = self._target.sweep()
        except Exception:
            logger.exception("Cache sweep failed")
            return 0

        self.sweeps += 1
        return removed

    def _run(self) -> None:
        logger.debug("Cache sweeper started (interval=%.3fs)", self._interval)
        while not self._stopped.is_set():
            self._wake.wait(self._interval)
            # Clear before sweeping so a timeout change during the sweep triggers another one.
            self._wake.clear()
            if self._stopped.is_set():
                break
            self.run_once()
        logger.debug("Cache sweeper stopped")


class TimerScheduler:
    policy = "timer"

    def __init__(self, target: EvictionTarget) -> None:
        self._target = target
        # (deadline in monotonic seconds, version, key); versions are unique so keys never compare
        self._heap: List[Tuple[float, int, str]] = []
        self._armed: Dict[str, int] = {}
        self._cond = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._armed)

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        with self._cond:
            if self._thread is not None or self._stopped:
                return
            self._thread = threading.Thread(target=self._run, name="cache-expiry", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._cond:
            self._stopped = True
            cancelled = len(self._armed)
            self._heap.clear()
            self._armed.clear()
            self._cond.notify_all()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)
        if cancelled:
            logger.debug("Cancelled %d pending evictions", cancelled)

    def timeout_changed(self, timeout_ms: float) -> None:
        logger.debug("Timeout changed to %.1fms; armed deadlines are kept", timeout_ms)

    def entry_updated(self, key: str, version: int, ttl_ms: float) -> None:
        deadline = time.monotonic() + max(0.0, ttl_ms) / 1000.0
        with self._cond:
            if self._stopped:
                return
            # Supersedes any earlier version; its heap slot is skipped when it comes due.
            self._armed[key] = version
            heapq.heappush(self._heap, (deadline, version, key))
            if len(self._heap) > 2 * len(self._armed) + _HEAP_SLACK:
                self._compact()
            self._cond.notify()

    def entry_removed(self, key: str, version: int) -> None:
        with self._cond:
            if self._armed.get(key) == version:
                del self._armed[key]

    def _compact(self) -> None:
        # caller holds _cond
        self._heap = [item for item in self._heap if self._armed.get(item[2]) == item[1]]
        heapq.heapify(self._heap)

    def _next_due(self) -> Optional[Tuple[str, int]]:
        # caller holds _cond; blocks until an armed entry is due or the scheduler stops
        while not self._stopped:
            if not self._heap:
                self._cond.wait()
                continue

            deadline, version, key = self._heap[0]
            delay = deadline - time.monotonic()
            if delay > 0:
                self._cond.wait(delay)
                continue

            heapq.heappop(self._heap)
            if self._armed.get(key) == version:
                del self._armed[key]
                return key, version
        return None

    def _run(self) -> None:
        logger.debug("Cache expiry worker started")
        while True:
            with self._cond:
                due = self._next_due()
            if due is None:
                break
            # Outside the lock: expire() may re-arm through entry_updated.
            self._fire(*due)
        logger.debug("Cache expiry worker stopped")

    def _fire(self, key: str, version: int) -> None:
        try:
            self._target.expire(key, version)
        except Exception:
            logger.exception("Timed eviction of %r failed", key)


def make_scheduler(policy: str, target: EvictionTarget, *, sweep_interval_ms: float) -> EvictionScheduler:
    """Return the scheduler implementing `policy` for `target`."""
    if policy == "sweep":
        return SweepScheduler(target, interval_ms=sweep_interval_ms)
    if policy == "timer":
        return TimerScheduler(target)
    raise ValidationError(f"Unknown eviction policy: {policy!r}")
