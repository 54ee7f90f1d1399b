import pytest

import core.cache as cache_mod


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool registration."""

    def __init__(self) -> None:
        self.tools = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def clock(monkeypatch):
    """Frozen monotonic clock; set t["now"] in seconds."""
    t = {"now": 0.0}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr(cache_mod.time, "monotonic", fake_monotonic)
    return t


@pytest.fixture
def raw_size():
    """Count stored entries, stale ones included (physical occupancy)."""

    def _count(cache) -> int:
        total = 0
        for shard in cache._shards:
            with shard.lock:
                total += len(shard.entries)
        return total

    return _count
