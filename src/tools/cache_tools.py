"""MCP tools for observing and tuning collection caches.

Registers 'cache_stats' (read-only occupancy snapshot) and
'set_cache_timeout' (runtime TTL change for one collection).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from documents.collection import Collection
from documents.database import Database


def _snapshot(col: Collection) -> Dict[str, Any]:
    out = col.cache_stats.as_dict()
    out["timeout"] = col.cache.timeout
    out["policy"] = col.cache.policy
    return out


def register(mcp: FastMCP, *, database: Database) -> None:
    @mcp.tool(name="cache_stats")
    def cache_stats(collection: str = "") -> Dict[str, Any]:
        """Return {size, oldestItem, newestItem, timeout, policy} for a collection cache.

        oldestItem/newestItem are monotonic milliseconds, null when the cache is empty.
        """
        if not collection or not collection.strip():
            raise ValidationError("Missing collection")
        return _snapshot(database.collection(collection))

    @mcp.tool(name="set_cache_timeout")
    def set_cache_timeout(collection: str = "", timeout_ms: Optional[float] = None) -> Dict[str, Any]:
        """Change the TTL of a collection cache and return its new stats.

        Params:
          - collection: collection name (required).
          - timeout_ms: new non-negative timeout in milliseconds.

        With the "sweep" policy entries already older than the new timeout
        are evicted on the next sweep, which is triggered immediately.

        Raises:
          InvalidTimeoutError when timeout_ms is negative or not finite.
        """
        if not collection or not collection.strip():
            raise ValidationError("Missing collection")
        if timeout_ms is None:
            raise ValidationError("Missing timeout_ms")

        col = database.collection(collection)
        col.cache.timeout = timeout_ms
        return _snapshot(col)
