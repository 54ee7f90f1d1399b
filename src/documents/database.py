"""File-backed document database: one directory and one cache per collection."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from core.cache import DEFAULT_SHARDS, DEFAULT_SWEEP_INTERVAL_MS, DEFAULT_TIMEOUT_MS, Cache
from core.errors import DocCacheError, ValidationError
from core.models import EvictionPolicy
from core.paths import normalize_segment
from documents.collection import Collection, Schema
from documents.file_store import FileStore

logger = logging.getLogger(__name__)


class Database:
    def __init__(
        self,
        root: Path,
        *,
        cache_timeout_ms: float = DEFAULT_TIMEOUT_MS,
        policy: EvictionPolicy = "sweep",
        sweep_interval_ms: float = DEFAULT_SWEEP_INTERVAL_MS,
        shards: int = DEFAULT_SHARDS,
    ) -> None:
        self._store = FileStore(root=Path(root))
        self._cache_timeout_ms = cache_timeout_ms
        self._policy = policy
        self._sweep_interval_ms = sweep_interval_ms
        self._shards = shards
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def root(self) -> Path:
        return self._store.root

    @property
    def closed(self) -> bool:
        return self._closed

    def collection(self, name: str, *, schema: Optional[Schema] = None) -> Collection:
        """Return the collection called `name`, creating it on first use.

        Passing a schema for an already open collection replaces its schema.
        """
        clean = normalize_segment(name)
        if not clean:
            raise ValidationError(f"Invalid collection name: {name!r}")

        with self._lock:
            if self._closed:
                raise DocCacheError("Database is closed")

            existing = self._collections.get(clean)
            if existing is not None:
                if schema is not None:
                    existing.schema = schema
                return existing

            cache: Cache = Cache(
                self._cache_timeout_ms,
                policy=self._policy,
                sweep_interval_ms=self._sweep_interval_ms,
                shards=self._shards,
            )
            col = Collection(clean, store=self._store, cache=cache, schema=schema)
            self._collections[clean] = col

        logger.debug("Opened collection %s (timeout=%.1fms, policy=%s)", clean, cache.timeout, cache.policy)
        return col

    def collections(self) -> List[str]:
        with self._lock:
            return sorted(self._collections)

    async def stored_collections(self) -> List[str]:
        """Names of every collection directory on disk, open or not."""
        return await self._store.list_collections()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            cols = list(self._collections.values())
            self._collections.clear()

        for col in cols:
            col.cache.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
