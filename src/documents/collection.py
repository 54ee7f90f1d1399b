"""Document collection backed by a FileStore and fronted by a TTL cache.

Reads go to the cache first and only touch disk on a miss; every write
or delete refreshes or drops the cache entry for that document id.
Operations on one id are serialised by a per-id asyncio.Lock so a slow
disk read can never put an outdated document back into the cache.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
import weakref
from typing import Any, Callable, Dict, List, Mapping, Optional

from core.cache import Cache
from core.errors import SchemaValidationError, ValidationError
from core.models import CacheStats
from documents.file_store import Document, FileStore

logger = logging.getLogger(__name__)

Schema = Callable[[Document], bool]


class Collection:
    def __init__(
        self,
        name: str,
        *,
        store: FileStore,
        cache: Cache[Document],
        schema: Optional[Schema] = None,
    ) -> None:
        self._name = name
        self._store = store
        self._cache = cache
        self.schema = schema
        # Entries vanish once no coroutine holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    @property
    def name(self) -> str:
        return self._name

    @property
    def cache(self) -> Cache[Document]:
        return self._cache

    @property
    def cache_stats(self) -> CacheStats:
        return self._cache.stats

    def _validate(self, document: Document) -> None:
        if self.schema is not None and not self.schema(document):
            raise SchemaValidationError("Document failed schema validation")

    def _lock_for(self, doc_id: str) -> asyncio.Lock:
        lock = self._locks.get(doc_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[doc_id] = lock
        return lock

    async def _load(self, doc_id: str) -> Optional[Document]:
        # caller holds the lock for doc_id, so no write can land between the disk read and the cache fill
        cached = self._cache.get(doc_id)
        if cached is not None:
            return cached

        document = await self._store.read(self._name, doc_id)
        if document is not None:
            self._cache.update(doc_id, document)
        return document

    async def create(self, data: Mapping[str, Any]) -> Document:
        """Persist a new document; an id is generated when `data` has none."""
        if not isinstance(data, Mapping):
            raise ValidationError("Document must be a mapping")

        document: Dict[str, Any] = dict(data)
        doc_id = str(document.get("id") or uuid.uuid4().hex)
        document["id"] = doc_id
        self._validate(document)

        async with self._lock_for(doc_id):
            if await self._load(doc_id) is not None:
                raise ValidationError(f"Document already exists: {doc_id}")

            await self._store.write(self._name, doc_id, document)
            self._cache.update(doc_id, document)
        return copy.deepcopy(document)

    async def read(self, doc_id: str) -> Optional[Document]:
        """Return the document or None if it does not exist."""
        cached = self._cache.get(doc_id)
        if cached is not None:
            return copy.deepcopy(cached)

        async with self._lock_for(doc_id):
            document = await self._load(doc_id)
        return copy.deepcopy(document)

    async def update(self, doc_id: str, changes: Mapping[str, Any]) -> Optional[Document]:
        """Merge `changes` into an existing document. Returns None if it is missing."""
        async with self._lock_for(doc_id):
            current = await self._load(doc_id)
            if current is None:
                return None

            merged: Dict[str, Any] = {**current, **dict(changes), "id": current["id"]}
            self._validate(merged)

            await self._store.write(self._name, doc_id, merged)
            self._cache.update(doc_id, merged)
        return copy.deepcopy(merged)

    async def delete(self, doc_id: str) -> bool:
        async with self._lock_for(doc_id):
            removed = await self._store.delete(self._name, doc_id)
            # Drop the entry even when the file was already gone.
            self._cache.delete(doc_id)
        if removed:
            logger.debug("Deleted %s/%s", self._name, doc_id)
        return removed

    async def list(self) -> List[Document]:
        out: List[Document] = []
        for doc_id in await self._store.list_ids(self._name):
            document = await self.read(doc_id)
            if document is not None:
                out.append(document)
        return out
