from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import AccessDeniedError, DocCacheError, ValidationError
from core.paths import document_filename, normalize_segment, split_document_filename


"""Filesystem-backed JSON document storage.

Each document lives in <root>/<collection>/<id>.json. Every path is
resolved and checked against the root before it is touched.
"""

Document = Dict[str, Any]


class FileStore:
    # One JSON file per document, grouped by collection directory.

    def __init__(self, *, root: Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _collection_dir(self, collection: str) -> Path:
        name = normalize_segment(collection)
        if not name:
            raise ValidationError(f"Invalid collection name: {collection!r}")
        return self._resolve_under_root(name)

    def _document_path(self, collection: str, doc_id: str) -> Path:
        name = normalize_segment(collection)
        if not name:
            raise ValidationError(f"Invalid collection name: {collection!r}")
        clean_id = normalize_segment(doc_id)
        if not clean_id:
            raise ValidationError(f"Invalid document id: {doc_id!r}")
        return self._resolve_under_root(f"{name}/{document_filename(clean_id)}")

    def _resolve_under_root(self, rel_path: str) -> Path:
        p = (self._root / rel_path).resolve()

        # Containment check, symlinks included
        try:
            p.relative_to(self._root)
        except ValueError as e:
            raise AccessDeniedError("Access outside the data root is not allowed") from e

        return p

    async def read(self, collection: str, doc_id: str) -> Optional[Document]:
        p = self._document_path(collection, doc_id)

        def _do() -> Optional[Document]:
            if not p.is_file():
                return None
            try:
                return json.loads(p.read_text(encoding="utf-8"))
            except ValueError as e:
                raise DocCacheError(f"Corrupt document file: {p.name}") from e

        # Offload blocking filesystem IO to a thread to keep the event loop responsive
        return await asyncio.to_thread(_do)

    async def write(self, collection: str, doc_id: str, document: Document) -> None:
        p = self._document_path(collection, doc_id)

        def _do() -> None:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp = p.with_name(f".{p.name}.tmp")
            tmp.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
            # Readers never see a half-written file
            os.replace(tmp, p)

        await asyncio.to_thread(_do)

    async def delete(self, collection: str, doc_id: str) -> bool:
        p = self._document_path(collection, doc_id)

        def _do() -> bool:
            try:
                p.unlink()
            except FileNotFoundError:
                return False
            return True

        return await asyncio.to_thread(_do)

    async def list_ids(self, collection: str) -> List[str]:
        base = self._collection_dir(collection)

        def _do() -> List[str]:
            if not base.is_dir():
                return []
            out: List[str] = []
            for p in base.iterdir():
                doc_id, ok = split_document_filename(p.name)
                if ok and p.is_file():
                    out.append(doc_id)
            return sorted(out)

        return await asyncio.to_thread(_do)

    async def list_collections(self) -> List[str]:
        def _do() -> List[str]:
            if not self._root.is_dir():
                return []
            return sorted(p.name for p in self._root.iterdir() if p.is_dir() and not p.name.startswith("."))

        return await asyncio.to_thread(_do)
