"""MCP tools that read and write documents through the cached database.

Registers 'read_document', 'write_document', 'delete_document' and
'list_documents'. Reads are served from the collection cache when the
document is fresh and fall back to disk otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from documents.database import Database


def _require(value: Optional[str], what: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"Missing {what}")
    return value.strip()


def register(mcp: FastMCP, *, database: Database) -> None:
    @mcp.tool(name="read_document")
    async def read_document(collection: str = "", id: str = "") -> Optional[Dict[str, Any]]:
        """Read one document by id.

        Params:
          - collection: collection name (required).
          - id: document id (required).

        Returns:
          The document, or null when it does not exist.
        """
        col = database.collection(_require(collection, "collection"))
        return await col.read(_require(id, "document id"))

    @mcp.tool(name="write_document")
    async def write_document(collection: str = "", document: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create a document, or merge into it when its id already exists.

        Params:
          - collection: collection name (required).
          - document: JSON object; "id" is optional for new documents.

        Returns:
          The stored document including its id.

        Raises:
          ValidationError for missing inputs; SchemaValidationError when the
          collection schema rejects the document.
        """
        if not document:
            raise ValidationError("Missing document")

        col = database.collection(_require(collection, "collection"))
        doc_id = document.get("id")
        if doc_id:
            updated = await col.update(str(doc_id), document)
            if updated is not None:
                return updated
        return await col.create(document)

    @mcp.tool(name="delete_document")
    async def delete_document(collection: str = "", id: str = "") -> bool:
        """Delete a document and drop it from the cache. Returns False if it did not exist."""
        col = database.collection(_require(collection, "collection"))
        return await col.delete(_require(id, "document id"))

    @mcp.tool(name="list_documents")
    async def list_documents(collection: str = "") -> List[Dict[str, Any]]:
        """List every document in a collection, sorted by id."""
        col = database.collection(_require(collection, "collection"))
        return await col.list()
