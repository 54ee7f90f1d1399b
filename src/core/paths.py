from __future__ import annotations

from typing import Tuple

"""
Name utilities used by the document store.

Collection names and document ids become path segments on disk, so they
are normalized and rejected when they could escape their directory.
"""

DOCUMENT_SUFFIX = ".json"

_FORBIDDEN = ("/", "\\", "\x00")


def normalize_segment(name: str) -> str:
    """Trim a collection name or document id to a single clean segment.

    Returns '' for anything that cannot be used as one path segment.
    """
    s = (name or "").strip()
    if s in ("", ".", ".."):
        return ""
    if any(ch in s for ch in _FORBIDDEN):
        return ""
    return s


def document_filename(doc_id: str) -> str:
    """Map a (normalized) document id to its file name."""
    return f"{doc_id}{DOCUMENT_SUFFIX}"


def split_document_filename(filename: str) -> Tuple[str, bool]:
    """Inverse of document_filename: return (doc_id, is_document)."""
    if not filename.endswith(DOCUMENT_SUFFIX) or filename.startswith("."):
        return "", False
    doc_id = filename[: -len(DOCUMENT_SUFFIX)]
    return doc_id, bool(doc_id)
