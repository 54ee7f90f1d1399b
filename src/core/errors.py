from __future__ import annotations


class DocCacheError(Exception):
    """Base error for the document cache."""


class ValidationError(DocCacheError):
    """Raised when caller input is invalid."""


class InvalidTimeoutError(ValidationError):
    """Raised when a cache timeout is negative or not a finite number."""


class SchemaValidationError(ValidationError):
    """Raised when a document is rejected by its collection schema."""


class AccessDeniedError(DocCacheError):
    """Raised when an operation tries to access data outside the data root."""


class NotFoundError(DocCacheError):
    """Raised when a requested document or collection is not found."""
