"""
Error types for the ranking engine.

Every error raised by the core derives from CatalogError so the HTTP
layer can map the whole family in one place.
"""


class CatalogError(Exception):
    """Base exception for the catalog and ranking engine."""

    def __init__(self, message: str, detail=None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """Input the caller must correct (bad adjustment, missing import field)."""
    pass


class NotFoundError(CatalogError):
    """Referenced wine does not exist."""
    pass


class StorageError(CatalogError):
    """Underlying store unavailable or transaction failed. Never retried here."""
    pass


class UnauthorizedError(CatalogError):
    """A mutating operation was called without prior authorization."""
    pass
