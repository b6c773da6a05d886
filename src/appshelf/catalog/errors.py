"""
Catalog error hierarchy.

Every error carries a human readable message, a machine readable code and a
details mapping so the API layer can serialize it without knowing the type.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """
    Base exception for catalog failures.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause

    def __str__(self):
        s = self.message
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationFailed(CatalogError):
    """A draft violated a format rule; nothing was sent to the store."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            reason,
            code="VALIDATION_FAILED",
            details={"field": field},
        )
        self.field = field
        self.reason = reason


class RemoteWriteFailed(CatalogError):
    """Create, update, delete or increment was rejected by the store."""

    def __init__(
        self,
        operation: str,
        item_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        target = f" for '{item_id}'" if item_id else ""
        super().__init__(
            f"Failed to {operation} catalog item{target}",
            code="REMOTE_WRITE_FAILED",
            details={"operation": operation, "item_id": item_id},
            cause=cause,
        )
        self.operation = operation
        self.item_id = item_id


class RemoteReadFailed(CatalogError):
    """The collection subscription reported an error."""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(
            "Catalog subscription failed",
            code="REMOTE_READ_FAILED",
            cause=cause,
        )


class AssetCleanupFailed(CatalogError):
    """An uploaded asset could not be removed. Never fatal."""

    def __init__(self, reference: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to delete asset '{reference}'",
            code="ASSET_CLEANUP_FAILED",
            details={"reference": reference},
            cause=cause,
        )
        self.reference = reference


class AuthorizationDenied(CatalogError):
    def __init__(self, reason: str = "Access denied. Only authorized admin can log in."):
        super().__init__(reason, code="AUTHORIZATION_DENIED")
        self.reason = reason
