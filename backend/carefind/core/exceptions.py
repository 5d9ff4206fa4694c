# backend/carefind/core/exceptions.py
"""
Exceptions raised by the catalog search layer.

Store adapters translate driver errors into ``StoreUnavailable``; the API
layer renders any ``CatalogError`` through ``to_dict()`` with its
``status_code``.
"""
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base exception for catalog search failures."""

    code = "catalog_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


class StoreUnavailable(CatalogError):
    """The backing store failed or timed out; the whole request fails."""

    code = "database_unavailable"
    status_code = 503

    @classmethod
    def from_error(cls, operation: str, exc: Exception) -> "StoreUnavailable":
        return cls(
            f"database_unavailable: {exc.__class__.__name__}",
            details={"operation": operation},
        )


class NotFound(CatalogError):
    code = "not_found"
    status_code = 404


class InvalidRequest(CatalogError):
    code = "invalid_request"
    status_code = 400
