# tvwall/core/exceptions.py
from __future__ import annotations

"""
TV Wall — Application Exceptions
================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` so the
asset store can raise typed errors that the handlers in
`tvwall.core.exception_handlers` render as problem+json.

Taxonomy
--------
- `InvalidArgument` (400): bad filename pattern, non-positive day count,
  missing file. Raised before any filesystem access.
- `InvalidFormat` (400): payload is not an MPEG-4 container by type or extension.
- `NotFound` (404): payload or metadata absent.
- `TooLarge` (413): payload exceeds the configured ceiling.
- `StoreFull` (507): no free identity inside the bounded identity space.

Usage
-----
    raise NotFound(f"Video not found: {filename}", details={"filename": filename})
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "InvalidArgument",
    "InvalidFormat",
    "NotFound",
    "TooLarge",
    "StoreFull",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : int
        Optional internal/typed error code. Defaults to `status_code`.
    details : dict | list | str | None
        Machine-readable details (e.g., offending filename or value).
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[int] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code: int = int(code or status_code)
        self.message: str = message
        self.details: Optional[Any] = details

    def to_problem(self, *, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict matching our error JSON shape."""
        body: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
            "request_id": request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        return body


# ──────────────────────────────────────────────────────────────
# 🗂️ Asset store domain exceptions
# ──────────────────────────────────────────────────────────────
class InvalidArgument(AppException):
    """Rejected input (name pattern, day count, missing file)."""

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message, details=details)


class InvalidFormat(InvalidArgument):
    """Payload is not an MPEG-4 container."""


class NotFound(AppException):
    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message, details=details)


class TooLarge(AppException):
    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            message=message,
            details=details,
        )


class StoreFull(AppException):
    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(status_code=status.HTTP_507_INSUFFICIENT_STORAGE, message=message, details=details)
