"""
Core Type Definitions and Exceptions

Service-specific exceptions. Upstream failures are raised inside clients and
adapters and caught at the component boundary, where they degrade to stale or
empty results.
"""
from __future__ import annotations

from typing import Any, Optional


class NewsdeskError(Exception):
    """Base exception for all news desk errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ValidationError(NewsdeskError):
    """Raised when an upstream payload or item has an unexpected shape."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = repr(value)[:100]  # Truncate long values
        super().__init__(message, ctx)
        self.field = field
        self.value = value


class FetchError(NewsdeskError):
    """Raised when an upstream request fails (network error or non-2xx)."""

    def __init__(
        self,
        message: str,
        service: str,
        status: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["service"] = service
        if status is not None:
            ctx["status"] = status
        super().__init__(message, ctx)
        self.service = service
        self.status = status
