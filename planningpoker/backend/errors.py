"""Typed errors raised by the voting core and their response schema."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standardized error response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional context")


class PokerError(Exception):
    """Base exception for every failure the core reports."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorDetail:
        return ErrorDetail(
            code=self.code,
            message=self.message,
            details=self.details if self.details else None,
        )


class ValidationError(PokerError):
    """Malformed input, rejected before any state is touched."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class NotFoundError(PokerError):
    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} {resource_id} not found",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedError(PokerError):
    def __init__(self, message: str = "Host session required or expired") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class CapacityExceededError(PokerError):
    def __init__(self, limit: int) -> None:
        super().__init__(
            code="CAPACITY_EXCEEDED",
            message=f"Maximum {limit} users allowed per session",
            status_code=403,
            details={"limit": limit},
        )


class PersistenceError(PokerError):
    """Durable store failure; transient from the caller's point of view."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="PERSISTENCE_ERROR",
            message=message,
            status_code=503,
            details=details,
        )
