"""Application-level exception types.

This module defines the domain errors raised by the limiter, its stores and
the HTTP wiring, enabling consistent error handling, logging, and API
responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what it knows.
    """

    code: str
    message: str
    hint: str
    limiter: str
    max_calls: int
    period_seconds: float
    retry_after: float
    backend: str
    field: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised when limiter or backend configuration is invalid."""


class PersistenceAppError(AppError):
    """Raised when the persistence backend fails to read or commit a record."""


class QuotaExceededAppError(AppError):
    """Raised when a qualifier has used up its call quota for the window."""
