"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Attributes:
        retry_after: Seconds until the exhausted window resets.
        backend: Quota store backend that failed.
        error_type: Class name of the underlying client exception.
    """

    retry_after: int
    backend: str
    error_type: str


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


class QuotaStoreUnavailableError(AppError):
    """Raised when the distributed quota store cannot be reached or errors.

    Always recovered by the tiered store; never reaches HTTP callers.
    """


@dataclass
class RateLimitExceededError(AppError):
    """Raised when a guarded request exceeds its quota.

    Attributes:
        headers: Rate limit headers to attach to the 429 response.
    """

    headers: dict[str, str] = field(default_factory=dict)
