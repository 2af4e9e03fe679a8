"""Quota store interfaces and the rate limit result types.

The limiter core depends on this abstraction (not a concrete backend) so the
distributed store and the process-local store are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass
class CounterRecord:
    """Counter state for one key in the current fixed window.

    Attributes:
        count: Observations recorded in the current window (may exceed the limit).
        reset_at: UNIX epoch seconds when the window ends.
    """

    count: int
    reset_at: float


@dataclass(frozen=True)
class Decision:
    """Result of a single rate limit evaluation.

    Attributes:
        success: Whether the request is within its quota.
        limit: Max requests per window, as supplied by the caller.
        remaining: Remaining requests in the current window (never negative).
        reset: UNIX epoch seconds when the current window resets.
    """

    success: bool
    limit: int
    remaining: int
    reset: float

    @property
    def reset_at(self) -> datetime:
        """Reset time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)


class AbstractQuotaStore(ABC):
    """Interface for fixed-window counter storage."""

    backend: str = "abstract"

    @abstractmethod
    async def hit(self, key: str, window_seconds: int, now: float) -> CounterRecord:
        """Record one observation for a key.

        Args:
            key: Fully namespaced counter key.
            window_seconds: Window length applied when a new window starts.
            now: Current UNIX time in seconds.

        Returns:
            CounterRecord with the post-increment count and the window reset time.

        Raises:
            QuotaStoreUnavailableError: If a remote backend cannot serve the call.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
        return None
