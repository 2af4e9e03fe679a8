"""Two-tier quota store: a primary backend with a local fallback.

When the primary (Redis) errors, the call is served by the fallback (memory)
instead of failing the request. The ``FallbackPolicy`` decides whether the
next call tries the primary again.

Known limitation: a key whose calls flip between tiers is counted
independently in each tier, so its effective limit may be exceeded while
the primary is flapping.
"""

from __future__ import annotations

import logging

from app.adapters.rate_limit.base import AbstractQuotaStore, CounterRecord
from app.core.errors import QuotaStoreUnavailableError
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)


class FallbackPolicy:
    """Tracks primary-store health and decides when to demote it.

    Attributes:
        cooldown_seconds: How long after a failure calls skip the primary.
            With the default of 0 every call tries the primary first.
    """

    def __init__(self, cooldown_seconds: float = 0.0) -> None:
        self.cooldown_seconds = cooldown_seconds
        self.degraded = False
        self.failure_count = 0
        self.last_failure_at: float | None = None
        self.last_error: str | None = None

    def use_primary(self, now: float) -> bool:
        """Return True when the next call should go to the primary store."""
        if not self.degraded or self.last_failure_at is None:
            return True
        return now >= self.last_failure_at + self.cooldown_seconds

    def record_failure(self, exc: Exception, now: float) -> None:
        self.degraded = True
        self.failure_count += 1
        self.last_failure_at = now
        self.last_error = type(exc).__name__

    def record_success(self) -> None:
        self.degraded = False
        self.last_error = None


class TieredQuotaStore(AbstractQuotaStore):
    """Quota store that demotes to a fallback when the primary is unavailable."""

    def __init__(
        self,
        primary: AbstractQuotaStore,
        fallback: AbstractQuotaStore,
        policy: FallbackPolicy | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.policy = policy or FallbackPolicy()
        self.backend = f"{primary.backend}+{fallback.backend}"

    @property
    def degraded(self) -> bool:
        return self.policy.degraded

    async def hit(self, key: str, window_seconds: int, now: float) -> CounterRecord:
        """Record an observation on the primary, or the fallback if it fails.

        Store errors are never propagated: the caller always gets a record.
        """
        if not self.policy.use_primary(now):
            return await self.fallback.hit(key, window_seconds, now)

        try:
            record = await self.primary.hit(key, window_seconds, now)
        except QuotaStoreUnavailableError as exc:
            self.policy.record_failure(exc, now)
            logger.warning(
                "rate_limit.store_unavailable",
                extra={
                    "key_hash": hash_for_log(key),
                    "primary": self.primary.backend,
                    "fallback": self.fallback.backend,
                    "error_type": (exc.details or {}).get("error_type", type(exc).__name__),
                    "failure_count": self.policy.failure_count,
                },
            )
            return await self.fallback.hit(key, window_seconds, now)

        if self.policy.degraded:
            logger.info(
                "rate_limit.store_recovered",
                extra={
                    "primary": self.primary.backend,
                    "failure_count": self.policy.failure_count,
                },
            )
            self.policy.record_success()
        return record

    async def close(self) -> None:
        await self.primary.close()
        await self.fallback.close()
