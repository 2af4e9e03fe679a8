"""Redis-backed fixed-window quota store.

Counters are shared by every process pointing at the same Redis, so this is
the store to use for multi-worker or multi-instance deployments.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import AbstractQuotaStore, CounterRecord
from app.core.errors import QuotaStoreUnavailableError

logger = logging.getLogger(__name__)


class RedisQuotaStore(AbstractQuotaStore):
    """Quota store using INCR / EXPIRE / TTL on a shared Redis.

    INCR is atomic on the server, so admissions for one key are strictly
    ordered across all instances.
    """

    backend = "redis"

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def hit(self, key: str, window_seconds: int, now: float) -> CounterRecord:
        """Increment the shared counter for key.

        Args:
            key: Fully namespaced counter key.
            window_seconds: Expiry applied when the key is created.
            now: Current UNIX time in seconds.

        Returns:
            CounterRecord with the server-side count and reset time.

        Raises:
            QuotaStoreUnavailableError: On any error raised by the client
                (Redis, network, timeout, closed event loop, ...).
        """
        try:
            count = int(await self._client.incr(key))
            if count == 1:
                await self._client.expire(key, window_seconds)

            ttl = int(await self._client.ttl(key))
            if ttl == -1:
                # Key lost its expiry (caller died between INCR and EXPIRE)
                await self._client.expire(key, window_seconds)
        except Exception as exc:
            raise QuotaStoreUnavailableError(
                code="quota_store_unavailable",
                message="Redis quota store is unavailable",
                details={"backend": self.backend, "error_type": type(exc).__name__},
            ) from exc

        reset_at = now + ttl if ttl > 0 else now + window_seconds
        return CounterRecord(count=count, reset_at=reset_at)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        try:
            await self._client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning(
                "rate_limit.redis_close_failed",
                extra={"error_type": type(exc).__name__},
            )
