"""Factory pattern for creating the configured quota store."""

from __future__ import annotations

import logging

from redis.asyncio import Redis

from app.adapters.rate_limit.base import AbstractQuotaStore
from app.adapters.rate_limit.in_memory import InMemoryQuotaStore
from app.adapters.rate_limit.redis_store import RedisQuotaStore
from app.adapters.rate_limit.tiered import FallbackPolicy, TieredQuotaStore
from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_redis_client(cfg: Settings) -> Redis:
    """Build an asyncio Redis client from settings.

    Args:
        cfg: Application settings with a configured ``redis.url``.

    Returns:
        Redis: Client with socket timeouts applied.
    """
    return Redis.from_url(
        cfg.redis.url,
        password=cfg.redis.token,
        socket_timeout=cfg.redis.socket_timeout_seconds,
        socket_connect_timeout=cfg.redis.socket_timeout_seconds,
        decode_responses=True,
    )


def create_quota_store(cfg: Settings | None = None) -> AbstractQuotaStore:
    """Select the quota store backend from configuration.

    With ``REDIS_URL`` set, Redis is the primary store and an in-memory store
    serves calls while Redis is unavailable. Without it, only the in-memory
    store is used and a warning is emitted.

    Args:
        cfg: Settings to read; defaults to the global settings.

    Returns:
        AbstractQuotaStore: Configured store instance.
    """
    cfg = cfg or default_settings

    if cfg.redis.url:
        return TieredQuotaStore(
            primary=RedisQuotaStore(create_redis_client(cfg)),
            fallback=InMemoryQuotaStore(),
            policy=FallbackPolicy(cooldown_seconds=cfg.rate_limit.fallback_cooldown_seconds),
        )

    logger.warning(
        "rate_limit.memory_backend",
        extra={
            "hint": "Using in-memory store. Configure REDIS_URL for production!",
        },
    )
    return InMemoryQuotaStore()


def find_memory_store(store: AbstractQuotaStore) -> InMemoryQuotaStore | None:
    """Return the in-memory store used directly or as a fallback tier."""
    if isinstance(store, InMemoryQuotaStore):
        return store
    if isinstance(store, TieredQuotaStore):
        return find_memory_store(store.fallback)
    return None
