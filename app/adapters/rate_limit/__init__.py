"""Rate limiting adapters.

This package provides the quota store abstraction so the limiter can run on
a shared Redis in production and an in-memory store in development, with
the in-memory store taking over while Redis is unavailable.
"""

from app.adapters.rate_limit.base import AbstractQuotaStore, CounterRecord, Decision
from app.adapters.rate_limit.factory import create_quota_store, find_memory_store
from app.adapters.rate_limit.in_memory import InMemoryQuotaStore
from app.adapters.rate_limit.redis_store import RedisQuotaStore
from app.adapters.rate_limit.tiered import FallbackPolicy, TieredQuotaStore

__all__ = [
    "AbstractQuotaStore",
    "CounterRecord",
    "Decision",
    "FallbackPolicy",
    "InMemoryQuotaStore",
    "RedisQuotaStore",
    "TieredQuotaStore",
    "create_quota_store",
    "find_memory_store",
]
