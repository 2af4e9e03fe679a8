"""Fixed-window rate limiter core.

The limiter turns a quota store counter into an allow/deny ``Decision`` and
combines several independent dimensions (e.g., IP and email) into a single,
most restrictive decision.

Fixed window, not sliding: a key's window starts on its first request and
does not extend on later requests. The counter keeps growing past the limit
so denied traffic stays visible; only ``success`` flips.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, NamedTuple, Sequence

from app.adapters.rate_limit.base import AbstractQuotaStore, Decision
from app.core.logging import hash_for_log
from app.utils.client_ip import HeaderLookup, get_client_ip

logger = logging.getLogger(__name__)


class LimitRule(NamedTuple):
    """One dimension of a composite evaluation."""

    key: str
    limit: int
    window_seconds: int


def combine_decisions(decisions: Sequence[Decision]) -> Decision:
    """Reduce several decisions to the most restrictive one.

    The first failing decision (in list order) is returned unchanged. When all
    pass, the result takes the smallest limit and remaining and the latest reset.

    Args:
        decisions: Non-empty sequence of constituent decisions.

    Returns:
        Decision: The combined outcome.

    Raises:
        ValueError: If decisions is empty.
    """
    if not decisions:
        raise ValueError("at least one decision is required")

    for decision in decisions:
        if not decision.success:
            return decision

    return Decision(
        success=True,
        limit=min(d.limit for d in decisions),
        remaining=min(d.remaining for d in decisions),
        reset=max(d.reset for d in decisions),
    )


class RateLimiter:
    """Evaluate fixed-window quotas against a quota store.

    Attributes:
        key_prefix: Namespace prepended to every key before it reaches the store.
    """

    def __init__(
        self,
        store: AbstractQuotaStore,
        *,
        key_prefix: str = "ratelimit:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock
        self.key_prefix = key_prefix

    @property
    def store(self) -> AbstractQuotaStore:
        return self._store

    @property
    def backend(self) -> str:
        return self._store.backend

    @property
    def degraded(self) -> bool:
        return bool(getattr(self._store, "degraded", False))

    def now(self) -> float:
        """Current time according to the limiter's clock."""
        return self._clock()

    async def evaluate(self, key: str, limit: int, window_seconds: int) -> Decision:
        """Record one request for key and decide whether it is allowed.

        Arguments are not validated: a zero limit denies every request and a
        non-positive window yields windows that expire immediately.

        Args:
            key: Caller-namespaced identifier (e.g., ``"ip:1.2.3.4"``).
            limit: Maximum requests per window.
            window_seconds: Window length in seconds.

        Returns:
            Decision for this request. Store outages are absorbed by the store,
            so this never raises for them.
        """
        now = self._clock()
        record = await self._store.hit(f"{self.key_prefix}{key}", window_seconds, now)

        decision = Decision(
            success=record.count <= limit,
            limit=limit,
            remaining=max(0, limit - record.count),
            reset=record.reset_at,
        )

        if not decision.success:
            logger.info(
                "rate_limit.denied",
                extra={
                    "key_hash": hash_for_log(key),
                    "limit": limit,
                    "count": record.count,
                    "window_s": window_seconds,
                    "backend": self.backend,
                },
            )
        return decision

    async def evaluate_all(self, rules: Sequence[LimitRule]) -> Decision:
        """Evaluate several independent rules concurrently and combine them.

        Every rule is counted even when another one already fails.

        Args:
            rules: Rules to evaluate; earlier rules win ties between failures.

        Returns:
            Decision: See ``combine_decisions``.

        Raises:
            ValueError: If rules is empty.
        """
        if not rules:
            raise ValueError("at least one rule is required")

        decisions = await asyncio.gather(
            *(self.evaluate(rule.key, rule.limit, rule.window_seconds) for rule in rules)
        )
        return combine_decisions(decisions)

    async def limit_by_ip(
        self, headers: HeaderLookup, limit: int, window_seconds: int
    ) -> Decision:
        """Rate limit by client IP taken from the request headers."""
        return await self.evaluate(f"ip:{get_client_ip(headers)}", limit, window_seconds)

    async def limit_by_email(self, email: str, limit: int, window_seconds: int) -> Decision:
        """Rate limit by email address."""
        return await self.evaluate(f"email:{email}", limit, window_seconds)

    async def limit_combined(
        self,
        headers: HeaderLookup,
        email: str,
        ip_limit: int,
        email_limit: int,
        window_seconds: int,
    ) -> Decision:
        """Require both the IP and the email quotas to pass.

        The IP rule is listed first, so when both fail the IP decision is returned.
        """
        return await self.evaluate_all(
            [
                LimitRule(f"ip:{get_client_ip(headers)}", ip_limit, window_seconds),
                LimitRule(f"email:{email}", email_limit, window_seconds),
            ]
        )
