"""Rate limiting dependencies for FastAPI routes.

This module wires the limiter core into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function or one helper call.
- Headers on every guarded response: X-RateLimit-* are attached to successes
  and to 429 rejections alike.
- Safe defaults: a kill switch (RATE_LIMIT_ENABLED) turns the guards into
  pass-throughs.

Typical usage:
- IP-only endpoints (e.g., OTP verification, 20 req/60s):
  ``dependencies=[Depends(rate_limit_by_ip(20, 60))]``
- IP + email endpoints (e.g., OTP send, IP 10/60s and email 3/60s): call
  ``enforce_combined_rate_limit`` once the email is parsed from the body.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import Request, Response

from app.adapters.rate_limit.base import Decision
from app.core.config import settings
from app.core.errors import RateLimitExceededError
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def format_reset(reset: float) -> str:
    """Format an epoch-seconds reset time as ISO-8601 UTC with milliseconds.

    Examples:
        >>> format_reset(0)
        '1970-01-01T00:00:00.000Z'
    """

    dt = datetime.fromtimestamp(reset, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_rate_limit_headers(decision: Decision) -> dict[str, str]:
    """Project a decision onto the X-RateLimit-* response headers."""

    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": format_reset(decision.reset),
    }


def retry_after_seconds(decision: Decision, now: float | None = None) -> int:
    """Seconds until the decision's window resets, rounded up, never negative."""

    if now is None:
        now = time.time()
    return max(0, math.ceil(decision.reset - now))


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the limiter built at application startup.

    Raises:
        RuntimeError: If the application was created without a limiter.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise RuntimeError("rate limiter is not configured on app.state")
    return limiter


def enforce_decision(
    decision: Decision, response: Response | None = None, now: float | None = None
) -> None:
    """Attach rate limit headers and reject the request when over quota.

    Args:
        decision: Outcome of the limiter evaluation.
        response: Outgoing response to decorate on success (optional).
        now: Time used for Retry-After; pass the limiter's clock so both agree.

    Raises:
        RateLimitExceededError: When ``decision.success`` is False.
    """

    headers = build_rate_limit_headers(decision) if settings.rate_limit.include_headers else {}

    if decision.success:
        if response is not None:
            response.headers.update(headers)
        return

    retry_after = retry_after_seconds(decision, now=now)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "limit": decision.limit,
            "remaining": decision.remaining,
            "retry_after_s": retry_after,
        },
    )

    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message="Too many requests. Please wait before trying again.",
        details={"retry_after": retry_after},
        headers={"Retry-After": str(retry_after), **headers},
    )


def rate_limit_by_ip(
    limit: int, window_seconds: int
) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a dependency enforcing a per-client-IP quota.

    Args:
        limit: Maximum requests per window for one IP.
        window_seconds: Window length in seconds.

    Returns:
        Async dependency suitable for ``Depends(...)``.
    """

    async def dependency(request: Request, response: Response) -> None:
        if not settings.rate_limit.enabled:
            return
        limiter = get_rate_limiter(request)
        decision = await limiter.limit_by_ip(request.headers, limit, window_seconds)
        enforce_decision(decision, response, now=limiter.now())

    return dependency


async def enforce_combined_rate_limit(
    request: Request,
    response: Response,
    email: str,
    *,
    ip_limit: int,
    email_limit: int,
    window_seconds: int,
) -> Decision | None:
    """Enforce IP and email quotas together for a request.

    Returns:
        The combined decision, or None when rate limiting is disabled.

    Raises:
        RateLimitExceededError: When either quota is exhausted.
    """

    if not settings.rate_limit.enabled:
        return None

    limiter = get_rate_limiter(request)
    decision = await limiter.limit_combined(
        request.headers, email, ip_limit, email_limit, window_seconds
    )
    enforce_decision(decision, response, now=limiter.now())
    return decision
