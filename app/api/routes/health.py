from __future__ import annotations

from fastapi import APIRouter, Request

from app.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Reports which quota store backs the limiter and whether it is currently
    serving from the in-memory fallback. Used by load balancers and monitoring
    systems; a degraded limiter still answers 200.

    Returns:
        dict: ``status`` plus the ``rate_limit`` backend summary.
    """

    limiter = get_rate_limiter(request)
    return {
        "status": "ok",
        "rate_limit": {
            "backend": limiter.backend,
            "degraded": limiter.degraded,
        },
    }
