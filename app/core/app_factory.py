"""Application factory for the FastAPI app.

Centralizes app construction (limiter, middleware, handlers, routers) so
tests can build isolated instances with their own quota store.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractQuotaStore
from app.adapters.rate_limit.factory import create_quota_store, find_memory_store
from app.api.routes import health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.rate_limiter import RateLimiter
from app.services.sweeper import MemoryStoreSweeper


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the in-memory sweeper while serving and close the store on shutdown."""
    sweeper: MemoryStoreSweeper | None = app.state.sweeper
    if sweeper is not None:
        await sweeper.start()
    try:
        yield
    finally:
        if sweeper is not None:
            await sweeper.stop()
        await app.state.rate_limiter.store.close()


def create_app(store: AbstractQuotaStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Quota store to inject; defaults to the configured backend.

    Returns:
        Configured FastAPI app with limiter, middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Registration Guard API",
        description=(
            "Fixed-window rate limiting for OTP and registration endpoints, "
            "backed by Redis with an in-memory fallback."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    if store is None:
        store = create_quota_store(settings)
    app.state.rate_limiter = RateLimiter(store, key_prefix=settings.rate_limit.key_prefix)

    memory_store = find_memory_store(store)
    app.state.sweeper = (
        MemoryStoreSweeper(memory_store, interval=settings.rate_limit.sweep_interval_seconds)
        if memory_store is not None
        else None
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)

    return app
