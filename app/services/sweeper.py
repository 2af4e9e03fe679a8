"""Periodic cleanup of expired in-memory rate limit counters."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from app.adapters.rate_limit.in_memory import InMemoryQuotaStore

logger = logging.getLogger(__name__)


class MemoryStoreSweeper:
    """Background task that drops elapsed windows from an in-memory store.

    Only bounds memory growth; decisions for unexpired keys are unaffected.
    """

    def __init__(self, store: InMemoryQuotaStore, *, interval: float = 300.0) -> None:
        self._store = store
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="rate-limit-sweeper")
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("rate_limit.sweeper_stopped")

    def sweep_once(self) -> int:
        removed = self._store.sweep()
        logger.debug(
            "rate_limit.sweep",
            extra={"removed": removed, "entries": len(self._store)},
        )
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep_once()
            except Exception:
                # Next tick runs on schedule; no immediate retry
                logger.exception("rate_limit.sweep_failed")
