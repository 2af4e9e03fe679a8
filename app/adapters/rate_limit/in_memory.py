"""In-memory fixed-window quota store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- The increment never awaits, so it is atomic with respect to the event loop.
"""

from __future__ import annotations

import threading
import time

from app.adapters.rate_limit.base import AbstractQuotaStore, CounterRecord


class InMemoryQuotaStore(AbstractQuotaStore):
    """Quota store keeping one counter per key in a process-local dict.

    Intended for development and as the degraded-mode fallback behind Redis.

    Important:
        If the API runs with multiple workers (e.g., multiple Uvicorn/Gunicorn
        workers), each worker keeps its own independent counters.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, CounterRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, key: str) -> CounterRecord | None:
        """Return a copy of the stored record for key, if any."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return CounterRecord(count=record.count, reset_at=record.reset_at)

    async def hit(self, key: str, window_seconds: int, now: float) -> CounterRecord:
        """Increment the counter for key, starting a new window when expired.

        Args:
            key: Fully namespaced counter key.
            window_seconds: Window length used when a new window starts.
            now: Current UNIX time in seconds.

        Returns:
            Snapshot of the record after the increment.
        """
        with self._lock:
            record = self._records.get(key)
            if record is None or now > record.reset_at:
                record = CounterRecord(count=1, reset_at=now + window_seconds)
                self._records[key] = record
            else:
                # Window does not extend on additional requests
                record.count += 1
            return CounterRecord(count=record.count, reset_at=record.reset_at)

    def sweep(self, now: float | None = None) -> int:
        """Remove records whose window has already elapsed.

        Args:
            now: Reference UNIX time; defaults to the current time.

        Returns:
            Number of records removed.
        """
        if now is None:
            now = time.time()

        with self._lock:
            expired_keys = [k for k, record in self._records.items() if now > record.reset_at]
            for key in expired_keys:
                del self._records[key]
            return len(expired_keys)

    def clear(self) -> None:
        """Drop every counter."""
        with self._lock:
            self._records.clear()
