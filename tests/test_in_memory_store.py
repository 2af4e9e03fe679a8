"""Unit tests for the in-memory quota store."""

import asyncio
import threading

import pytest

from app.adapters.rate_limit.in_memory import InMemoryQuotaStore


@pytest.mark.asyncio
async def test_first_hit_creates_record(memory_store: InMemoryQuotaStore) -> None:
    record = await memory_store.hit("k", 60, 1000.0)

    assert record.count == 1
    assert record.reset_at == 1060.0
    assert len(memory_store) == 1


@pytest.mark.asyncio
async def test_hits_within_window_increment_without_extending(
    memory_store: InMemoryQuotaStore,
) -> None:
    await memory_store.hit("k", 60, 1000.0)
    second = await memory_store.hit("k", 60, 1010.0)
    third = await memory_store.hit("k", 60, 1059.0)

    assert second.count == 2
    assert third.count == 3
    assert third.reset_at == 1060.0


@pytest.mark.asyncio
async def test_hit_after_reset_starts_new_window(memory_store: InMemoryQuotaStore) -> None:
    await memory_store.hit("k", 10, 1000.0)
    await memory_store.hit("k", 10, 1005.0)

    # Exactly at reset_at the old window is still current
    at_boundary = await memory_store.hit("k", 10, 1010.0)
    assert at_boundary.count == 3

    fresh = await memory_store.hit("k", 10, 1010.5)
    assert fresh.count == 1
    assert fresh.reset_at == 1020.5


@pytest.mark.asyncio
async def test_counter_keeps_growing_past_any_limit(memory_store: InMemoryQuotaStore) -> None:
    for _ in range(25):
        record = await memory_store.hit("k", 60, 1000.0)

    assert record.count == 25


@pytest.mark.asyncio
async def test_returned_record_is_a_snapshot(memory_store: InMemoryQuotaStore) -> None:
    record = await memory_store.hit("k", 60, 1000.0)
    record.count = 99

    stored = memory_store.get("k")
    assert stored is not None
    assert stored.count == 1


@pytest.mark.asyncio
async def test_keys_are_isolated(memory_store: InMemoryQuotaStore) -> None:
    await memory_store.hit("a", 60, 1000.0)
    await memory_store.hit("a", 60, 1000.0)
    other = await memory_store.hit("b", 60, 1000.0)

    assert other.count == 1


@pytest.mark.asyncio
async def test_sweep_removes_only_elapsed_windows(memory_store: InMemoryQuotaStore) -> None:
    await memory_store.hit("old", 10, 1000.0)      # resets at 1010
    await memory_store.hit("edge", 20, 1000.0)     # resets at 1020
    await memory_store.hit("future", 60, 1000.0)   # resets at 1060
    await memory_store.hit("future", 60, 1001.0)

    removed = memory_store.sweep(now=1020.0)

    assert removed == 1
    assert memory_store.get("old") is None
    assert memory_store.get("edge") is not None
    future = memory_store.get("future")
    assert future is not None
    assert future.count == 2
    assert future.reset_at == 1060.0


@pytest.mark.asyncio
async def test_sweep_does_not_change_decisions_for_live_keys(
    memory_store: InMemoryQuotaStore,
) -> None:
    await memory_store.hit("k", 60, 1000.0)
    memory_store.sweep(now=1030.0)

    record = await memory_store.hit("k", 60, 1031.0)
    assert record.count == 2
    assert record.reset_at == 1060.0


def test_sweep_on_empty_store_is_noop(memory_store: InMemoryQuotaStore) -> None:
    assert memory_store.sweep(now=5000.0) == 0


def test_concurrent_hits_from_threads_are_not_lost() -> None:
    store = InMemoryQuotaStore()
    total = 200

    def _worker() -> None:
        asyncio.run(store.hit("shared", 60, 1000.0))

    threads = [threading.Thread(target=_worker) for _ in range(total)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    record = store.get("shared")
    assert record is not None
    assert record.count == total


def test_sweep_from_threads_while_hitting_live_keys() -> None:
    store = InMemoryQuotaStore()
    expired = [f"old-{i}" for i in range(20)]
    live = [f"live-{i}" for i in range(4)]
    hits_per_key = 100
    for key in expired:
        asyncio.run(store.hit(key, 10, 1000.0))  # resets at 1010

    removed: list[int] = []
    removed_lock = threading.Lock()

    def _hitter(key: str) -> None:
        for _ in range(hits_per_key):
            asyncio.run(store.hit(key, 60, 1015.0))

    def _sweeper() -> None:
        for _ in range(50):
            n = store.sweep(now=1020.0)
            with removed_lock:
                removed.append(n)

    threads = [threading.Thread(target=_hitter, args=(key,)) for key in live]
    threads += [threading.Thread(target=_sweeper) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(removed) == len(expired)
    assert all(store.get(key) is None for key in expired)
    for key in live:
        record = store.get(key)
        assert record is not None
        assert record.count == hits_per_key
        assert record.reset_at == 1075.0
    assert len(store) == len(live)


@pytest.mark.asyncio
async def test_concurrent_tasks_are_serialized(memory_store: InMemoryQuotaStore) -> None:
    records = await asyncio.gather(*(memory_store.hit("k", 60, 1000.0) for _ in range(50)))

    assert sorted(r.count for r in records) == list(range(1, 51))


def test_clear_drops_all_records(memory_store: InMemoryQuotaStore) -> None:
    asyncio.run(memory_store.hit("k", 60, 1000.0))
    memory_store.clear()

    assert len(memory_store) == 0
