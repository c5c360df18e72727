"""Tests for the stale-while-revalidate cache (frames_directory/cache/revalidating.py).

This module tests:
- Fresh hits, synchronous misses and background revalidation
- Single-flight refresh through the store lock
- Fallback and error propagation on synchronous fetches
- Store failures degrading to last-known values and defaults
- Negative caching and read-through policies
- invalidate() semantics
"""

import asyncio
import logging

import pytest

from frames_directory.cache.policies import CachePolicy
from frames_directory.cache.revalidating import RevalidatingCache

KEY = "creators-directory-all"
LOCK = "creators-directory-revalidation-lock"

SWR = CachePolicy(ttl_seconds=300, revalidation_window_seconds=60, lock_ttl_seconds=30)
READ_THROUGH = CachePolicy(ttl_seconds=100, cache_none=True)


class NetworkError(Exception):
    pass


class Fetch:
    """Async fetch function recording its calls.

    Returns ``results`` in order (the last one repeats). A call whose index
    has a gate waits for that event first.
    """

    def __init__(self, *results, error=None, gates=None):
        self.results = list(results)
        self.error = error
        self.gates = gates or {}
        self.calls = 0

    async def __call__(self):
        index = self.calls
        self.calls += 1
        if index in self.gates:
            await self.gates[index].wait()
        if self.error is not None:
            raise self.error
        return self.results[min(index, len(self.results) - 1)]


# ==================== Hits and Misses ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fresh_entry_served_without_fetch(cache, store):
    """An entry outside the revalidation window is returned as-is."""
    store.seed(KEY, ["alice", "bob"], ttl=300)
    fetch = Fetch(["carol"])

    result = await cache.get(KEY, fetch, SWR, lock_key=LOCK)

    assert result == ["alice", "bob"]
    assert fetch.calls == 0
    assert store.raw(LOCK) is None
    assert cache.pending_revalidations == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_absent_key_fetched_synchronously_and_stored(cache, store):
    """A miss fetches inline, writes the full TTL and releases the lock."""
    fetch = Fetch(["alice", "bob"])

    result = await cache.get(KEY, fetch, SWR, lock_key=LOCK)

    assert result == ["alice", "bob"]
    assert fetch.calls == 1
    assert store.entry(KEY).data == ["alice", "bob"]
    assert (await store.ttl(KEY)).seconds == 300
    assert store.raw(LOCK) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_entry_without_expiry_is_not_revalidated(cache, store):
    store.seed(KEY, ["alice"])
    fetch = Fetch(["bob"])

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
    assert fetch.calls == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_empty_key_rejected(cache):
    with pytest.raises(ValueError):
        await cache.get("", Fetch([]), SWR)


# ==================== Background Revalidation ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stale_entry_served_and_refreshed_in_background(cache, store):
    """Inside the window the stale value is returned and a refresh runs detached."""
    store.seed(KEY, ["alice", "bob"], ttl=50)
    fetch = Fetch(["alice", "bob", "carol"])

    result = await cache.get(KEY, fetch, SWR, lock_key=LOCK)

    assert result == ["alice", "bob"]
    assert cache.pending_revalidations == 1
    assert store.raw(LOCK) is not None

    await cache.drain()

    assert fetch.calls == 1
    assert store.entry(KEY).data == ["alice", "bob", "carol"]
    assert (await store.ttl(KEY)).seconds == 300
    assert store.raw(LOCK) is None
    assert cache.pending_revalidations == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_stale_callers_trigger_one_refresh(cache, store):
    """Many callers inside the window share a single background fetch."""
    store.seed(KEY, ["alice"], ttl=10)
    gate = asyncio.Event()
    fetch = Fetch(["alice", "bob"], gates={0: gate})

    results = await asyncio.gather(
        *(cache.get(KEY, fetch, SWR, lock_key=LOCK) for _ in range(10))
    )

    assert results == [["alice"]] * 10
    gate.set()
    await cache.drain()

    assert fetch.calls == 1
    assert store.entry(KEY).data == ["alice", "bob"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_single_refresh_across_cache_instances(store, clock):
    """The store lock serializes refreshes between processes, not just tasks."""
    store.seed(KEY, ["alice"], ttl=10)
    first = RevalidatingCache(store, clock=clock)
    second = RevalidatingCache(store, clock=clock)
    gate = asyncio.Event()
    fetch = Fetch(["alice", "bob"], gates={0: gate})

    assert await first.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
    assert await second.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
    assert second.pending_revalidations == 0

    gate.set()
    await first.drain()
    assert fetch.calls == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_creators_list_revalidation_timeline(cache, store, clock):
    """Populate at t=0, serve stale at t=250 and t=251, refreshed by t=252."""
    gate = asyncio.Event()
    fetch = Fetch(["alice", "bob"], ["alice", "bob", "carol"], gates={1: gate})

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice", "bob"]
    assert (await store.ttl(KEY)).seconds == 300

    clock.advance(250)
    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice", "bob"]
    assert cache.pending_revalidations == 1

    clock.advance(1)
    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice", "bob"]
    assert cache.pending_revalidations == 1

    clock.advance(1)
    gate.set()
    await cache.drain()

    assert fetch.calls == 2
    assert store.entry(KEY).data == ["alice", "bob", "carol"]
    assert (await store.ttl(KEY)).seconds == 300


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lock_held_elsewhere_serves_stale_without_refresh(cache, store):
    store.seed(KEY, ["alice"], ttl=10)
    await store.set(LOCK, "1", ex=30)
    fetch = Fetch(["bob"])

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
    assert fetch.calls == 0
    assert cache.pending_revalidations == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lock_value_is_acquisition_time_in_millis(cache, store, clock):
    store.seed(KEY, ["alice"], ttl=10)
    gate = asyncio.Event()

    await cache.get(KEY, Fetch(["bob"], gates={0: gate}), SWR, lock_key=LOCK)

    assert store.raw(LOCK) == str(int(clock.now * 1000))
    assert (await store.ttl(LOCK)).seconds == 30
    gate.set()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_default_lock_key_derived_from_key(cache, store):
    store.seed("creator:0xabc", {"id": "1"}, ttl=10)
    gate = asyncio.Event()

    await cache.get("creator:0xabc", Fetch({"id": "2"}, gates={0: gate}), SWR)

    assert store.raw("lock:creator:0xabc") is not None
    gate.set()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_background_error_logged_and_stale_kept(cache, store, caplog):
    """A failed background refresh keeps the entry and frees the lock."""
    store.seed(KEY, ["alice"], ttl=10)
    fetch = Fetch(error=NetworkError("upstream down"))

    with caplog.at_level(logging.ERROR, logger="frames_directory.cache.revalidating"):
        assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
        await cache.drain()

    assert store.entry(KEY).data == ["alice"]
    assert store.raw(LOCK) is None
    assert "Error revalidating" in caplog.text

    # The next caller in the window retries
    fetch.error = None
    fetch.results = [["alice", "bob"]]
    await cache.get(KEY, fetch, SWR, lock_key=LOCK)
    await cache.drain()
    assert store.entry(KEY).data == ["alice", "bob"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_background_refresh_skips_fallback(cache, store):
    store.seed(KEY, ["alice"], ttl=10)
    fallback = Fetch(["basic"])

    await cache.get(
        KEY, Fetch(error=NetworkError()), SWR, lock_key=LOCK, fallback_fn=fallback
    )
    await cache.drain()

    assert fallback.calls == 0
    assert store.entry(KEY).data == ["alice"]


# ==================== Absent Key Races ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_absent_key_with_lock_held_elsewhere_fetches_directly(cache, store):
    """No entry and no lock: fetch and store without touching the lock."""
    await store.set(LOCK, "1", ex=30)
    fetch = Fetch(["alice"])

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice"]
    assert fetch.calls == 1
    assert store.entry(KEY).data == ["alice"]
    assert store.raw(LOCK) == "1"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_absent_key_concurrent_callers(cache, store):
    """One caller wins the lock; the others fetch redundantly and all get data."""
    gate = asyncio.Event()
    fetch = Fetch(["alice"], gates={i: gate for i in range(5)})

    tasks = [asyncio.create_task(cache.get(KEY, fetch, SWR, lock_key=LOCK)) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == [["alice"]] * 5
    assert fetch.calls == 5
    assert store.entry(KEY).data == ["alice"]
    assert store.raw(LOCK) is None


# ==================== Synchronous Fetch Errors ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sync_fetch_error_propagates_and_writes_nothing(cache, store):
    with pytest.raises(NetworkError):
        await cache.get(
            "creator:0xabc",
            Fetch(error=NetworkError("down")),
            SWR,
            lock_key="creator_lock:0xabc",
        )

    assert store.keys() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sync_fetch_error_uses_fallback(cache, store):
    fallback = Fetch(["alice (basic)"])

    result = await cache.get(
        KEY, Fetch(error=NetworkError()), SWR, lock_key=LOCK, fallback_fn=fallback
    )

    assert result == ["alice (basic)"]
    assert store.entry(KEY).data == ["alice (basic)"]
    assert store.raw(LOCK) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fallback_failure_propagates(cache, store):
    fallback = Fetch(error=RuntimeError("basic query failed"))

    with pytest.raises(RuntimeError, match="basic query failed"):
        await cache.get(
            KEY, Fetch(error=NetworkError()), SWR, lock_key=LOCK, fallback_fn=fallback
        )

    assert store.raw(KEY) is None
    assert store.raw(LOCK) is None


# ==================== Store Failures ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_store_down_returns_default(cache, store):
    store.fail()
    fetch = Fetch(["alice"])

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK, default=[]) == []
    assert fetch.calls == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_multi_failure_serves_last_known_value(cache, store):
    store.seed(KEY, ["alice"], ttl=300)
    store.fail("multi")

    assert await cache.get(KEY, Fetch(["bob"]), SWR, lock_key=LOCK, default=[]) == ["alice"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lock_failure_serves_last_known_value(cache, store):
    store.seed(KEY, ["alice"], ttl=10)
    store.fail("set")
    fetch = Fetch(["bob"])

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK, default=[]) == ["alice"]
    assert fetch.calls == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_write_failure_still_returns_fresh_value(cache, store):
    store.fail("set")

    assert await cache.get("opensea-username-0xabc", Fetch("alice"), READ_THROUGH) == "alice"
    assert store.raw("opensea-username-0xabc") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lock_release_failure_leaves_lock_to_expire(cache, store, clock):
    store.fail("delete")

    assert await cache.get(KEY, Fetch(["alice"]), SWR, lock_key=LOCK) == ["alice"]
    assert store.raw(LOCK) is not None

    clock.advance(31)
    assert store.raw(LOCK) is None


# ==================== Negative Caching and Read-through ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_none_not_cached_by_default(cache, store):
    fetch = Fetch(None)

    assert await cache.get("creator:0xabc", fetch, SWR) is None
    assert await cache.get("creator:0xabc", fetch, SWR) is None

    assert fetch.calls == 2
    assert store.raw("creator:0xabc") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_none_cached_for_full_ttl_with_cache_none(cache, store, clock):
    """An address without an OpenSea account is a cached answer."""
    key = "opensea-username-0xabc"
    fetch = Fetch(None)

    assert await cache.get(key, fetch, READ_THROUGH) is None
    clock.advance(99)
    assert await cache.get(key, fetch, READ_THROUGH) is None
    assert fetch.calls == 1

    clock.advance(2)
    await cache.get(key, fetch, READ_THROUGH)
    assert fetch.calls == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_read_through_never_takes_a_lock(cache, store):
    await cache.get("zapper-collections-0xabc", Fetch([]), READ_THROUGH)

    assert store.keys() == ["zapper-collections-0xabc"]
    assert "multi" not in store.commands


# ==================== Invalidation ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalidate_then_get_fetches_fresh(cache, store):
    store.seed(KEY, ["alice"], ttl=300)
    fetch = Fetch(["alice", "bob"])

    await cache.invalidate(KEY)

    assert await cache.get(KEY, fetch, SWR, lock_key=LOCK) == ["alice", "bob"]
    assert fetch.calls == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalidate_missing_keys_is_noop(cache, store):
    await cache.invalidate("missing-1", "missing-2")
    await cache.invalidate()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalidate_leaves_lock_alone(cache, store):
    store.seed(KEY, ["alice"], ttl=300)
    await store.set(LOCK, "1", ex=30)

    await cache.invalidate(KEY)

    assert store.raw(KEY) is None
    assert store.raw(LOCK) == "1"


# ==================== Policies ====================


@pytest.mark.unit
def test_policy_requires_positive_ttl():
    with pytest.raises(ValueError):
        CachePolicy(ttl_seconds=0)


@pytest.mark.unit
def test_policy_window_and_lock_set_together():
    with pytest.raises(ValueError):
        CachePolicy(ttl_seconds=300, revalidation_window_seconds=60)

    assert SWR.revalidates is True
    assert READ_THROUGH.revalidates is False
