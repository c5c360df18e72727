"""Stale-while-revalidate cache on the shared key-value store.

One ``RevalidatingCache`` serves every cache domain; the domain differences
(TTL, revalidation window, lock lifetime, negative caching) live in a
``CachePolicy``.

Read path for a revalidating policy:
    1. GET and TTL of the key in one MULTI round-trip
    2. When the key is absent or inside the revalidation window, try to take
       the lock with SET NX EX
    3. Lock taken and a value cached: refresh in a background task and serve
       the cached value now
       Lock taken and nothing cached: refresh synchronously and return it
    4. Otherwise serve the cached value; if there is none, another process
       holds the lock and this caller fetches and stores without it

The store's SET NX is the only mutual exclusion, so at most one refresh per
key runs across all processes sharing the store. The lock is deleted when the
refresh finishes and expires on its own if the holder dies.

Store failures degrade to the last readable value, then to the caller's
default. Upstream failures propagate on synchronous paths and are logged and
dropped on background paths.

Usage:
    cache = RevalidatingCache(store)

    creators = await cache.get(
        CREATORS_CACHE_KEY,
        fetch_creators,
        CREATORS_POLICY,
        lock_key=REVALIDATION_LOCK_KEY,
        default=[],
    )
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Set, Tuple

from frames_directory.cache.keys import lock_key_for
from frames_directory.cache.policies import CachePolicy
from frames_directory.cache.serializer import CacheEntry, decode_entry, encode_entry
from frames_directory.errors import StoreUnavailableError
from frames_directory.redis_client import KeyTtl, KeyValueStore

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Any]]


class RevalidatingCache:
    """Cached reads with single-flight background revalidation.

    Args:
        store: Shared key-value store
        clock: Returns epoch seconds; written into lock values
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock
        self._background_tasks: Set[asyncio.Task] = set()

    @property
    def pending_revalidations(self) -> int:
        """Number of background refreshes started by this process still running."""
        return len(self._background_tasks)

    async def get(
        self,
        key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
        *,
        lock_key: Optional[str] = None,
        default: Any = None,
        fallback_fn: Optional[FetchFn] = None,
    ) -> Any:
        """
        Return the value for ``key``, fetching and caching it when needed.

        Args:
            key: Data key
            fetch_fn: Zero-argument coroutine function producing a fresh value
            policy: TTL and revalidation settings of the key's domain
            lock_key: Revalidation lock key; derived from ``key`` when omitted
            default: Returned when the store is unavailable and nothing
                cached can be read
            fallback_fn: Degraded producer tried when ``fetch_fn`` fails on a
                synchronous fetch

        Returns:
            The cached or freshly fetched value, or ``default``

        Raises:
            Exception: Whatever ``fetch_fn`` (or ``fallback_fn``) raised on a
                synchronous fetch
        """
        if not key:
            raise ValueError("key is required")

        try:
            if policy.revalidates:
                return await self._get_revalidating(
                    key, lock_key or lock_key_for(key), fetch_fn, policy, fallback_fn
                )
            return await self._get_through(key, fetch_fn, policy, fallback_fn)
        except StoreUnavailableError as e:
            logger.error(f"Cache store error for {key}: {e}")
            return await self._last_known(key, default)

    async def invalidate(self, *keys: str) -> None:
        """
        Delete cached entries immediately.

        Missing keys are ignored. Locks are not touched; a refresh already in
        flight may write the key again after this returns.

        Raises:
            StoreUnavailableError: If the store rejects the delete
        """
        if not keys:
            return
        count = await self.store.delete(*keys)
        logger.info(f"Cache invalidated: {list(keys)} (deleted={count})")

    async def drain(self) -> None:
        """Wait for every background refresh started by this process."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    async def _get_revalidating(
        self,
        key: str,
        lock_key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
        fallback_fn: Optional[FetchFn],
    ) -> Any:
        entry, ttl = await self._read_with_ttl(key)

        if ttl.expires_within(policy.revalidation_window_seconds):
            if await self._acquire_lock(lock_key, policy):
                if entry is not None:
                    logger.info(
                        f"Cache STALE: {key} (ttl={ttl.as_int()}s), revalidating in background"
                    )
                    self._spawn_revalidation(key, lock_key, fetch_fn, policy)
                else:
                    logger.info(f"Cache MISS: {key}")
                    return await self._refresh(key, lock_key, fetch_fn, policy, fallback_fn)
            else:
                logger.debug(f"Revalidation already in progress for {key}")

        if entry is not None:
            logger.debug(f"Cache HIT: {key} (ttl={ttl.as_int()}s)")
            return entry.data

        # Someone else holds the lock and nothing is cached yet
        logger.info(f"Cache MISS: {key} (lock held elsewhere), fetching directly")
        return await self._fetch_and_store(key, fetch_fn, policy, fallback_fn)

    async def _get_through(
        self,
        key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
        fallback_fn: Optional[FetchFn],
    ) -> Any:
        entry = decode_entry(await self.store.get(key))
        if entry is not None:
            logger.debug(f"Cache HIT: {key}")
            return entry.data

        logger.info(f"Cache MISS: {key}")
        return await self._fetch_and_store(key, fetch_fn, policy, fallback_fn)

    async def _last_known(self, key: str, default: Any) -> Any:
        try:
            entry = decode_entry(await self.store.get(key))
        except StoreUnavailableError as e:
            logger.error(f"Fallback cache read failed for {key}: {e}")
            return default

        if entry is None:
            return default
        logger.warning(f"Serving last known value for {key}")
        return entry.data

    async def _read_with_ttl(self, key: str) -> Tuple[Optional[CacheEntry], KeyTtl]:
        cached, ttl = await self.store.multi().get(key).ttl(key).execute()
        return decode_entry(cached), ttl

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def _acquire_lock(self, lock_key: str, policy: CachePolicy) -> bool:
        stamp = str(int(self._clock() * 1000))
        return await self.store.set(lock_key, stamp, ex=policy.lock_ttl_seconds, nx=True)

    async def _release_lock(self, lock_key: str) -> None:
        try:
            await self.store.delete(lock_key)
        except StoreUnavailableError as e:
            logger.warning(f"Failed to release lock {lock_key}, it will expire: {e}")

    async def _refresh(
        self,
        key: str,
        lock_key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
        fallback_fn: Optional[FetchFn],
    ) -> Any:
        try:
            return await self._fetch_and_store(key, fetch_fn, policy, fallback_fn)
        finally:
            await self._release_lock(lock_key)

    async def _fetch_and_store(
        self,
        key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
        fallback_fn: Optional[FetchFn],
    ) -> Any:
        try:
            data = await fetch_fn()
        except Exception as e:
            if fallback_fn is None:
                logger.error(f"Fetch failed for {key}: {e}")
                raise
            logger.warning(f"Fetch failed for {key}: {e}. Trying degraded fetch.")
            data = await fallback_fn()

        await self._store_entry(key, data, policy)
        return data

    async def _store_entry(self, key: str, data: Any, policy: CachePolicy) -> None:
        if data is None and not policy.cache_none:
            logger.debug(f"Not caching empty result for {key}")
            return

        try:
            await self.store.set(key, encode_entry(data), ex=policy.ttl_seconds)
            logger.info(f"Cache SET: {key} (ttl={policy.ttl_seconds})")
        except StoreUnavailableError as e:
            logger.error(f"Failed to cache result for {key}: {e}")

    def _spawn_revalidation(
        self,
        key: str,
        lock_key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
    ) -> None:
        task = asyncio.create_task(
            self._revalidate(key, lock_key, fetch_fn, policy),
            name=f"revalidate:{key}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _revalidate(
        self,
        key: str,
        lock_key: str,
        fetch_fn: FetchFn,
        policy: CachePolicy,
    ) -> None:
        try:
            await self._refresh(key, lock_key, fetch_fn, policy, fallback_fn=None)
            logger.info(f"Background revalidation complete: {key}")
        except Exception as e:
            # The stale entry stays; the next caller in the window retries
            logger.error(f"Error revalidating {key}: {e}", exc_info=True)
