"""Inspection of the creators-list cache for the debug endpoint and CLI."""

import logging
from typing import Any, Optional

from frames_directory.cache.keys import CREATORS_CACHE_KEY, REVALIDATION_LOCK_KEY
from frames_directory.cache.serializer import decode_entry
from frames_directory.models import CacheDebugInfo
from frames_directory.redis_client import KeyValueStore

logger = logging.getLogger(__name__)


def _as_timestamp(raw: Any) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        logger.warning(f"Unexpected lock value: {raw!r}")
        return None


async def get_cache_info(store: KeyValueStore) -> CacheDebugInfo:
    """
    Snapshot the creators cache entry and its revalidation lock in one MULTI.

    Raises:
        StoreUnavailableError: If the store cannot be read
    """
    (
        cache_exists,
        ttl,
        cached,
        lock_exists,
        lock_ttl,
        lock_value,
    ) = await (
        store.multi()
        .exists(CREATORS_CACHE_KEY)
        .ttl(CREATORS_CACHE_KEY)
        .get(CREATORS_CACHE_KEY)
        .exists(REVALIDATION_LOCK_KEY)
        .ttl(REVALIDATION_LOCK_KEY)
        .get(REVALIDATION_LOCK_KEY)
        .execute()
    )

    entry = decode_entry(cached)
    creator_count = None
    if entry is not None and isinstance(entry.data, list):
        creator_count = len(entry.data)

    return CacheDebugInfo(
        cache_exists=cache_exists,
        ttl=ttl.as_int(),
        creator_count=creator_count,
        lock_exists=lock_exists,
        lock_ttl=lock_ttl.as_int(),
        last_revalidation_time=_as_timestamp(lock_value),
    )
