"""Cache layer for the creators directory.

This package provides the stale-while-revalidate cache used by every cache
domain, the per-domain policies, key builders and entry serialization.

Key Modules:
    - keys: Cache key builders for the cache domains
    - serializer: JSON encoding of ``{"data": ...}`` cache entries
    - policies: TTL and revalidation settings per domain
    - revalidating: RevalidatingCache
    - debug: creators-list cache inspection

Example:
    from frames_directory.cache import CREATORS_POLICY, RevalidatingCache

    cache = RevalidatingCache(store)
    creators = await cache.get("creators-directory-all", fetch, CREATORS_POLICY, default=[])
"""

# Re-export key builders for convenience
from .keys import (
    CREATORS_CACHE_KEY,
    REVALIDATION_LOCK_KEY,
    creator_key,
    creator_lock_key,
    opensea_username_key,
    opensea_collections_key,
    zapper_collections_key,
    collection_keys_for_address,
    refresh_lock_key,
)

from .policies import (
    CachePolicy,
    CREATORS_POLICY,
    SINGLE_CREATOR_POLICY,
    COLLECTIONS_POLICY,
)

from .revalidating import RevalidatingCache

__all__ = [
    # Key builders
    "CREATORS_CACHE_KEY",
    "REVALIDATION_LOCK_KEY",
    "creator_key",
    "creator_lock_key",
    "opensea_username_key",
    "opensea_collections_key",
    "zapper_collections_key",
    "collection_keys_for_address",
    "refresh_lock_key",
    # Policies
    "CachePolicy",
    "CREATORS_POLICY",
    "SINGLE_CREATOR_POLICY",
    "COLLECTIONS_POLICY",
    # Cache
    "RevalidatingCache",
]
