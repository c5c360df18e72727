"""User-triggered refresh of the collection caches behind membership requirements."""

import logging
from typing import Any, Dict

from frames_directory import config
from frames_directory.cache.keys import refresh_lock_key
from frames_directory.errors import StoreUnavailableError
from frames_directory.nft.service import NFTCollectionsService
from frames_directory.redis_client import KeyValueStore

logger = logging.getLogger(__name__)


async def refresh_requirements_cache(
    store: KeyValueStore,
    nft: NFTCollectionsService,
    address: str,
    cooldown_seconds: int = config.REFRESH_COOLDOWN,
) -> Dict[str, Any]:
    """
    Bust every collection cache for ``address``, at most once per cooldown.

    Returns:
        ``{"success": True}``, or ``{"success": False, "error": ...}`` when
        the cooldown is running or the store fails
    """
    lock_key = refresh_lock_key(address)
    try:
        acquired = await store.set(lock_key, "1", ex=cooldown_seconds, nx=True)
        if not acquired:
            remaining = (await store.ttl(lock_key)).seconds
            wait = remaining if remaining is not None else cooldown_seconds
            logger.info(f"Refresh for {address} rejected, cooldown has {wait}s left")
            return {
                "success": False,
                "error": f"Please wait {wait} seconds before refreshing again",
            }

        await nft.bust_all(address)
    except StoreUnavailableError as e:
        logger.error(f"Failed to refresh cache for {address}: {e}")
        return {"success": False, "error": "Failed to refresh cache"}

    logger.info(f"Refreshed collection caches for {address}")
    return {"success": True}
