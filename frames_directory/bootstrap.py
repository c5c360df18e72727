"""Process bootstrap: client handles and service wiring.

The Redis client and the shared HTTP client are created here once per
process and handed to every component explicitly. Entry points (the FastAPI
lifespan, the CLI) call ``build_services`` on start and ``close_services``
on exit.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from redis import asyncio as aioredis

from frames_directory import config
from frames_directory.cache.keys import collection_keys_for_address, creator_key
from frames_directory.cache.revalidating import RevalidatingCache
from frames_directory.graphql_client import HasuraClient
from frames_directory.http_pool import HttpClientConfig, close_http_client, create_http_client
from frames_directory.nft.opensea import OpenSeaClient
from frames_directory.nft.service import NFTCollectionsService
from frames_directory.nft.zapper import ZapperClient
from frames_directory.redis_client import (
    KeyValueStore,
    RedisConfig,
    close_redis_pool,
    create_redis_pool,
)
from frames_directory.services.basenames import (
    BasenameCache,
    BasenameService,
    HttpBasenameResolver,
)
from frames_directory.services.creator_service import CreatorService
from frames_directory.services.creators_service import CreatorsService
from frames_directory.services.membership import MembershipService

logger = logging.getLogger(__name__)


@dataclass
class DirectoryServices:
    """Every long-lived object of a process, wired together."""

    store: KeyValueStore
    http: httpx.AsyncClient
    cache: RevalidatingCache
    nft: NFTCollectionsService
    basenames: BasenameService
    creator: CreatorService
    creators: CreatorsService
    membership: MembershipService
    redis: Optional[aioredis.Redis] = None

    async def invalidate_address(self, address: str) -> None:
        """Drop the cached profile and every collection cache of an address in one DEL."""
        await self.cache.invalidate(creator_key(address), *collection_keys_for_address(address))


def wire_services(
    store: KeyValueStore,
    http: httpx.AsyncClient,
    redis: Optional[aioredis.Redis] = None,
) -> DirectoryServices:
    """Build the service graph on existing client handles."""
    cache = RevalidatingCache(store)
    hasura = HasuraClient(http, config.HASURA_URL, config.HASURA_AUTH)

    nft = NFTCollectionsService(
        cache,
        OpenSeaClient(http, config.OPENSEA_API_KEY, config.OPENSEA_API_URL),
        ZapperClient(http, config.ZAPPER_API_KEY, config.ZAPPER_API_URL),
    )
    basenames = BasenameService(
        BasenameCache(store),
        HttpBasenameResolver(http, config.BASENAME_RESOLVER_URL),
    )
    creator = CreatorService(cache, hasura, nft, basenames)
    creators = CreatorsService(cache, hasura, creator, nft, basenames)
    membership = MembershipService(hasura, cache)

    return DirectoryServices(
        store=store,
        http=http,
        cache=cache,
        nft=nft,
        basenames=basenames,
        creator=creator,
        creators=creators,
        membership=membership,
        redis=redis,
    )


async def build_services(
    redis_config: Optional[RedisConfig] = None,
    http_config: Optional[HttpClientConfig] = None,
) -> DirectoryServices:
    """
    Create the client handles from the environment and wire the services.

    Raises:
        StoreUnavailableError: If Redis is unreachable
    """
    redis = await create_redis_pool(redis_config)
    http = create_http_client(http_config)
    logger.info("✓ Directory services initialized")
    return wire_services(KeyValueStore(redis), http, redis=redis)


async def close_services(services: Optional[DirectoryServices]) -> None:
    """Wait for background revalidations, then close the HTTP and Redis clients."""
    if services is None:
        return

    pending = services.cache.pending_revalidations
    if pending:
        logger.info(f"Waiting for {pending} background revalidations")
    await services.cache.drain()

    await close_http_client(services.http)
    await close_redis_pool(services.redis)
    logger.info("✓ Directory services closed")
