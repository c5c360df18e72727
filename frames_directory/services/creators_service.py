"""The full creators directory list.

The list is the most expensive value in the service: one GraphQL query plus
three lookups per creator (collections, basename, gives). It is cached under
a single key for five minutes and revalidated in the background during the
last minute. When the full fetch fails and nothing is cached, a plain list
without enrichment is served instead.
"""

import asyncio
import logging
import time
from typing import List

from pydantic import TypeAdapter

from frames_directory import config
from frames_directory.cache.keys import CREATORS_CACHE_KEY, REVALIDATION_LOCK_KEY
from frames_directory.cache.policies import CREATORS_POLICY, CachePolicy
from frames_directory.cache.revalidating import RevalidatingCache
from frames_directory.errors import UpstreamError
from frames_directory.graphql_client import HasuraClient
from frames_directory.models import Creator, CreatorWithNFTData, NFTData
from frames_directory.nft.service import NFTCollectionsService
from frames_directory.services.basenames import BasenameService
from frames_directory.services.creator_service import CreatorService

logger = logging.getLogger(__name__)

ALL_CREATORS_QUERY = """
query CreatorsDirGetAllCreators($circleId: bigint!, $excludedAddress: String!) {
  users(
    where: {
      circle_id: { _eq: $circleId }
      profile: { address: { _neq: $excludedAddress } }
    }
    order_by: { created_at: desc }
  ) {
    id
    profile {
      id
      address
      name
      avatar
      description
      farcaster_account {
        username
      }
    }
  }
}
"""

_CREATOR_LIST = TypeAdapter(List[CreatorWithNFTData])


class CreatorsService:
    """Cached directory listing with per-creator enrichment."""

    def __init__(
        self,
        cache: RevalidatingCache,
        hasura: HasuraClient,
        creator_service: CreatorService,
        nft: NFTCollectionsService,
        basenames: BasenameService,
        circle_id: int = config.CIRCLE_ID,
        excluded_address: str = config.EXCLUDED_ADDRESS,
        chunk_size: int = config.ENRICH_CHUNK_SIZE,
        item_timeout: float = config.ENRICH_ITEM_TIMEOUT,
        policy: CachePolicy = CREATORS_POLICY,
    ):
        self.cache = cache
        self.hasura = hasura
        self.creator_service = creator_service
        self.nft = nft
        self.basenames = basenames
        self.circle_id = circle_id
        self.excluded_address = excluded_address
        self.chunk_size = max(1, chunk_size)
        self.item_timeout = item_timeout
        self.policy = policy

    async def get_creators(self) -> List[CreatorWithNFTData]:
        """
        Get every creator in the directory.

        Never raises for upstream failures: when neither the full nor the
        minimal fetch succeeds and nothing is cached, returns [].
        """
        try:
            data = await self.cache.get(
                CREATORS_CACHE_KEY,
                self.fetch_creators_from_api,
                self.policy,
                lock_key=REVALIDATION_LOCK_KEY,
                default=[],
                fallback_fn=self.fetch_basic_creators,
            )
        except UpstreamError as e:
            logger.error(f"Error fetching creators: {e}")
            return []
        return _CREATOR_LIST.validate_python(data or [])

    async def _fetch_users(self) -> List[Creator]:
        data = await self.hasura.query(
            ALL_CREATORS_QUERY,
            {"circleId": self.circle_id, "excludedAddress": self.excluded_address},
        )
        try:
            return [Creator.from_user_row(user) for user in data.get("users") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError("hasura", f"malformed user row: {e!r}") from e

    async def fetch_creators_from_api(self) -> List[CreatorWithNFTData]:
        """Fetch the directory and enrich every creator."""
        start = time.perf_counter()
        creators = await self._fetch_users()
        logger.debug(
            f"Directory query returned {len(creators)} creators "
            f"in {(time.perf_counter() - start) * 1000:.0f}ms"
        )

        enriched = await self.enrich_creators(creators)
        logger.info(
            f"Fetched {len(enriched)} creators in {(time.perf_counter() - start) * 1000:.0f}ms"
        )
        return enriched

    async def fetch_basic_creators(self) -> List[CreatorWithNFTData]:
        """Degraded fetch: directory rows only, no enrichment."""
        creators = await self._fetch_users()
        logger.info(f"Fetched {len(creators)} creators without enrichment")
        return [CreatorWithNFTData(**creator.model_dump()) for creator in creators]

    async def enrich_creators(self, creators: List[Creator]) -> List[CreatorWithNFTData]:
        """
        Enrich creators chunk by chunk, keeping input order.

        Creators within a chunk are enriched concurrently. A creator whose
        enrichment fails or times out is returned without enrichment.
        """
        results: List[CreatorWithNFTData] = []
        for start in range(0, len(creators), self.chunk_size):
            chunk = creators[start:start + self.chunk_size]
            results.extend(await asyncio.gather(*(self._enrich_with_timeout(c) for c in chunk)))
        return results

    async def _enrich_with_timeout(self, creator: Creator) -> CreatorWithNFTData:
        try:
            return await asyncio.wait_for(self.enrich_creator(creator), timeout=self.item_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout enriching creator {creator.address}")
        except Exception as e:
            logger.error(f"Error enriching creator {creator.address}: {e}", exc_info=True)
        return CreatorWithNFTData(**creator.model_dump())

    async def enrich_creator(self, creator: Creator) -> CreatorWithNFTData:
        if not creator.address:
            return CreatorWithNFTData(**creator.model_dump())

        contracts, resolution, gives = await asyncio.gather(
            self.nft.get_nft_collections(creator.address),
            self.basenames.resolve_or_none(creator.address),
            self.creator_service.get_gives_for_creator(creator.address),
        )
        return CreatorWithNFTData(
            **creator.model_dump(),
            resolution=resolution,
            gives=gives,
            nft_data=NFTData.from_contracts(contracts),
        )

    async def invalidate(self) -> None:
        await self.cache.invalidate(CREATORS_CACHE_KEY)
