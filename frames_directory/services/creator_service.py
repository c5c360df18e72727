"""Single creator profiles, cached per address."""

import logging
from typing import List, Optional

from frames_directory import config
from frames_directory.cache.keys import creator_key, creator_lock_key
from frames_directory.cache.policies import SINGLE_CREATOR_POLICY, CachePolicy
from frames_directory.cache.revalidating import RevalidatingCache
from frames_directory.errors import UpstreamError
from frames_directory.graphql_client import HasuraClient
from frames_directory.models import (
    Creator,
    CreatorWithNFTData,
    Give,
    GiveGroup,
    NFTData,
)
from frames_directory.nft.service import NFTCollectionsService, base_chain
from frames_directory.services.basenames import BasenameService
from frames_directory.services.gives import group_and_sort_gives

logger = logging.getLogger(__name__)

SINGLE_CREATOR_QUERY = """
query CreatorsDirGetSingleCreator($circleId: bigint!, $address: String!) {
  users(
    where: {
      circle_id: { _eq: $circleId }
      profile: { address: { _ilike: $address } }
    }
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

CREATOR_GIVES_QUERY = """
query CreatorsDirGetCreatorGives($address: String!) {
  colinks_gives(
    where: {
      target_profile_public: { address: { _ilike: $address } }
      skill: { _is_null: false }
    }
  ) {
    id
    skill
    created_at
  }
}
"""


class CreatorService:
    """Profile lookups for one creator at a time."""

    def __init__(
        self,
        cache: RevalidatingCache,
        hasura: HasuraClient,
        nft: NFTCollectionsService,
        basenames: BasenameService,
        circle_id: int = config.CIRCLE_ID,
        policy: CachePolicy = SINGLE_CREATOR_POLICY,
    ):
        self.cache = cache
        self.hasura = hasura
        self.nft = nft
        self.basenames = basenames
        self.circle_id = circle_id
        self.policy = policy

    async def get_creator(self, address: str) -> Optional[CreatorWithNFTData]:
        """
        Get a creator by address, served from cache when possible.

        Returns:
            The creator, or None when the address is not in the directory.
            Unknown addresses are not cached.

        Raises:
            UpstreamError: If the directory API fails and nothing is cached
        """
        normalized = address.lower()
        data = await self.cache.get(
            creator_key(normalized),
            lambda: self.fetch_creator(normalized),
            self.policy,
            lock_key=creator_lock_key(normalized),
            default=None,
        )
        if data is None:
            return None
        return CreatorWithNFTData.model_validate(data)

    async def fetch_creator(self, address: str) -> Optional[CreatorWithNFTData]:
        """Fetch a creator from the directory API with collections and basename."""
        data = await self.hasura.query(
            SINGLE_CREATOR_QUERY,
            {"circleId": self.circle_id, "address": address},
        )
        users = data.get("users") or []
        if not users:
            logger.info(f"Creator {address} not found in circle {self.circle_id}")
            return None

        creator = Creator.from_user_row(users[0])
        contracts = await self.nft.get_nft_collections(
            creator.address, chain=base_chain(), exclude_no_image=True
        )
        resolution = await self.basenames.resolve_or_none(creator.address)

        return CreatorWithNFTData(
            **creator.model_dump(),
            resolution=resolution,
            nft_data=NFTData.from_contracts(contracts),
        )

    async def get_gives_for_creator(self, address: str) -> List[GiveGroup]:
        """Gives received by an address grouped by skill; [] on failure."""
        try:
            data = await self.hasura.query(CREATOR_GIVES_QUERY, {"address": address})
        except UpstreamError as e:
            logger.error(f"Error fetching gives for address {address}: {e}")
            return []

        gives = [
            Give(id=str(row["id"]), skill=row.get("skill") or "", created_at=row.get("created_at"))
            for row in data.get("colinks_gives") or []
        ]
        return group_and_sort_gives(gives)

    async def invalidate(self, address: str) -> None:
        await self.cache.invalidate(creator_key(address))
