"""Cached NFT collection lookups for creator addresses.

Collections are cached per address and provider, unfiltered, for 24 hours.
The chain filter is applied to the cached list on every read.

Cache keys:
    opensea-username-{address}     OpenSea username, None when no account
    opensea-collections-{address}  contracts of every collection by that user
    zapper-collections-{address}   contracts deployed by the address
"""

import logging
from typing import List, Optional

from pydantic import TypeAdapter

from frames_directory import config
from frames_directory.cache.keys import (
    PROVIDER_OPENSEA,
    PROVIDER_ZAPPER,
    collection_keys_for_address,
    opensea_collections_key,
    opensea_username_key,
    zapper_collections_key,
)
from frames_directory.cache.policies import COLLECTIONS_POLICY, CachePolicy
from frames_directory.cache.revalidating import RevalidatingCache
from frames_directory.errors import UpstreamError
from frames_directory.models import ContractDetails
from frames_directory.nft.opensea import OpenSeaClient
from frames_directory.nft.zapper import ZapperClient

logger = logging.getLogger(__name__)

NFT_DOMAINS = (PROVIDER_OPENSEA, PROVIDER_ZAPPER)

# How each provider spells the Base network in ``chain_id``
BASE_CHAINS = {PROVIDER_OPENSEA: "base", PROVIDER_ZAPPER: "BASE_MAINNET"}

_CONTRACT_LIST = TypeAdapter(List[ContractDetails])


def filter_by_chain(
    contracts: List[ContractDetails], chain: Optional[str]
) -> List[ContractDetails]:
    if not chain:
        return contracts
    return [c for c in contracts if c.chain_id == chain]


def base_chain(domain: Optional[str] = None) -> Optional[str]:
    return BASE_CHAINS.get((domain or config.DEFAULT_NFT_DOMAIN).lower())


class NFTCollectionsService:
    """NFT collections of creator addresses from OpenSea or Zapper."""

    def __init__(
        self,
        cache: RevalidatingCache,
        opensea: OpenSeaClient,
        zapper: ZapperClient,
        policy: CachePolicy = COLLECTIONS_POLICY,
    ):
        self.cache = cache
        self.opensea = opensea
        self.zapper = zapper
        self.policy = policy

    # ==================== OpenSea ====================

    async def get_opensea_username(self, address: str) -> Optional[str]:
        """Cached username lookup; a missing account is cached as None."""
        return await self.cache.get(
            opensea_username_key(address),
            lambda: self.opensea.fetch_username(address),
            self.policy,
        )

    async def get_opensea_collections(
        self, address: str, chain: Optional[str] = None
    ) -> List[ContractDetails]:
        async def fetch() -> List[ContractDetails]:
            username = await self.get_opensea_username(address)
            if not username:
                return []
            return await self.opensea.fetch_collections(username)

        rows = await self.cache.get(
            opensea_collections_key(address), fetch, self.policy, default=[]
        )
        return filter_by_chain(_CONTRACT_LIST.validate_python(rows or []), chain)

    # ==================== Zapper ====================

    async def get_zapper_collections(
        self, address: str, chain: Optional[str] = None
    ) -> List[ContractDetails]:
        rows = await self.cache.get(
            zapper_collections_key(address),
            lambda: self.zapper.fetch_collections(address),
            self.policy,
            default=[],
        )
        return filter_by_chain(_CONTRACT_LIST.validate_python(rows or []), chain)

    # ==================== Dispatch ====================

    async def get_nft_collections(
        self,
        address: str,
        domain: Optional[str] = None,
        chain: Optional[str] = None,
        exclude_no_image: bool = False,
    ) -> List[ContractDetails]:
        """
        Collections of an address from the chosen provider.

        Args:
            address: Creator (deployer) address
            domain: "opensea" or "zapper"; ``DEFAULT_NFT_DOMAIN`` when omitted
            chain: Keep only contracts on this chain
            exclude_no_image: Drop contracts without an image

        Returns:
            Matching contracts; an empty list when the provider fails

        Raises:
            ValueError: For an unknown domain
        """
        domain = (domain or config.DEFAULT_NFT_DOMAIN).lower()
        if domain not in NFT_DOMAINS:
            raise ValueError(f"Unknown NFT domain '{domain}', expected one of {NFT_DOMAINS}")

        try:
            if domain == PROVIDER_ZAPPER:
                contracts = await self.get_zapper_collections(address, chain)
            else:
                contracts = await self.get_opensea_collections(address, chain)
        except UpstreamError as e:
            logger.error(f"Error fetching {domain} collections for {address}: {e}")
            return []

        if exclude_no_image:
            contracts = [c for c in contracts if c.image_url]
        return contracts

    # ==================== Cache Busting ====================

    async def bust_opensea_caches(self, address: str) -> None:
        await self.cache.invalidate(
            opensea_username_key(address), opensea_collections_key(address)
        )

    async def bust_zapper_cache(self, address: str) -> None:
        await self.cache.invalidate(zapper_collections_key(address))

    async def bust_all(self, address: str) -> None:
        """Drop every provider cache held for an address."""
        await self.cache.invalidate(*collection_keys_for_address(address))
