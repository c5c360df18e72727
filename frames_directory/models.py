"""Domain models for the creators directory.

Models serialize with camelCase aliases (``farcasterUsername``, ``nftData``)
and accept either spelling on input, so values read back from the cache and
values built from upstream rows validate the same way.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from frames_directory import config

OPENSEA_ASSET_URL = "https://opensea.io/assets/base/"


def normalize_avatar(avatar: Optional[str]) -> str:
    """Prefix relative avatar paths with the asset bucket URL."""
    if not avatar:
        return ""
    if avatar.startswith("http"):
        return avatar
    return f"{config.AVATAR_BASE_URL}{avatar}"


class DirectoryModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Creators
# ============================================================================


class Creator(DirectoryModel):
    """A directory member as returned by the GraphQL API."""

    id: str = Field(description="Directory user id")
    address: str = Field(description="Ethereum address of the creator's profile")
    name: str = ""
    avatar: str = Field(default="", description="Absolute avatar URL")
    description: str = ""
    farcaster_username: str = ""

    @classmethod
    def from_user_row(cls, user: Dict[str, Any]) -> "Creator":
        """Build a creator from a ``users`` row with its nested profile."""
        profile = user.get("profile") or {}
        farcaster = profile.get("farcaster_account") or {}
        return cls(
            id=str(user["id"]),
            address=profile.get("address") or "",
            name=profile.get("name") or "",
            avatar=normalize_avatar(profile.get("avatar")),
            description=profile.get("description") or "",
            farcaster_username=farcaster.get("username") or "",
        )


class BasenameResolution(DirectoryModel):
    """Result of resolving an address or a ``*.base.eth`` name."""

    basename: str = Field(default="", description="Primary name, empty when none is set")
    address: str = ""
    resolved: bool = Field(default=False, description="True when a basename was found")
    text_records: Dict[str, Optional[str]] = Field(default_factory=dict)


# ============================================================================
# NFT Collections
# ============================================================================


class ContractDetails(DirectoryModel):
    """One NFT contract as reported by OpenSea or Zapper."""

    name: Optional[str] = None
    contract_address: str
    chain_id: Optional[str] = None
    image_url: Optional[str] = None
    banner_image_url: Optional[str] = None
    description: Optional[str] = None
    opensea_url: Optional[str] = None
    project_url: Optional[str] = None
    discord_url: Optional[str] = None
    twitter_username: Optional[str] = None
    symbol: Optional[str] = None
    nft_standard: Optional[str] = None
    total_supply: Optional[int] = None
    holders_count: Optional[int] = None
    floor_price_usd: Optional[float] = None


class NFTCollection(DirectoryModel):
    """A collection as displayed on a creator's profile."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    banner_image_url: Optional[str] = None
    opensea_url: str
    project_url: str = ""
    contract_address: str

    @classmethod
    def from_contract(cls, contract: ContractDetails) -> "NFTCollection":
        return cls(
            id=contract.contract_address,
            name=contract.name,
            description=contract.description,
            image_url=contract.image_url,
            banner_image_url=contract.banner_image_url,
            opensea_url=f"{OPENSEA_ASSET_URL}{contract.contract_address}",
            project_url=contract.project_url or "",
            contract_address=contract.contract_address,
        )


class NFTData(DirectoryModel):
    collections: List[NFTCollection] = Field(default_factory=list)

    @classmethod
    def from_contracts(cls, contracts: List[ContractDetails]) -> "NFTData":
        return cls(collections=[NFTCollection.from_contract(c) for c in contracts])


# ============================================================================
# Gives
# ============================================================================


class Give(DirectoryModel):
    """A skill endorsement received by a creator."""

    id: str
    skill: str = ""
    created_at: Optional[str] = None


class GiveGroup(DirectoryModel):
    """Gives sharing one skill."""

    count: int
    gives: List[Give]
    skill: str


class CreatorWithNFTData(Creator):
    """A creator with identity, gives and collections attached."""

    resolution: Optional[BasenameResolution] = None
    gives: List[GiveGroup] = Field(default_factory=list)
    nft_data: NFTData = Field(default_factory=NFTData)


# ============================================================================
# Cache Debug
# ============================================================================


class CacheDebugInfo(DirectoryModel):
    """State of the creators-list cache entry and its revalidation lock."""

    cache_exists: bool
    ttl: int = Field(description="Remaining TTL, -2 when missing, -1 without expiry")
    creator_count: Optional[int] = Field(
        default=None, description="Number of cached creators, None when nothing is cached"
    )
    lock_exists: bool
    lock_ttl: int
    last_revalidation_time: Optional[int] = Field(
        default=None, description="Lock acquisition time in epoch milliseconds"
    )
