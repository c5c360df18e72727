"""Creator directory API endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from frames_directory.bootstrap import DirectoryServices
from frames_directory.dependencies import get_services
from frames_directory.errors import StoreUnavailableError, UpstreamError
from frames_directory.models import ContractDetails, CreatorWithNFTData, DirectoryModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/creators", tags=["creators"])


# ============================================================================
# Response Models
# ============================================================================


class CacheBustResponse(BaseModel):
    """Response model for an address cache bust."""

    address: str = Field(description="Address whose caches were dropped")
    busted: bool = Field(description="True when the keys were deleted")


class MembershipResponse(DirectoryModel):
    """Response model for a membership check."""

    address: str = Field(description="Address that was checked")
    is_member: bool = Field(description="True when the address is in the directory")


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=List[CreatorWithNFTData])
async def list_creators(services: DirectoryServices = Depends(get_services)):
    """
    Get every creator in the directory.

    Served from cache and revalidated in the background; returns an empty
    list when nothing can be fetched.
    """
    return await services.creators.get_creators()


@router.get("/{address}", response_model=CreatorWithNFTData)
async def get_creator(address: str, services: DirectoryServices = Depends(get_services)):
    """
    Get a single creator by address.

    Raises:
        HTTPException: 404 if the address is not in the directory,
            502 if the directory API fails and nothing is cached
    """
    try:
        creator = await services.creator.get_creator(address)
    except UpstreamError as e:
        logger.error(f"Failed to load creator {address}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upstream error: {e.source}",
        )

    if creator is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Creator {address} not found",
        )
    return creator


@router.get("/{address}/collections", response_model=List[ContractDetails])
async def get_collections(
    address: str,
    domain: Optional[str] = Query(None, description="'opensea' or 'zapper'"),
    chain: Optional[str] = Query(None, description="Only contracts on this chain"),
    services: DirectoryServices = Depends(get_services),
):
    """Get the NFT collections deployed by an address."""
    return await services.nft.get_nft_collections(address, domain=domain, chain=chain)


@router.get("/{address}/membership", response_model=MembershipResponse)
async def check_membership(address: str, services: DirectoryServices = Depends(get_services)):
    """Check whether an address already belongs to the directory."""
    is_member = await services.membership.address_is_member(address)
    return MembershipResponse(address=address, is_member=is_member)


@router.delete("/{address}/cache", response_model=CacheBustResponse)
async def bust_creator_cache(address: str, services: DirectoryServices = Depends(get_services)):
    """Drop the cached profile and collections of an address."""
    try:
        await services.invalidate_address(address)
    except StoreUnavailableError as e:
        logger.error(f"Cache bust failed for {address}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache store unavailable",
        )
    return CacheBustResponse(address=address, busted=True)
