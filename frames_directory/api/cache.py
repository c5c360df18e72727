"""Cache inspection and refresh endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from frames_directory.bootstrap import DirectoryServices
from frames_directory.cache.debug import get_cache_info
from frames_directory.dependencies import get_services
from frames_directory.errors import StoreUnavailableError
from frames_directory.models import CacheDebugInfo
from frames_directory.services.refresh import refresh_requirements_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["cache"])


class RefreshResponse(BaseModel):
    """Response model for a requirements refresh."""

    success: bool = Field(description="True when the caches were dropped")
    error: Optional[str] = Field(default=None, description="Why the refresh was refused")


@router.get("/info", response_model=CacheDebugInfo)
async def cache_info(services: DirectoryServices = Depends(get_services)):
    """State of the creators-list cache entry and its revalidation lock."""
    try:
        return await get_cache_info(services.store)
    except StoreUnavailableError as e:
        logger.error(f"Cache info unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache store unavailable",
        )


@router.post("/refresh/{address}", response_model=RefreshResponse)
async def refresh(address: str, services: DirectoryServices = Depends(get_services)):
    """
    Drop the collection caches of an address, at most once a minute.

    A refused refresh is still a 200 with ``success: false``.
    """
    result = await refresh_requirements_cache(services.store, services.nft, address)
    return RefreshResponse(**result)
