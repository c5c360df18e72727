"""Directory membership endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from frames_directory.bootstrap import DirectoryServices
from frames_directory.dependencies import get_services

router = APIRouter(prefix="/api/directory", tags=["directory"])


class JoinRequest(BaseModel):
    """Request to add an address to the directory."""

    address: str = Field(description="Wallet address joining the directory")
    name: str = Field(min_length=1, description="Display name of the new member")


class JoinResponse(BaseModel):
    """Response model for a join."""

    success: bool = Field(description="True when the directory created the user")


@router.post("/join", response_model=JoinResponse)
async def join_directory(request: JoinRequest, services: DirectoryServices = Depends(get_services)):
    """
    Join the directory.

    An invalid address or a blank name is a 400. A failed join is still a
    200 with ``success: false``.
    """
    success = await services.membership.join_directory(request.address, request.name)
    return JoinResponse(success=success)
