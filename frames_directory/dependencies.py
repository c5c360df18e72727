"""FastAPI dependency injection utilities."""

import logging

from fastapi import HTTPException, Request, status

from frames_directory.bootstrap import DirectoryServices

logger = logging.getLogger(__name__)


def get_services(request: Request) -> DirectoryServices:
    """
    FastAPI dependency for the process-wide services.

    The services are built by the app lifespan (or injected by
    ``create_app(services=...)``) and stored on ``app.state``.

    Raises:
        HTTPException: 503 Service Unavailable if the services are not initialized

    Example:
        @router.get("/api/creators")
        async def list_creators(services: DirectoryServices = Depends(get_services)):
            return await services.creators.get_creators()
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        logger.error("Directory services are not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return services
