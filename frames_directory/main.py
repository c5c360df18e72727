"""FastAPI app for the creators directory.

Run with:
    uvicorn frames_directory.main:app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from frames_directory import config
from frames_directory.api import cache as cache_api
from frames_directory.api import creators as creators_api
from frames_directory.api import directory as directory_api
from frames_directory.bootstrap import DirectoryServices, build_services, close_services
from frames_directory.dependencies import get_services
from frames_directory.http_pool import check_http_client_health

logger = logging.getLogger(__name__)


def create_app(services: Optional[DirectoryServices] = None) -> FastAPI:
    """
    Build the API app.

    Args:
        services: Prebuilt services. When omitted the lifespan builds them
            from the environment and closes them on shutdown; injected
            services are left open for their owner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = await build_services() if owned else services
        try:
            yield
        finally:
            if owned:
                await close_services(app.state.services)
            app.state.services = None

    app = FastAPI(title="Creators Directory API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(creators_api.router)
    app.include_router(directory_api.router)
    app.include_router(cache_api.router)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health(services: DirectoryServices = Depends(get_services)):
        """Health check endpoint."""
        redis_ok = await services.store.ping()
        return {
            "status": "healthy" if redis_ok else "degraded",
            "redis": "connected" if redis_ok else "unavailable",
            "http": check_http_client_health(services.http),
            "pending_revalidations": services.cache.pending_revalidations,
        }

    return app


config.configure_logging()
app = create_app()
