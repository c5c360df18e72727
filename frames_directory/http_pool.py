"""HTTP client pool management using httpx with connection pooling.

Upstream fetchers (Hasura GraphQL, OpenSea, Zapper, the Basename resolver)
share one ``httpx.AsyncClient`` so TCP and TLS connections are reused across
requests. The client is created and closed by the process bootstrap and
handed to each fetcher explicitly.

Environment Variables:
    Connection pool settings:
        HTTP_MAX_CONNECTIONS: Max connections per client (default: 100)
        HTTP_MAX_KEEPALIVE_CONNECTIONS: Max keepalive connections (default: 20)
        HTTP_KEEPALIVE_EXPIRY: Keepalive expiry in seconds (default: 5.0)

    Timeout settings:
        HTTP_CONNECT_TIMEOUT: Connection timeout in seconds (default: 10.0)
        HTTP_READ_TIMEOUT: Read timeout in seconds (default: 30.0)
        HTTP_WRITE_TIMEOUT: Write timeout in seconds (default: 30.0)
        HTTP_POOL_TIMEOUT: Pool acquire timeout in seconds (default: 10.0)

    Protocol settings:
        HTTP2_ENABLED: Enable HTTP/2 support (default: true)
"""

import logging
import os
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class HttpClientConfig:
    """Configuration for httpx.AsyncClient connection pooling.

    Loads settings from environment variables with sensible defaults.
    """

    def __init__(self):
        """Initialize HTTP client configuration from environment variables."""
        # Connection pool settings
        self.max_connections = int(os.getenv("HTTP_MAX_CONNECTIONS", "100"))
        self.max_keepalive_connections = int(
            os.getenv("HTTP_MAX_KEEPALIVE_CONNECTIONS", "20")
        )
        self.keepalive_expiry = float(os.getenv("HTTP_KEEPALIVE_EXPIRY", "5.0"))

        # Timeout settings (all in seconds)
        self.connect_timeout = float(os.getenv("HTTP_CONNECT_TIMEOUT", "10.0"))
        self.read_timeout = float(os.getenv("HTTP_READ_TIMEOUT", "30.0"))
        self.write_timeout = float(os.getenv("HTTP_WRITE_TIMEOUT", "30.0"))
        self.pool_timeout = float(os.getenv("HTTP_POOL_TIMEOUT", "10.0"))

        # Protocol settings
        self.http2_enabled = os.getenv("HTTP2_ENABLED", "true").lower() == "true"

    def get_limits(self) -> dict:
        """Get keyword arguments for ``httpx.Limits``."""
        return {
            "max_connections": self.max_connections,
            "max_keepalive_connections": self.max_keepalive_connections,
            "keepalive_expiry": self.keepalive_expiry,
        }

    def get_timeout(self) -> dict:
        """Get keyword arguments for ``httpx.Timeout``."""
        return {
            "connect": self.connect_timeout,
            "read": self.read_timeout,
            "write": self.write_timeout,
            "pool": self.pool_timeout,
        }

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"HttpClientConfig("
            f"max_connections={self.max_connections}, "
            f"max_keepalive={self.max_keepalive_connections}, "
            f"connect_timeout={self.connect_timeout}s, "
            f"read_timeout={self.read_timeout}s, "
            f"http2={self.http2_enabled})"
        )


def create_http_client(config: Optional[HttpClientConfig] = None) -> httpx.AsyncClient:
    """Create the shared upstream HTTP client.

    Args:
        config: Pool configuration, read from the environment when omitted

    Returns:
        httpx.AsyncClient owned by the caller
    """
    config = config or HttpClientConfig()
    logger.info(f"Initializing HTTP client with config: {config}")

    client = httpx.AsyncClient(
        limits=httpx.Limits(**config.get_limits()),
        timeout=httpx.Timeout(**config.get_timeout()),
        http2=config.http2_enabled,
        follow_redirects=True,
    )

    logger.info("✓ HTTP client initialized successfully")
    logger.info(f"  Connection pooling: enabled (keepalive={config.keepalive_expiry}s)")
    logger.info(f"  HTTP/2 support: {config.http2_enabled}")
    return client


async def close_http_client(client: Optional[httpx.AsyncClient]) -> None:
    """Close a client created by ``create_http_client``."""
    if client is None or client.is_closed:
        return

    try:
        await client.aclose()
        logger.info("✓ HTTP client closed successfully")
    except httpx.HTTPError as e:
        logger.error(f"✗ Error closing HTTP client: {e}", exc_info=True)


def check_http_client_health(client: Optional[httpx.AsyncClient]) -> dict:
    """Report whether the shared HTTP client is usable."""
    if client is None:
        return {"status": "unavailable", "error": "HTTP client not initialized"}
    return {"status": "closed" if client.is_closed else "healthy"}
