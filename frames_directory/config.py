"""Configuration for the creators directory service."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def get_int(env_var: str, default: int) -> int:
    """Get an integer from environment or return default."""
    try:
        return int(os.getenv(env_var, default))
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid {env_var}, using default {default}"
        )
        return default


def get_float(env_var: str, default: float) -> float:
    """Get a float from environment or return default."""
    try:
        return float(os.getenv(env_var, default))
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid {env_var}, using default {default}"
        )
        return default


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for entry points (API server, CLI)."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# ============================================================================
# Directory (Hasura GraphQL) Configuration
# ============================================================================

# Coordinape circle backing the directory
CIRCLE_ID = get_int("CIRCLE_ID", 31712)

# Address never listed in the directory (circle admin)
EXCLUDED_ADDRESS = os.getenv(
    "EXCLUDED_ADDRESS", "0x4fd59e958a4eaf440d761c41c73e40bffd069f4d"
)

# Entrance recorded for users who join through this service
DIRECTORY_ENTRANCE = os.getenv("DIRECTORY_ENTRANCE", "frames-be")

HASURA_URL = os.getenv("HASURA_URL", "https://coordinape-prod.hasura.app/v1/graphql")
HASURA_AUTH = os.getenv("HASURA_AUTH")

# Relative avatar paths are stored against this bucket
AVATAR_BASE_URL = os.getenv(
    "AVATAR_BASE_URL", "https://coordinape-prod.s3.amazonaws.com/"
)

# ============================================================================
# Third-party NFT APIs
# ============================================================================

OPENSEA_API_KEY = os.getenv("OPENSEA_API_KEY")
OPENSEA_API_URL = os.getenv("OPENSEA_API_URL", "https://api.opensea.io/api/v2")

ZAPPER_API_KEY = os.getenv("ZAPPER_API_KEY", "")
ZAPPER_API_URL = os.getenv("ZAPPER_API_URL", "https://public.zapper.xyz/graphql")

# "opensea" or "zapper"
DEFAULT_NFT_DOMAIN = os.getenv("DEFAULT_NFT_DOMAIN", "opensea")

BASENAME_RESOLVER_URL = os.getenv(
    "BASENAME_RESOLVER_URL", "http://localhost:3000/api/ens"
)

# ============================================================================
# Cache Durations (seconds)
# ============================================================================

CREATORS_CACHE_DURATION = get_int("CREATORS_CACHE_DURATION", 300)
CREATORS_REVALIDATION_WINDOW = get_int("CREATORS_REVALIDATION_WINDOW", 60)

SINGLE_CREATOR_CACHE_DURATION = get_int("SINGLE_CREATOR_CACHE_DURATION", 900)
SINGLE_CREATOR_REVALIDATION_WINDOW = get_int("SINGLE_CREATOR_REVALIDATION_WINDOW", 60)

# Lock held while one process revalidates a key
LOCK_DURATION = get_int("LOCK_DURATION", 30)

COLLECTIONS_CACHE_DURATION = get_int("COLLECTIONS_CACHE_DURATION", 86400)
BASENAME_CACHE_DURATION = get_int("BASENAME_CACHE_DURATION", 86400)

# Cooldown between user-triggered requirement refreshes
REFRESH_COOLDOWN = get_int("REFRESH_COOLDOWN", 60)

# ============================================================================
# Creators list enrichment
# ============================================================================

ENRICH_CHUNK_SIZE = get_int("ENRICH_CHUNK_SIZE", 20)
ENRICH_ITEM_TIMEOUT = get_float("ENRICH_ITEM_TIMEOUT", 5.0)

# ============================================================================
# HTTP API
# ============================================================================

# Comma-separated list of origins allowed to call the API
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")


def get_cors_origins() -> list:
    """Parse allowed CORS origins from CORS_ORIGINS."""
    return [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]
