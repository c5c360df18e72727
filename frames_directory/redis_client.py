"""Redis key-value store wrapper used by the caching layer.

This module owns the connection settings for Redis and exposes a narrow
async store interface (get/set/del/ttl/exists plus MULTI batches) on top of
``redis.asyncio``. Every Redis failure is re-raised as
``StoreUnavailableError`` so callers can tell store outages apart from
upstream API failures.

Architecture:
    - RedisConfig: connection settings from environment variables
    - create_redis_pool / close_redis_pool: lifecycle, owned by bootstrap
    - KeyValueStore: the store interface consumed by the cache
    - StoreBatch: MULTI/EXEC batch returning ordered results
    - KeyTtl: tagged TTL result (absent / persistent / expiring)

Usage:
    client = await create_redis_pool()
    store = KeyValueStore(client)

    acquired = await store.set("lock:key", "1", ex=30, nx=True)
    cached, ttl = await store.multi().get("key").ttl("key").execute()

    await close_redis_pool(client)
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError
from dotenv import load_dotenv

from frames_directory.errors import StoreUnavailableError

load_dotenv()

logger = logging.getLogger(__name__)

# Redis TTL replies
_TTL_KEY_MISSING = -2
_TTL_NO_EXPIRY = -1


class RedisConfig:
    """Configuration for Redis connection pool.

    Loads settings from environment variables with sensible defaults.
    ``REDIS_URL`` takes precedence over the host/port/db/password settings.
    """

    def __init__(self):
        """Initialize Redis configuration from environment variables."""
        self.url = os.getenv("REDIS_URL")
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", "6379"))
        self.db = int(os.getenv("REDIS_DB", "0"))
        self.password = os.getenv("REDIS_PASSWORD", None)
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", "10"))
        self.socket_timeout = int(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))
        self.socket_connect_timeout = int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5"))
        self.retry_on_timeout = os.getenv("REDIS_RETRY_ON_TIMEOUT", "true").lower() == "true"

    def build_url(self) -> str:
        """Build the connection URL (``REDIS_URL`` wins when set)."""
        if self.url:
            return self.url
        redis_url = "redis://"
        if self.password:
            redis_url += f":{self.password}@"
        redis_url += f"{self.host}:{self.port}/{self.db}"
        return redis_url

    def __repr__(self) -> str:
        """String representation (safe - no password)."""
        return (
            f"RedisConfig("
            f"host={self.host}, "
            f"port={self.port}, "
            f"db={self.db}, "
            f"max_connections={self.max_connections})"
        )


@dataclass(frozen=True)
class KeyTtl:
    """Remaining lifetime of a key.

    ``present`` is False when the key does not exist. ``seconds`` is None for
    keys without an expiry.
    """

    present: bool
    seconds: Optional[int] = None

    @classmethod
    def absent(cls) -> "KeyTtl":
        return cls(present=False)

    @classmethod
    def persistent(cls) -> "KeyTtl":
        return cls(present=True)

    @classmethod
    def expiring(cls, seconds: int) -> "KeyTtl":
        return cls(present=True, seconds=seconds)

    @classmethod
    def from_redis(cls, raw: Optional[int]) -> "KeyTtl":
        """Map a Redis TTL reply (-2 missing, -1 no expiry) to a KeyTtl."""
        if raw is None or raw == _TTL_KEY_MISSING:
            return cls.absent()
        if raw == _TTL_NO_EXPIRY:
            return cls.persistent()
        return cls.expiring(int(raw))

    def expires_within(self, window_seconds: int) -> bool:
        """True when the key is absent or has less than ``window_seconds`` left."""
        if not self.present:
            return True
        if self.seconds is None:
            return False
        return self.seconds < window_seconds

    def as_int(self) -> int:
        """Redis-style integer form, used for debug output."""
        if not self.present:
            return _TTL_KEY_MISSING
        if self.seconds is None:
            return _TTL_NO_EXPIRY
        return self.seconds


def _as_bool(value: Any) -> bool:
    return bool(value)


def _identity(value: Any) -> Any:
    return value


class StoreBatch:
    """Queued commands executed together in one MULTI/EXEC round-trip.

    Command methods return the batch so calls can be chained. ``execute()``
    returns one result per queued command, in order, converted the same way
    as the single-command methods of ``KeyValueStore``.
    """

    def __init__(self, pipeline):
        self._pipeline = pipeline
        self._converters: List[Callable[[Any], Any]] = []

    def get(self, key: str) -> "StoreBatch":
        self._pipeline.get(key)
        self._converters.append(_identity)
        return self

    def set(
        self,
        key: str,
        value: str,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> "StoreBatch":
        self._pipeline.set(key, value, ex=ex, nx=nx)
        self._converters.append(_as_bool)
        return self

    def ttl(self, key: str) -> "StoreBatch":
        self._pipeline.ttl(key)
        self._converters.append(KeyTtl.from_redis)
        return self

    def exists(self, key: str) -> "StoreBatch":
        self._pipeline.exists(key)
        self._converters.append(_as_bool)
        return self

    def delete(self, *keys: str) -> "StoreBatch":
        self._pipeline.delete(*keys)
        self._converters.append(int)
        return self

    async def execute(self) -> List[Any]:
        """Run the queued commands and return their converted results."""
        try:
            results = await self._pipeline.execute()
        except RedisError as e:
            raise StoreUnavailableError(f"Redis MULTI failed: {e}") from e
        return [convert(result) for convert, result in zip(self._converters, results)]


class KeyValueStore:
    """Async key-value store on a shared Redis client.

    Unlike a best-effort cache client, every method raises
    ``StoreUnavailableError`` on failure; the caching layer decides how to
    degrade.

    Example:
        store = KeyValueStore(redis_client)

        await store.set("key", "value", ex=3600)
        value = await store.get("key")
        ttl = await store.ttl("key")
        await store.delete("key")
    """

    def __init__(self, client: aioredis.Redis):
        """Initialize the store.

        Args:
            client: Async Redis client instance with connection pool
        """
        self.client = client

    async def ping(self) -> bool:
        """Check if Redis server is reachable.

        Returns:
            True if server responds to ping, False otherwise
        """
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StoreUnavailableError(f"Redis GET failed for key '{key}': {e}") from e

    async def set(
        self,
        key: str,
        value: str,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> bool:
        """Set a value, optionally with expiry and only-if-absent.

        Returns:
            True if the value was written; False when ``nx`` was requested
            and the key already existed
        """
        try:
            result = await self.client.set(key, value, ex=ex, nx=nx)
        except RedisError as e:
            raise StoreUnavailableError(f"Redis SET failed for key '{key}': {e}") from e
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """Delete keys; missing keys are ignored.

        Returns:
            Number of keys deleted
        """
        if not keys:
            return 0
        try:
            count = await self.client.delete(*keys)
        except RedisError as e:
            raise StoreUnavailableError(f"Redis DELETE failed for keys {keys}: {e}") from e
        logger.debug(f"Cache DELETE: {keys} (count={count})")
        return count

    async def ttl(self, key: str) -> KeyTtl:
        try:
            raw = await self.client.ttl(key)
        except RedisError as e:
            raise StoreUnavailableError(f"Redis TTL failed for key '{key}': {e}") from e
        return KeyTtl.from_redis(raw)

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as e:
            raise StoreUnavailableError(f"Redis EXISTS failed for key '{key}': {e}") from e

    def multi(self) -> StoreBatch:
        """Start a MULTI/EXEC batch."""
        return StoreBatch(self.client.pipeline(transaction=True))


async def create_redis_pool(config: Optional[RedisConfig] = None) -> aioredis.Redis:
    """Create an async Redis client with its connection pool.

    Called once by the process bootstrap. The caller owns the returned
    client and must pass it to ``close_redis_pool`` on shutdown.

    Raises:
        StoreUnavailableError: If Redis does not answer the initial ping
    """
    config = config or RedisConfig()
    logger.info(f"Initializing Redis pool with config: {config}")

    client = aioredis.from_url(
        config.build_url(),
        max_connections=config.max_connections,
        socket_timeout=config.socket_timeout,
        socket_connect_timeout=config.socket_connect_timeout,
        retry_on_timeout=config.retry_on_timeout,
        decode_responses=True,  # Return strings instead of bytes
    )

    try:
        await client.ping()
    except RedisError as e:
        logger.error(f"✗ Failed to initialize Redis pool: {e}", exc_info=True)
        await client.aclose()
        raise StoreUnavailableError(f"Redis unreachable: {e}") from e

    logger.info("✓ Redis pool initialized successfully")
    logger.info(f"  Redis server: {config.host}:{config.port}")
    logger.info(f"  Max connections: {config.max_connections}")
    return client


async def close_redis_pool(client: Optional[aioredis.Redis]) -> None:
    """Close a Redis client created by ``create_redis_pool``."""
    if client is None:
        logger.info("Redis pool is not initialized, nothing to close")
        return

    try:
        await client.aclose()
        logger.info("✓ Redis pool closed successfully")
    except RedisError as e:
        logger.error(f"Error closing Redis pool: {e}", exc_info=True)
