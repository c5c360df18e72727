"""Basename resolution with a two-sided cache.

A resolution is cached under the address and under the name, so a lookup
from either side is served without calling the resolver. Text records get
their own key. Entries live for 24 hours.

Cache keys:
    basename:addr:{address}    resolution, looked up by address
    basename:name:{basename}   resolution, looked up by name
    basename:records:{basename} text records only
"""

import logging
import re
from typing import Optional

import httpx

from frames_directory import config
from frames_directory.cache.keys import (
    basename_address_key,
    basename_lookup_key,
    basename_name_key,
    basename_records_key,
    is_basename,
)
from frames_directory.cache.serializer import decode_entry, encode_entry
from frames_directory.errors import StoreUnavailableError, UpstreamError
from frames_directory.models import BasenameResolution
from frames_directory.redis_client import KeyValueStore
from frames_directory.retry import retry_async

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_address(value: str) -> bool:
    return bool(ADDRESS_PATTERN.match(value))


class BasenameCache:
    """Two-sided basename cache on the shared store."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = config.BASENAME_CACHE_DURATION):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def get(self, value: str) -> Optional[BasenameResolution]:
        """Cached resolution for an address or a ``*.base.eth`` name."""
        entry = decode_entry(await self.store.get(basename_lookup_key(value)))
        if entry is None or entry.data is None:
            return None
        return BasenameResolution.model_validate(entry.data)

    async def put(self, resolution: BasenameResolution) -> None:
        """
        Cache a resolution under both sides in one MULTI.

        An address without a name is cached on the address side only.
        """
        batch = self.store.multi()
        raw = encode_entry(resolution)
        if resolution.address:
            batch.set(basename_address_key(resolution.address), raw, ex=self.ttl_seconds)
        if resolution.basename:
            batch.set(basename_name_key(resolution.basename), raw, ex=self.ttl_seconds)
            batch.set(
                basename_records_key(resolution.basename),
                encode_entry(resolution.text_records),
                ex=self.ttl_seconds,
            )
        await batch.execute()

    async def bust(self, value: str) -> None:
        """Delete both sides of a cached resolution; no-op when nothing is cached."""
        cached = await self.get(value)
        if cached is None:
            return

        keys = []
        if cached.address:
            keys.append(basename_address_key(cached.address))
        if cached.basename:
            keys.append(basename_name_key(cached.basename))
            keys.append(basename_records_key(cached.basename))
        if not keys:
            return
        await self.store.multi().delete(*keys).execute()
        logger.info(f"Busted basename cache for {value}")


class HttpBasenameResolver:
    """Resolves names and addresses through the resolver HTTP endpoint.

    The endpoint answers ``GET {base_url}/{input}`` with
    ``{"basename": ..., "address": ..., "textRecords": {...}}``.
    """

    source = "basename-resolver"

    def __init__(self, http: httpx.AsyncClient, base_url: str = config.BASENAME_RESOLVER_URL):
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def resolve(self, value: str) -> BasenameResolution:
        try:
            response = await self.http.get(f"{self.base_url}/{value}")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                self.source,
                f"HTTP {e.response.status_code} resolving {value}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(self.source, f"request failed for {value}: {e}") from e
        except ValueError as e:
            raise UpstreamError(self.source, f"invalid JSON response: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamError(self.source, "unexpected response shape")

        basename = payload.get("basename") or ""
        return BasenameResolution(
            basename=basename,
            address=payload.get("address") or "",
            resolved=bool(basename),
            text_records=payload.get("textRecords") or {},
        )


class BasenameService:
    """Resolve addresses to basenames and back, cache first."""

    def __init__(
        self,
        cache: BasenameCache,
        resolver: HttpBasenameResolver,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.cache = cache
        self.resolver = resolver
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def resolve(self, value: str) -> BasenameResolution:
        """
        Resolve an address or a ``*.base.eth`` name.

        Raises:
            ValueError: If ``value`` is neither an address nor a basename
            UpstreamError: If the resolver keeps failing after the retries
        """
        value = (value or "").strip()
        if not (is_address(value) or is_basename(value)):
            raise ValueError("Invalid input: must be an Ethereum address or .base.eth name")

        try:
            cached = await self.cache.get(value)
        except StoreUnavailableError as e:
            logger.warning(f"Basename cache read failed for {value}: {e}")
            cached = None
        if cached is not None:
            logger.debug(f"Cache HIT: basename {value}")
            return cached

        logger.info(f"Cache MISS: basename {value}")
        resolution = await retry_async(
            lambda: self.resolver.resolve(value),
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            retry_on=(UpstreamError,),
        )

        try:
            await self.cache.put(resolution)
        except StoreUnavailableError as e:
            logger.error(f"Failed to cache basename resolution for {value}: {e}")
        return resolution

    async def resolve_or_none(self, value: str) -> Optional[BasenameResolution]:
        """Like ``resolve`` but returns None instead of raising."""
        try:
            return await self.resolve(value)
        except (ValueError, UpstreamError) as e:
            logger.warning(f"Basename resolution failed for {value}: {e}")
            return None
