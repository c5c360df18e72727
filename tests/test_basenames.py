"""Tests for basename resolution and its two-sided cache."""

import httpx
import pytest

from frames_directory.errors import UpstreamError
from frames_directory.models import BasenameResolution
from frames_directory.services.basenames import (
    BasenameCache,
    BasenameService,
    HttpBasenameResolver,
    is_address,
)

ADDRESS = "0x2222222222222222222222222222222222222222"
RESOLVER_URL = "http://resolver.test/api/ens"


def resolver_handler(responses, calls):
    """Answer resolver requests with ``responses`` in order (the last one repeats)."""
    def handler(request):
        calls.append(request.url.path)
        return responses[min(len(calls), len(responses)) - 1]

    return handler


@pytest.fixture
def resolver_calls():
    return []


@pytest.fixture
def build_service(store, make_http, resolver_calls):
    def build(*responses):
        resolver = HttpBasenameResolver(
            make_http(resolver_handler(list(responses), resolver_calls)), RESOLVER_URL
        )
        return BasenameService(BasenameCache(store, ttl_seconds=86400), resolver, retry_delay=0)

    return build


def found(basename="alice.base.eth", address=ADDRESS, records=None):
    return httpx.Response(
        200,
        json={"basename": basename, "address": address, "textRecords": records or {"url": "https://a.example"}},
    )


# ==================== Validation ====================


@pytest.mark.unit
@pytest.mark.parametrize("value, expected", [
    (ADDRESS, True),
    ("0xAbCdEF0000000000000000000000000000000000", True),
    ("0x1234", False),
    ("alice.base.eth", False),
])
def test_is_address(value, expected):
    assert is_address(value) is expected


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "alice.eth", "0xnothex", "   "])
async def test_invalid_input_rejected(build_service, value):
    with pytest.raises(ValueError, match="Invalid input"):
        await build_service(found()).resolve(value)


# ==================== Resolution ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolution_cached_both_sides(build_service, store, resolver_calls):
    service = build_service(found())

    resolution = await service.resolve(ADDRESS)

    assert resolution.resolved is True
    assert resolution.basename == "alice.base.eth"
    assert sorted(store.keys()) == [
        f"basename:addr:{ADDRESS}",
        "basename:name:alice.base.eth",
        "basename:records:alice.base.eth",
    ]
    assert store.entry("basename:records:alice.base.eth").data == {"url": "https://a.example"}

    # Name side is served from cache
    by_name = await service.resolve("Alice.base.eth")
    assert by_name.address == ADDRESS
    assert resolver_calls == [f"/api/ens/{ADDRESS}"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unresolved_address_cached_on_address_side(build_service, store):
    service = build_service(httpx.Response(200, json={"basename": None, "address": ADDRESS}))

    resolution = await service.resolve(ADDRESS)

    assert resolution.resolved is False
    assert resolution.basename == ""
    assert store.keys() == [f"basename:addr:{ADDRESS}"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolver_retried(build_service, resolver_calls):
    service = build_service(httpx.Response(500), httpx.Response(502), found())

    resolution = await service.resolve(ADDRESS)

    assert resolution.resolved is True
    assert len(resolver_calls) == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolver_failure_after_retries(build_service, store, resolver_calls):
    service = build_service(httpx.Response(500))

    with pytest.raises(UpstreamError):
        await service.resolve(ADDRESS)

    assert len(resolver_calls) == 3
    assert store.keys() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolve_or_none(build_service):
    service = build_service(httpx.Response(500))

    assert await service.resolve_or_none(ADDRESS) is None
    assert await service.resolve_or_none("not-an-address") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_store_outage_still_resolves(build_service, store):
    store.fail()
    service = build_service(found())

    resolution = await service.resolve(ADDRESS)

    assert resolution.basename == "alice.base.eth"


# ==================== BasenameCache ====================


@pytest.mark.asyncio
@pytest.mark.unit
async def test_bust_removes_both_sides(store):
    cache = BasenameCache(store)
    await cache.put(BasenameResolution(basename="bob.base.eth", address=ADDRESS, resolved=True))
    assert len(store.keys()) == 3

    await cache.bust("bob.base.eth")

    assert store.keys() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_bust_missing_entry_is_noop(store):
    await BasenameCache(store).bust(ADDRESS)

    assert store.commands == ["get"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_put_is_single_batch(store):
    await BasenameCache(store).put(
        BasenameResolution(basename="bob.base.eth", address=ADDRESS, resolved=True)
    )

    assert store.commands == ["multi"]
