"""Pytest configuration and shared fixtures for the creators directory tests.

This module provides:
- Basic pytest configuration
- An in-memory store with a controllable clock
- Helpers for httpx clients backed by MockTransport
"""

import os
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

# Add project root to Python path to allow imports from frames_directory and cli
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fakes import FakeClock, FakeStore  # noqa: E402
from frames_directory.cache.revalidating import RevalidatingCache  # noqa: E402


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers",
        "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test (slower, multiple components)"
    )


# ==================== Environment Fixtures ====================

@pytest.fixture(scope="function", autouse=True)
def isolate_environment():
    """Restore environment variables changed by a test."""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ==================== Store Fixtures ====================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> FakeStore:
    """In-memory key-value store sharing the test clock."""
    return FakeStore(clock)


@pytest.fixture
async def cache(store, clock):
    """RevalidatingCache on the fake store; background tasks drained after the test."""
    cache = RevalidatingCache(store, clock=clock)
    yield cache
    await cache.drain()


# ==================== HTTP Fixtures ====================

@pytest.fixture
async def make_http():
    """Build httpx clients answered by a handler function.

    Example:
        http = make_http(lambda request: httpx.Response(200, json={}))
    """
    clients = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
