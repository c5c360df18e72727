"""Tests for the cache CLI (cli.py)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

import cli as cli_module
from frames_directory.cache.keys import CREATORS_CACHE_KEY
from frames_directory.errors import StoreUnavailableError


@pytest.fixture
def fake_services(store):
    services = MagicMock()
    services.store = store
    services.invalidate_address = AsyncMock()
    services.creators.get_creators = AsyncMock(return_value=[object(), object()])
    return services


@pytest.fixture
def patched(fake_services):
    with patch.object(cli_module, "build_services", new=AsyncMock(return_value=fake_services)), \
            patch.object(cli_module, "close_services", new=AsyncMock()) as close:
        yield close


@pytest.mark.unit
def test_cache_info(patched, store):
    store.seed(CREATORS_CACHE_KEY, [{"id": "1"}], ttl=200)

    result = CliRunner().invoke(cli_module.cli, ["cache-info"])

    assert result.exit_code == 0
    assert "Cached:        yes" in result.output
    assert "Creators:      1" in result.output
    patched.assert_awaited_once()


@pytest.mark.unit
def test_bust(patched, fake_services):
    result = CliRunner().invoke(cli_module.cli, ["bust", "0xABC"])

    assert result.exit_code == 0
    assert "0xabc" in result.output
    fake_services.invalidate_address.assert_awaited_once_with("0xABC")


@pytest.mark.unit
def test_warm(patched):
    result = CliRunner().invoke(cli_module.cli, ["warm"])

    assert result.exit_code == 0
    assert "2 creators" in result.output


@pytest.mark.unit
def test_store_unavailable_is_reported():
    failing = AsyncMock(side_effect=StoreUnavailableError("Redis unreachable"))
    with patch.object(cli_module, "build_services", new=failing):
        result = CliRunner().invoke(cli_module.cli, ["warm"])

    assert result.exit_code == 1
    assert "Cache store unavailable" in result.output
