#!/usr/bin/env python
"""CLI entry point for the creators directory cache."""

import asyncio

import click
from dotenv import load_dotenv

from frames_directory import config
from frames_directory.bootstrap import build_services, close_services
from frames_directory.cache.debug import get_cache_info
from frames_directory.errors import StoreUnavailableError

load_dotenv()


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Creators directory - inspect, bust and warm the directory cache."""
    config.configure_logging(log_level)


@cli.command("cache-info")
def cache_info():
    """Show the creators-list cache entry and its revalidation lock."""

    async def run():
        services = await build_services()
        try:
            info = await get_cache_info(services.store)
        finally:
            await close_services(services)

        click.echo("Creators cache")
        click.echo("=" * 60)
        click.echo(f"  Cached:        {'yes' if info.cache_exists else 'no'}")
        click.echo(f"  TTL:           {info.ttl}s")
        click.echo(f"  Creators:      {info.creator_count if info.creator_count is not None else '-'}")
        click.echo(f"  Lock held:     {'yes' if info.lock_exists else 'no'}")
        click.echo(f"  Lock TTL:      {info.lock_ttl}s")
        click.echo(f"  Lock taken at: {info.last_revalidation_time or '-'}")

    try:
        asyncio.run(run())
    except StoreUnavailableError as e:
        raise click.ClickException(f"Cache store unavailable: {e}")


@cli.command()
@click.argument("address")
def bust(address: str):
    """Drop the cached profile and collections of ADDRESS."""

    async def run():
        services = await build_services()
        try:
            await services.invalidate_address(address)
        finally:
            await close_services(services)
        click.echo(f"✅ Busted caches for {address.lower()}")

    try:
        asyncio.run(run())
    except StoreUnavailableError as e:
        raise click.ClickException(f"Cache store unavailable: {e}")


@cli.command()
def warm():
    """Fetch the creators list into the cache."""

    async def run():
        services = await build_services()
        try:
            creators = await services.creators.get_creators()
        finally:
            await close_services(services)
        click.echo(f"✅ Creators cache holds {len(creators)} creators")

    try:
        asyncio.run(run())
    except StoreUnavailableError as e:
        raise click.ClickException(f"Cache store unavailable: {e}")


if __name__ == "__main__":
    cli()
