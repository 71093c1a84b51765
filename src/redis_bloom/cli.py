"""
Command-line interface for Redis-backed Bloom filters.
"""
import asyncio
import functools
import logging
import sys
from pathlib import Path
from typing import List

import click
import structlog
from redis.exceptions import RedisError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from redis_bloom.bloom_filter import RedisBloomFilter
from redis_bloom.config import FilterSettings
from redis_bloom.errors import BloomFilterError


console = Console()


def _configure_logging(log_level: str):
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def filter_options(func):
    """Options shared by every command that talks to Redis."""
    @click.option("--config", "-c", type=click.Path(), help="Path to settings file")
    @click.option("--url", "-u", default=None, help="Redis URL")
    @click.option("--name", "-n", default=None, help="Filter name")
    @click.option("--log-level", "-l", default=None, help="Log level")
    @functools.wraps(func)
    def wrapper(config, url, name, log_level, **kwargs):
        if config and Path(config).exists():
            settings = FilterSettings.from_file(config)
        else:
            settings = FilterSettings.from_env()

        # Override with CLI arguments if provided
        if url:
            settings.redis_url = url
        if name:
            settings.name = name
        if log_level:
            settings.log_level = log_level

        _configure_logging(settings.log_level)
        return func(settings, **kwargs)
    return wrapper


def _run(coro_factory, settings: FilterSettings):
    """Open a filter, run one coroutine against it and report failures."""
    async def runner():
        async with RedisBloomFilter.from_settings(settings) as bloom:
            return await coro_factory(bloom)

    try:
        return asyncio.run(runner())
    except (BloomFilterError, RedisError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def _collect_items(items, item_file) -> List[str]:
    collected = list(items)
    if item_file is not None:
        collected.extend(line.rstrip("\n") for line in item_file if line.strip())
    return collected


@click.group()
def main():
    """Redis Bloom Filter - shared probabilistic set membership on Redis."""
    pass


@main.command()
@filter_options
@click.option("--expected", "-e", type=int, default=None, help="Expected insertions")
@click.option("--probability", "-p", type=float, default=None, help="False positive probability")
@click.option("--ttl", "-t", type=int, default=None, help="Expiry in seconds (0 = none)")
def init(settings, expected, probability, ttl):
    """Create a filter unless it already exists."""
    if expected is not None:
        settings.expected_insertions = expected
    if probability is not None:
        settings.false_probability = probability
    if ttl is not None:
        settings.ttl_seconds = ttl

    async def do_init(bloom: RedisBloomFilter):
        performed = await bloom.try_init(settings.expected_insertions, settings.false_probability)
        return performed, bloom.get_size(), bloom.get_hash_iterations()

    performed, size, hash_iterations = _run(do_init, settings)
    status = "[green]Created[/green]" if performed else "[yellow]Already initialized[/yellow]"

    console.print(Panel.fit(
        f"[bold cyan]Bloom Filter {settings.name}[/bold cyan]\n"
        f"Status: {status}\n"
        f"Size: {size} bits\n"
        f"Hash Iterations: {hash_iterations}",
        border_style="cyan"
    ))


@main.command()
@filter_options
@click.argument("items", nargs=-1)
@click.option("--file", "-f", "item_file", type=click.File("r"), help="Read items, one per line")
def add(settings, items, item_file):
    """Add items to a filter."""
    collected = _collect_items(items, item_file)

    async def do_add(bloom: RedisBloomFilter):
        return await bloom.add_all(collected)

    added = _run(do_add, settings)
    console.print(f"[green]Added {added} of {len(collected)} items[/green]")


@main.command()
@filter_options
@click.argument("items", nargs=-1)
@click.option("--file", "-f", "item_file", type=click.File("r"), help="Read items, one per line")
def contains(settings, items, item_file):
    """Check items against a filter in one round trip."""
    collected = _collect_items(items, item_file)

    async def do_contains(bloom: RedisBloomFilter):
        return await bloom.contains_each(collected)

    results = _run(do_contains, settings)

    table = Table(title=f"Membership in {settings.name}")
    table.add_column("Item", style="cyan")
    table.add_column("Present", style="green")

    for item, present in zip(collected, results):
        table.add_row(item, "maybe" if present else "no")

    console.print(table)


@main.command()
@filter_options
def count(settings):
    """Estimate how many items a filter holds."""
    async def do_count(bloom: RedisBloomFilter):
        return await bloom.count()

    console.print(f"[cyan]{_run(do_count, settings)}[/cyan]")


@main.command()
@filter_options
def info(settings):
    """Display filter statistics."""
    async def do_stats(bloom: RedisBloomFilter):
        return await bloom.get_stats()

    stats = _run(do_stats, settings)

    table = Table(title="Bloom Filter Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Name", stats['name'])
    table.add_row("Size (bits)", str(stats['size']))
    table.add_row("Hash Iterations", str(stats['hash_iterations']))
    table.add_row("Expected Insertions", str(stats['expected_insertions']))
    table.add_row("False Probability", str(stats['false_probability']))
    table.add_row("Bits Set", str(stats['bit_count']))
    table.add_row("Fill Ratio", f"{stats['fill_ratio']:.4f}")
    table.add_row("Estimated Count", str(stats['estimated_count']))
    table.add_row("Current FPR", f"{stats['current_false_positive_rate']:.6f}")
    table.add_row("TTL", "none" if stats['ttl'] < 0 else f"{stats['ttl']}s")

    console.print(table)


@main.command()
@filter_options
def delete(settings):
    """Delete a filter."""
    async def do_delete(bloom: RedisBloomFilter):
        return await bloom.delete()

    if _run(do_delete, settings):
        console.print(f"[green]Deleted {settings.name}[/green]")
    else:
        console.print(f"[yellow]{settings.name} did not exist[/yellow]")


@main.command()
@click.argument("output", type=click.Path())
@click.option("--url", "-u", default="redis://localhost:6379/0", help="Redis URL")
@click.option("--name", "-n", default="bloom-filter", help="Filter name")
@click.option("--expected", "-e", type=int, default=1000, help="Expected insertions")
@click.option("--probability", "-p", type=float, default=0.01, help="False positive probability")
@click.option("--ttl", "-t", type=int, default=0, help="Expiry in seconds (0 = none)")
def generate_config(output, url, name, expected, probability, ttl):
    """Generate a settings file."""
    settings = FilterSettings(
        name=name,
        redis_url=url,
        expected_insertions=expected,
        false_probability=probability,
        ttl_seconds=ttl,
    )
    settings.validate()

    settings.to_file(output)
    console.print(f"[green]Settings saved to {output}[/green]")


@main.command()
def version():
    """Display version information."""
    from . import __version__
    console.print(f"[cyan]Redis Bloom Filter v{__version__}[/cyan]")


if __name__ == "__main__":
    main()
