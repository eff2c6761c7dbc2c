"""Disk cache management commands."""

from __future__ import annotations

from datetime import UTC, datetime

import rich_click as click

from kubeschema import console as con
from kubeschema.errors import ConfigError
from kubeschema.storage import DiskSchemaCache, format_timedelta
from kubeschema.workspace import get_disk_cache


def _require_cache() -> DiskSchemaCache:
    try:
        cache = get_disk_cache()
    except ConfigError as e:
        con.print_error(str(e))
        raise SystemExit(1) from None
    if cache is None:
        con.print_warning("The schema cache is disabled in configuration")
        raise SystemExit(0)
    return cache


@click.group()
def cache() -> None:
    """Manage the on-disk cache of definitions documents."""
    pass


@cache.command("list")
@click.option("--version", "version", help="Only show entries for this resource version.")
def list_cache(version: str | None) -> None:
    """List cached definitions documents."""
    disk_cache = _require_cache()
    entries = disk_cache.entries(version)

    con.print_header("Cached Definitions")
    con.print_key_value("Location", con.format_path(str(disk_cache.base_path)))
    if not entries:
        con.print_info("Cache is empty")
        return

    now = datetime.now(UTC)
    rows = [
        (entry, format_timedelta(now - entry.timestamp), now - entry.timestamp > disk_cache.max_age)
        for entry in entries
    ]
    con.print_cache_entries(rows)

    metrics = disk_cache.metrics()
    limit_mb = disk_cache.max_size_bytes / (1024 * 1024)
    con.print_key_value("Total", f"{metrics.total_entries} entries, {metrics.total_size:,} B")
    con.print_key_value("Limit", f"{limit_mb:.0f} MB")


@cache.command("prune")
def prune_cache() -> None:
    """Remove expired entries."""
    disk_cache = _require_cache()
    removed = disk_cache.cleanup()
    con.print_success(f"Removed {removed} expired entries")


@cache.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def clear_cache(yes: bool) -> None:
    """Remove every cached document."""
    disk_cache = _require_cache()
    if not yes and not click.confirm("Remove all cached definitions?", default=False):
        con.print_info("Aborted")
        return
    removed = disk_cache.clear()
    con.print_success(f"Removed {removed} entries")
