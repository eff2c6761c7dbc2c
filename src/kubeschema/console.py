"""Rich console output utilities for the kubeschema CLI.

Provides consistent CLI output using the Rich library.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, LiteralString

if TYPE_CHECKING:
    from collections.abc import Generator

    from kubeschema.models import (
        CacheStats,
        FlattenedProperties,
        ResourceMetadata,
        SchemaTreeNode,
    )
    from kubeschema.storage import CacheEntry

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.spinner import Spinner
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

KUBESCHEMA_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "bold red",
        "heading": "bold magenta",
        "highlight": "bold cyan",
        "muted": "dim",
        "kind": "bold blue",
        "group": "bold green",
        "version": "cyan",
        "path": "dim cyan",
        "command": "bold yellow",
    }
)


console = Console(theme=KUBESCHEMA_THEME)
err_console = Console(theme=KUBESCHEMA_THEME, stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Route library logging to stderr through Rich."""
    handler = RichHandler(console=err_console, show_time=False, show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def print_success(message: str, prefix: str = "✓") -> None:
    """Print a success message."""
    console.print(f"[success]{prefix}[/success] {message}")


def print_error(message: str, prefix: str = "✗") -> None:
    """Print an error message to stderr."""
    err_console.print(f"[error]{prefix}[/error] {message}")


def print_warning(message: str, prefix: str = "⚠") -> None:
    """Print a warning message."""
    console.print(f"[warning]{prefix}[/warning] {message}")


def print_info(message: str, prefix: str = "•") -> None:
    """Print an info message."""
    console.print(f"[info]{prefix}[/info] {message}")


def print_header(title: str) -> None:
    """Print a section header."""
    console.print(f"\n[heading]{title}[/heading]")
    console.print(f"[muted]{'─' * len(title)}[/muted]")


def print_key_value(key: str, value: str, indent: int = 0) -> None:
    """Print a key-value pair."""
    spaces: LiteralString = "  " * indent
    console.print(f"{spaces}[muted]{key}:[/muted] {value}")


def print_bullet(text: str, indent: int = 1) -> None:
    """Print a bullet point."""
    spaces: LiteralString = "  " * indent
    console.print(f"{spaces}[muted]•[/muted] {text}")


def print_hint(message: str) -> None:
    """Print a hint for the user."""
    console.print(f"  [muted]Hint:[/muted] [dim]{message}[/dim]")


def format_kind(name: str) -> str:
    """Format a resource kind for display."""
    return f"[kind]{name}[/kind]"


def format_path(path: str) -> str:
    """Format a path for display."""
    return f"[path]{path}[/path]"


def format_command(cmd: str) -> str:
    """Format a command for display."""
    return f"[command]{cmd}[/command]"


def create_table(title: str | None = None, show_header: bool = True) -> Table:
    """Create a styled table."""
    return Table(
        title=title,
        show_header=show_header,
        header_style="bold",
        border_style="muted",
        title_style="heading",
    )


def print_resource_list(resources: list[ResourceMetadata]) -> None:
    """Print indexed resources as a table."""
    table: Table = create_table()
    table.add_column("Kind", style="kind")
    table.add_column("API Version", style="version")
    table.add_column("Group", style="group")
    table.add_column("Source", style="muted")
    table.add_column("Definition", style="path")

    for metadata in resources:
        table.add_row(
            metadata.kind,
            metadata.api_version,
            metadata.group,
            metadata.source or "-",
            metadata.definition_key,
        )

    console.print(table)


def _describe_type(prop: Any) -> str:
    if not isinstance(prop, dict):
        return type(prop).__name__
    prop_type = prop.get("type", "")
    if prop_type == "array":
        items = prop.get("items")
        item_type = items.get("type", "any") if isinstance(items, dict) else "any"
        return f"array<{item_type}>"
    if "enum" in prop:
        return " | ".join(str(value) for value in prop["enum"])
    if "format" in prop:
        return f"{prop_type}, {prop['format']}"
    return str(prop_type or "any")


def print_flattened_properties(flattened: FlattenedProperties) -> None:
    """Print a flattened property view as a table."""
    required = set(flattened.required)
    table: Table = create_table()
    table.add_column("Path", style="highlight")
    table.add_column("Type", style="version")
    table.add_column("Required", justify="center", width=8)

    for path, prop in flattened.properties.items():
        marker = "[success]✓[/success]" if path in required else ""
        table.add_row(path, _describe_type(prop), marker)

    console.print(table)


def _add_tree_children(branch: Tree, node: SchemaTreeNode) -> None:
    for child in node.children:
        label = f"{child.name} [muted]({child.type})[/muted]"
        if child.required:
            label += " [warning]*[/warning]"
        _add_tree_children(branch.add(label), child)


def print_schema_tree(root: SchemaTreeNode, title: str) -> None:
    """Print a schema property tree."""
    tree = Tree(f"[kind]{title}[/kind]")
    _add_tree_children(tree, root)
    console.print(tree)


def print_cache_stats(stats: CacheStats) -> None:
    """Print resolution cache statistics."""
    print_key_value("Kinds", str(stats.total_kinds))
    print_key_value("Cached schemas", str(stats.cached_schemas))
    print_key_value("Cache ratio", f"{stats.cache_hit_ratio:.2f}")


def print_cache_entries(entries: list[tuple[CacheEntry, str, bool]]) -> None:
    """Print disk cache entries as (entry, age, expired) rows."""
    table: Table = create_table()
    table.add_column("Version", style="version")
    table.add_column("Schema", style="kind")
    table.add_column("Size", justify="right")
    table.add_column("Cached", style="muted")

    for entry, age, expired in entries:
        cached = f"[warning]{age} (expired)[/warning]" if expired else age
        table.add_row(entry.version, entry.schema_key, f"{entry.size:,} B", cached)

    console.print(table)


@contextmanager
def spinner(message: str, done_message: str | None = None) -> Generator[None]:
    """Context manager that shows a spinner during long-running operations.

    Usage:
        with spinner("Loading definitions..."):
            do_long_task()
    """
    spin = Spinner("dots", text=f" {message}", style="cyan")
    with Live(spin, console=err_console, refresh_per_second=10, transient=True):
        yield

    if done_message:
        print_success(done_message)
