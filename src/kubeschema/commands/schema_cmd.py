"""Schema browsing commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import rich_click as click
import yaml

from kubeschema import console as con
from kubeschema.errors import SchemaError
from kubeschema.flatten import build_schema_tree
from kubeschema.sources import discover_definition_files
from kubeschema.workspace import LoadedIndex, get_config, open_index

if TYPE_CHECKING:
    from collections.abc import Callable

    from kubeschema.models import ResolvedResource


def index_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the options selecting which definitions document to load."""
    func = click.option(
        "--version", "version", help="Resource version tag of the source (default: newest)."
    )(func)
    func = click.option("--source", "-s", "source_id", help="Configured schema source id.")(func)
    func = click.option(
        "--definitions",
        "-d",
        "definitions",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Path to a _definitions.json file (bypasses configured sources).",
    )(func)
    return func


def _load(definitions: Path | None, source_id: str | None, version: str | None) -> LoadedIndex:
    try:
        with con.spinner("Loading definitions..."):
            return open_index(definitions, source_id, version)
    except (SchemaError, OSError) as e:
        con.print_error(str(e))
        raise SystemExit(1) from None


def _require_resource(loaded: LoadedIndex, group: str, version: str, kind: str) -> ResolvedResource:
    resource = loaded.indexer.get_schema_by_gvk(group, version, kind)
    if resource is None:
        con.print_error(f"Resource not found: {group}/{version}/{kind}")
        candidates = loaded.indexer.get_resource_metadata(kind)
        if candidates:
            available = ", ".join(metadata.key for metadata in candidates)
            con.print_hint(f"Known versions of {kind}: {available}")
        raise SystemExit(1)
    return resource


def _dump(data: Any, output_format: str) -> str:
    if output_format == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return json.dumps(data, indent=2)


@click.group()
def schema() -> None:
    """Browse Kubernetes resource schemas."""
    pass


@schema.command("sources")
def list_sources() -> None:
    """List configured schema sources and the versions found for each."""
    try:
        config = get_config()
    except SchemaError as e:
        con.print_error(str(e))
        raise SystemExit(1) from None
    con.print_header("Schema Sources")

    if not config.sources:
        con.print_warning("No schema sources configured")
        con.print_hint(f"Run {con.format_command('kubeschema config init')} to create a config")
        return

    table = con.create_table()
    table.add_column("Id", style="highlight")
    table.add_column("Name")
    table.add_column("Enabled", justify="center")
    table.add_column("Versions", style="version")
    table.add_column("Path", style="path")
    for source in config.sources:
        versions = [v for v, _ in discover_definition_files(source)] if source.enabled else []
        table.add_row(
            source.id,
            source.display_name,
            "[success]✓[/success]" if source.enabled else "[error]✗[/error]",
            ", ".join(versions) or "-",
            source.path,
        )
    con.console.print(table)


@schema.command("kinds")
@index_options
def list_kinds(definitions: Path | None, source_id: str | None, version: str | None) -> None:
    """List every resource kind in the definitions document."""
    loaded = _load(definitions, source_id, version)
    kinds = loaded.indexer.get_available_kinds()

    con.print_header(f"Kinds in {loaded.source} ({loaded.version})")
    for kind in kinds:
        con.print_bullet(con.format_kind(kind))
    con.console.print()
    con.print_info(f"{len(kinds)} kinds")


@schema.command("versions")
@click.argument("kind")
@index_options
def list_versions(
    kind: str, definitions: Path | None, source_id: str | None, version: str | None
) -> None:
    """List every group/version serving KIND."""
    loaded = _load(definitions, source_id, version)
    resources = loaded.indexer.get_resource_metadata(kind)
    if not resources:
        con.print_warning(f"No resources of kind {con.format_kind(kind)}")
        return
    con.print_resource_list(resources)


@schema.command("search")
@click.argument("query")
@index_options
def search(query: str, definitions: Path | None, source_id: str | None, version: str | None) -> None:
    """Search resources by kind, display name or description."""
    if not query.strip():
        con.print_warning("Empty search query")
        return

    loaded = _load(definitions, source_id, version)
    results = loaded.indexer.search_resources(query)
    if not results:
        con.print_warning(f"No resources match '{query}'")
        return
    con.print_resource_list(results)


@schema.command("show")
@click.argument("group")
@click.argument("api_version", metavar="VERSION")
@click.argument("kind")
@click.option("--flat", is_flag=True, help="Show flattened dotted property paths.")
@click.option("--depth", type=int, default=None, help="Flattening depth (default from config).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="json",
    help="Output format ('table' only applies with --flat).",
)
@index_options
def show(
    group: str,
    api_version: str,
    kind: str,
    flat: bool,
    depth: int | None,
    output_format: str,
    definitions: Path | None,
    source_id: str | None,
    version: str | None,
) -> None:
    """Show the resolved schema of GROUP VERSION KIND (use 'core' for the core group)."""
    loaded = _load(definitions, source_id, version)
    resource = _require_resource(loaded, group, api_version, kind)
    title = f"{resource.kind} ({resource.api_version})"

    if flat:
        max_depth = depth if depth is not None else get_config().flatten.max_depth
        flattened = loaded.indexer.get_flattened_properties(
            resource.group, resource.version, resource.kind, max_depth=max_depth
        )
        if flattened is None:
            raise SystemExit(1)
        if output_format == "table":
            con.print_header(title)
            con.print_flattened_properties(flattened)
            return
        data = {"properties": flattened.properties, "required": flattened.required}
    else:
        data = resource.to_dict()

    click.echo(_dump(data, output_format))


@schema.command("tree")
@click.argument("group")
@click.argument("api_version", metavar="VERSION")
@click.argument("kind")
@index_options
def tree(
    group: str,
    api_version: str,
    kind: str,
    definitions: Path | None,
    source_id: str | None,
    version: str | None,
) -> None:
    """Show the property tree of GROUP VERSION KIND."""
    loaded = _load(definitions, source_id, version)
    resource = _require_resource(loaded, group, api_version, kind)
    root = build_schema_tree(resource.schema, name=resource.kind)
    con.print_schema_tree(root, f"{resource.kind} ({resource.api_version})")


@schema.command("stats")
@click.option(
    "--resolve-all", is_flag=True, help="Resolve every kind before reporting statistics."
)
@index_options
def stats(
    resolve_all: bool, definitions: Path | None, source_id: str | None, version: str | None
) -> None:
    """Show index and resolution cache statistics."""
    loaded = _load(definitions, source_id, version)
    indexer = loaded.indexer

    if resolve_all:
        with con.spinner("Resolving schemas..."):
            for kind in indexer.get_available_kinds():
                indexer.get_kind_versions(kind)

    con.print_header("Index Statistics")
    con.print_key_value("Source", loaded.source)
    con.print_key_value("Version", loaded.version)
    con.print_key_value("Origin", con.format_path(loaded.origin))
    con.print_key_value("Strategy", indexer.strategy.name)
    con.print_key_value("Resources", str(len(indexer.index) if indexer.index else 0))
    con.print_cache_stats(indexer.cache_stats())
