"""CustomResourceDefinition commands."""

from __future__ import annotations

import json
from pathlib import Path

import rich_click as click

from kubeschema import console as con
from kubeschema.errors import SchemaError
from kubeschema.workspace import LoadedIndex, open_crd_index


def _load_crds(files: tuple[Path, ...]) -> LoadedIndex:
    try:
        return open_crd_index(list(files))
    except (SchemaError, OSError) as e:
        con.print_error(str(e))
        raise SystemExit(1) from None


@click.group()
def crd() -> None:
    """Index CustomResourceDefinition manifests."""
    pass


@crd.command("index")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def index_crds(files: tuple[Path, ...]) -> None:
    """List the resources served by the CRDs in FILES."""
    loaded = _load_crds(files)
    resources = loaded.indexer.get_resource_metadata()
    if not resources:
        con.print_warning("No CustomResourceDefinitions found")
        return

    con.print_header("Custom Resources")
    con.print_resource_list(resources)


@crd.command("show")
@click.argument("group")
@click.argument("version")
@click.argument("kind")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def show_crd(group: str, version: str, kind: str, files: tuple[Path, ...]) -> None:
    """Show the resolved schema of a custom resource defined in FILES."""
    loaded = _load_crds(files)
    resource = loaded.indexer.get_schema_by_gvk(group, version, kind)
    if resource is None:
        con.print_error(f"Custom resource not found: {group}/{version}/{kind}")
        raise SystemExit(1)
    click.echo(json.dumps(resource.to_dict(), indent=2))


@crd.command("export")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the _definitions.json document.",
)
def export_crds(files: tuple[Path, ...], output: Path) -> None:
    """Convert the CRDs in FILES into a _definitions.json document."""
    loaded = _load_crds(files)
    index = loaded.indexer.index
    definitions = index.definitions if index is not None else {}

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        json.dump({"definitions": definitions}, f, indent=2)
        f.write("\n")
    con.print_success(
        f"Wrote {len(definitions)} definitions to {con.format_path(str(output))}"
    )
