"""Discovery and loading of ``_definitions.json`` documents.

A source directory either holds ``_definitions.json`` directly (legacy
layout) or one subdirectory per resource version, each with its own
``_definitions.json``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kubeschema.errors import MalformedInputError
from kubeschema.storage import content_hash

if TYPE_CHECKING:
    from kubeschema.config import SchemaSource
    from kubeschema.storage import DiskSchemaCache

_LOG = logging.getLogger(__name__)

DEFINITIONS_FILE_NAME = "_definitions.json"

LEGACY_VERSION = "default"
"""Version tag used for sources without version subdirectories."""


def version_sort_key(version: str) -> list[tuple[int, int | str]]:
    """Natural sort key, so ``v1.9.0`` sorts before ``v1.28.0``."""
    return [
        (0, int(part)) if part.isdigit() else (1, part)
        for part in re.split(r"(\d+)", version)
        if part
    ]


def discover_definition_files(source: SchemaSource) -> list[tuple[str, Path]]:
    """Find the definitions documents of a source as ``(version, path)`` pairs.

    Version subdirectories take precedence over a top-level document. Results
    are sorted oldest to newest.
    """
    root = Path(source.path).expanduser()
    if not root.is_dir():
        _LOG.warning("Schema source path does not exist: %s", root)
        return []

    found = [
        (child.name, child / DEFINITIONS_FILE_NAME)
        for child in root.iterdir()
        if child.is_dir() and (child / DEFINITIONS_FILE_NAME).is_file()
    ]
    if found:
        return sorted(found, key=lambda item: version_sort_key(item[0]))

    legacy = root / DEFINITIONS_FILE_NAME
    if legacy.is_file():
        return [(LEGACY_VERSION, legacy)]

    _LOG.warning("No %s found under %s", DEFINITIONS_FILE_NAME, root)
    return []


def parse_definitions(content: str | bytes, origin: str = "<string>") -> dict[str, Any]:
    """Parse a definitions document from JSON text."""
    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"{origin}: invalid JSON ({e})") from e

    if not isinstance(document, dict):
        raise MalformedInputError(f"{origin}: top-level value must be an object")
    return document


def read_definitions(path: Path) -> dict[str, Any]:
    """Read and parse one definitions document."""
    _LOG.debug("Reading definitions from %s", path)
    return parse_definitions(path.read_bytes(), origin=str(path))


async def read_definitions_async(path: Path) -> dict[str, Any]:
    """Read a definitions document without blocking the event loop."""
    return await asyncio.to_thread(read_definitions, path)


def select_definition_file(source: SchemaSource, version: str | None = None) -> tuple[str, Path]:
    """Pick the document for ``version``, or the newest one when not given."""
    files = discover_definition_files(source)
    if not files:
        raise FileNotFoundError(f"No definitions found for source '{source.id}' at {source.path}")

    if version is None:
        return files[-1]

    for candidate_version, path in files:
        if candidate_version == version:
            return candidate_version, path

    available = ", ".join(v for v, _ in files)
    raise FileNotFoundError(
        f"Version '{version}' not found for source '{source.id}' (available: {available})"
    )


def load_definitions(
    source: SchemaSource,
    version: str | None = None,
    cache: DiskSchemaCache | None = None,
) -> tuple[str, dict[str, Any]]:
    """Load a source's definitions document, going through the disk cache.

    Cached documents are keyed by source id and version tag and are only
    reused while the file they were read from is unchanged. Returns the
    resolved version tag and the parsed document.
    """
    selected_version, path = select_definition_file(source, version)
    raw = path.read_bytes()
    source_hash = content_hash(raw)

    if cache is not None:
        cached = cache.get(source.id, selected_version, source_hash=source_hash)
        if isinstance(cached, dict):
            return selected_version, cached

    _LOG.debug("Parsing definitions from %s", path)
    document = parse_definitions(raw, origin=str(path))
    if cache is not None:
        cache.set(source.id, selected_version, document, source_hash=source_hash)
    return selected_version, document
