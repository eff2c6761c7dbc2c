"""Metadata extraction from a raw definitions document.

Only the top level of the ``definitions`` mapping is visited; schema bodies
are left untouched until a resource is actually requested.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from kubeschema.errors import MalformedInputError
from kubeschema.models import (
    CORE_GROUP,
    GVK_EXTENSION,
    GroupVersionKind,
    ResourceMetadata,
    SchemaIndex,
    normalize_group,
)

_LOG = logging.getLogger(__name__)


def create_display_name(kind: str, version: str, group: str) -> str:
    """Format ``"<kind> <version>"`` with a ``(group)`` suffix for non-core groups."""
    group = normalize_group(group)
    if group == CORE_GROUP:
        return f"{kind} {version}"
    return f"{kind} {version} ({group})"


def get_definitions(document: Any) -> dict[str, Any]:
    """Return the ``definitions`` mapping of a raw document."""
    if not isinstance(document, Mapping):
        raise MalformedInputError("Definitions document must be a mapping")

    definitions = document.get("definitions")
    if not isinstance(definitions, Mapping):
        raise MalformedInputError("Definitions document has no 'definitions' mapping")
    return dict(definitions)


def _parse_gvk_entries(definition_key: str, entries: Any) -> list[GroupVersionKind]:
    if not isinstance(entries, list):
        raise MalformedInputError(
            f"{definition_key}: '{GVK_EXTENSION}' must be a list, got {type(entries).__name__}"
        )

    parsed: list[GroupVersionKind] = []
    for entry in entries:
        try:
            parsed.append(GroupVersionKind.model_validate(entry))
        except ValidationError as e:
            missing = ", ".join(".".join(str(x) for x in err["loc"]) for err in e.errors())
            raise MalformedInputError(
                f"{definition_key}: invalid group-version-kind entry ({missing})"
            ) from e
    return parsed


def extract_metadata(document: Any, source: str | None = None) -> SchemaIndex:
    """Build a metadata-only ``SchemaIndex`` from a raw definitions document.

    One ``ResourceMetadata`` is produced per group-version-kind entry, so a
    definition that serves several versions yields several entries sharing the
    same ``definition_key``. Any malformed entry aborts the whole extraction.
    """
    definitions = get_definitions(document)
    index = SchemaIndex(definitions=definitions, source=source)

    for definition_key, node in definitions.items():
        if not isinstance(node, Mapping):
            continue

        entries = node.get(GVK_EXTENSION)
        if not entries:
            continue

        description = node.get("description")
        if not isinstance(description, str):
            description = None

        for gvk in _parse_gvk_entries(definition_key, entries):
            group = normalize_group(gvk.group)
            index.add(
                ResourceMetadata(
                    group=group,
                    version=gvk.version,
                    kind=gvk.kind,
                    display_name=create_display_name(gvk.kind, gvk.version, group),
                    definition_key=definition_key,
                    description=description,
                    source=source,
                )
            )

    _LOG.info(
        "Indexed %d resources across %d kinds from %d definitions (source: %s)",
        len(index),
        len(index.by_kind),
        len(definitions),
        source or "unknown",
    )
    return index
