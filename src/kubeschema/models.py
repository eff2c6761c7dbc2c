"""Domain models for kubeschema."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CORE_GROUP = "core"
"""Sentinel group name used for the empty (core) API group."""

REF_PREFIX = "#/definitions/"

GVK_EXTENSION = "x-kubernetes-group-version-kind"


def normalize_group(group: str | None) -> str:
    """Map an empty or missing API group to the ``core`` sentinel."""
    return group or CORE_GROUP


def compute_api_version(group: str, version: str) -> str:
    """Build the apiVersion string for a group/version pair.

    The group is used verbatim, so ``rbac.authorization.k8s.io`` stays intact.
    """
    if group == CORE_GROUP:
        return version
    return f"{group}/{version}"


def gvk_key(group: str, version: str, kind: str) -> str:
    """Build the ``<group>/<version>/<kind>`` lookup key."""
    return f"{normalize_group(group)}/{version}/{kind}"


def fallback_schema() -> dict[str, Any]:
    """Schema substituted for circular or unresolvable references."""
    return {"type": "object", "additionalProperties": True}


class GroupVersionKind(BaseModel):
    """One entry of a definition's ``x-kubernetes-group-version-kind`` list."""

    model_config = ConfigDict(extra="ignore")

    group: str | None = ""
    version: str = Field(min_length=1)
    kind: str = Field(min_length=1)


@dataclass(frozen=True)
class ResourceMetadata:
    """Lightweight, schema-free description of one indexed resource."""

    group: str
    """API group, ``core`` for the empty group."""

    version: str
    kind: str
    display_name: str
    definition_key: str
    """Key of the backing node in the raw definitions document."""

    description: str | None = None
    source: str | None = None
    """Origin tag, e.g. ``kubernetes`` or ``cluster-crds``."""

    @property
    def key(self) -> str:
        return gvk_key(self.group, self.version, self.kind)

    @property
    def api_version(self) -> str:
        return compute_api_version(self.group, self.version)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "key": self.key,
            "group": self.group,
            "version": self.version,
            "kind": self.kind,
            "apiVersion": self.api_version,
            "displayName": self.display_name,
            "definitionKey": self.definition_key,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.source is not None:
            data["source"] = self.source
        return data


@dataclass(frozen=True)
class ResolvedResource:
    """Resource metadata joined with its resolved schema."""

    metadata: ResourceMetadata
    schema: dict[str, Any]

    @property
    def kind(self) -> str:
        return self.metadata.kind

    @property
    def group(self) -> str:
        return self.metadata.group

    @property
    def version(self) -> str:
        return self.metadata.version

    @property
    def api_version(self) -> str:
        return self.metadata.api_version

    def to_dict(self) -> dict[str, Any]:
        return {**self.metadata.to_dict(), "schema": self.schema}


@dataclass
class SchemaIndex:
    """Metadata-only index over one definitions document."""

    definitions: dict[str, Any]
    """Raw definitions mapping, kept for lazy ``$ref`` resolution."""

    by_kind: dict[str, list[ResourceMetadata]] = field(default_factory=dict)
    by_group_version_kind: dict[str, ResourceMetadata] = field(default_factory=dict)
    source: str | None = None

    def add(self, metadata: ResourceMetadata) -> None:
        self.by_kind.setdefault(metadata.kind, []).append(metadata)
        self.by_group_version_kind[metadata.key] = metadata

    def available_kinds(self) -> list[str]:
        return sorted(self.by_kind)

    def versions_of(self, kind: str) -> list[ResourceMetadata]:
        return list(self.by_kind.get(kind, []))

    def lookup(self, group: str, version: str, kind: str) -> ResourceMetadata | None:
        return self.by_group_version_kind.get(gvk_key(group, version, kind))

    def definition_keys(self) -> list[str]:
        """Distinct definition keys referenced by the index, in index order."""
        seen: dict[str, None] = {}
        for metadata in self.by_group_version_kind.values():
            seen.setdefault(metadata.definition_key, None)
        return list(seen)

    def search(self, query: str) -> list[ResourceMetadata]:
        """Case-insensitive substring search over kind, display name and description.

        Blank queries return nothing rather than the whole index.
        """
        if not query.strip():
            return []

        term = query.lower()
        results = [
            metadata
            for metadata in self.by_group_version_kind.values()
            if term in metadata.kind.lower()
            or term in metadata.display_name.lower()
            or (metadata.description and term in metadata.description.lower())
        ]
        return sorted(results, key=lambda m: m.display_name)

    def __len__(self) -> int:
        return len(self.by_group_version_kind)


@dataclass(frozen=True)
class CacheStats:
    """Informational statistics about the resolution cache."""

    total_kinds: int
    cached_schemas: int
    cache_hit_ratio: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalKinds": self.total_kinds,
            "cachedSchemas": self.cached_schemas,
            "cacheHitRatio": self.cache_hit_ratio,
        }


@dataclass
class SchemaProperties:
    """Top-level projection of a resolved schema used by form renderers."""

    properties: dict[str, Any]
    required: list[str]
    type: str = "object"
    additional_properties: Any = None
    pattern_properties: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "properties": self.properties,
            "required": self.required,
            "type": self.type,
            "additionalProperties": self.additional_properties,
            "patternProperties": self.pattern_properties,
        }


@dataclass
class FlattenedProperties:
    """Dotted-path view of a resolved schema's properties."""

    properties: dict[str, Any]
    required: list[str]
    original_schema: SchemaProperties | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "properties": self.properties,
            "required": self.required,
        }
        if self.original_schema is not None:
            data["originalSchema"] = self.original_schema.to_dict()
        return data


@dataclass
class SchemaTreeNode:
    """A node in the hierarchical property tree of a resolved schema."""

    name: str
    path: str
    type: str
    required: bool = False
    children: list[SchemaTreeNode] = field(default_factory=list)


# Schema node variants. ``classify_node`` maps any JSON value onto exactly one
# of them so the resolver can dispatch exhaustively.


@dataclass(frozen=True)
class RefNode:
    """A mapping carrying a ``$ref`` pointer, plus any sibling fields."""

    ref: Any
    """Pointer value; anything but a string is malformed and has no target."""

    siblings: dict[str, Any]

    @property
    def target(self) -> str | None:
        """Definition key for local ``#/definitions/`` pointers, else None."""
        if isinstance(self.ref, str) and self.ref.startswith(REF_PREFIX):
            return self.ref[len(REF_PREFIX) :]
        return None


@dataclass(frozen=True)
class MappingNode:
    """A plain JSON object (``properties``, ``items`` and friends live here)."""

    fields: dict[str, Any]


@dataclass(frozen=True)
class ListNode:
    """A JSON array."""

    items: list[Any]


@dataclass(frozen=True)
class ScalarNode:
    """Any leaf value: string, number, boolean or null."""

    value: Any


SchemaNode = RefNode | MappingNode | ListNode | ScalarNode


def classify_node(value: Any) -> SchemaNode:
    if isinstance(value, dict):
        # A mapping under "$ref" is a property named "$ref" (as in JSONSchemaProps).
        if "$ref" in value and not isinstance(value["$ref"], dict):
            siblings = {k: v for k, v in value.items() if k != "$ref"}
            return RefNode(ref=value["$ref"], siblings=siblings)
        return MappingNode(fields=value)
    if isinstance(value, list):
        return ListNode(items=value)
    return ScalarNode(value=value)
