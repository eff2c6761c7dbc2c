"""Schema indexer: one loaded definitions document and its resolution cache.

Each ``SchemaIndexer`` instance owns its index and cache. Open one instance
per document (for example one for core Kubernetes and one for CRDs) and pass
it to whatever needs it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from kubeschema.cache import ResolutionCache
from kubeschema.errors import LoadInProgressError, UnresolvedReferenceError
from kubeschema.extractor import extract_metadata
from kubeschema.flatten import DEFAULT_FLATTEN_DEPTH, flatten, schema_properties
from kubeschema.models import (
    CacheStats,
    FlattenedProperties,
    ResolvedResource,
    ResourceMetadata,
    SchemaIndex,
    SchemaProperties,
    fallback_schema,
)
from kubeschema.resolver import DEFAULT_MAX_DEPTH, ReferenceResolver
from kubeschema.sources import parse_definitions

_LOG = logging.getLogger(__name__)

DEFAULT_SOURCE = "kubernetes"

DocumentLoader = Callable[[], Awaitable[dict[str, Any] | str | bytes]]


class ResolutionStrategy(Protocol):
    """Decides what is resolved when an index is built."""

    name: str

    def prepare(
        self, index: SchemaIndex, resolver: ReferenceResolver, cache: ResolutionCache
    ) -> None: ...


class LazyStrategy:
    """Resolve nothing up front; schemas are resolved on first request."""

    name = "lazy"

    def prepare(
        self, index: SchemaIndex, resolver: ReferenceResolver, cache: ResolutionCache
    ) -> None:
        return None


class EagerStrategy:
    """Resolve every indexed definition while the index is built."""

    name = "eager"

    def prepare(
        self, index: SchemaIndex, resolver: ReferenceResolver, cache: ResolutionCache
    ) -> None:
        for definition_key in index.definition_keys():
            cache.put(definition_key, resolver.resolve(definition_key))
        _LOG.info("Eagerly resolved %d definitions", len(cache))


STRATEGIES: dict[str, type[LazyStrategy] | type[EagerStrategy]] = {
    LazyStrategy.name: LazyStrategy,
    EagerStrategy.name: EagerStrategy,
}


def get_strategy(name: str) -> ResolutionStrategy:
    try:
        return STRATEGIES[name.lower()]()
    except KeyError:
        available = ", ".join(sorted(STRATEGIES))
        raise ValueError(f"Unknown resolution strategy '{name}' (available: {available})") from None


class SchemaIndexer:
    """Indexes a definitions document and serves resolved schemas from it."""

    def __init__(
        self,
        strategy: ResolutionStrategy | str = "lazy",
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.strategy: ResolutionStrategy = (
            get_strategy(strategy) if isinstance(strategy, str) else strategy
        )
        self.max_depth: int = max_depth
        self.cache = ResolutionCache()
        self._index: SchemaIndex | None = None
        self._resolver: ReferenceResolver | None = None
        self._loading = False

    @property
    def index(self) -> SchemaIndex | None:
        return self._index

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    def load_document(self, document: Any, source: str = DEFAULT_SOURCE) -> SchemaIndex:
        """Index a parsed document, replacing any previous index and cache.

        The previous index stays in place if extraction fails.
        """
        index = extract_metadata(document, source)
        resolver = ReferenceResolver(index.definitions, max_depth=self.max_depth)

        self.cache.clear()
        self._index = index
        self._resolver = resolver
        self.strategy.prepare(index, resolver, self.cache)
        return index

    async def load(self, loader: DocumentLoader, source: str = DEFAULT_SOURCE) -> SchemaIndex:
        """Await ``loader`` once and index the document it returns.

        Raises:
            LoadInProgressError: another load on this indexer has not finished.
        """
        if self._loading:
            raise LoadInProgressError(source)

        self._loading = True
        try:
            content = await loader()
            if isinstance(content, (str, bytes)):
                content = parse_definitions(content, origin=source)
            return self.load_document(content, source=source)
        finally:
            self._loading = False

    def clear_cache(self) -> None:
        self.cache.clear()

    def resolve(self, definition_key: str) -> dict[str, Any]:
        """Resolve a definition through the cache.

        Raises:
            UnresolvedReferenceError: the key is not in the loaded document,
                or nothing is loaded.
        """
        if self._resolver is None:
            raise UnresolvedReferenceError(definition_key)

        cached = self.cache.get(definition_key)
        if cached is not None:
            return cached

        schema = self._resolver.resolve(definition_key)
        self.cache.put(definition_key, schema)
        return schema

    def _schema_for(self, metadata: ResourceMetadata) -> dict[str, Any]:
        try:
            return self.resolve(metadata.definition_key)
        except UnresolvedReferenceError as e:
            _LOG.warning("%s (resource %s); using an open object schema", e, metadata.key)
            return fallback_schema()

    def get_available_kinds(self) -> list[str]:
        if self._index is None:
            return []
        return self._index.available_kinds()

    def get_resource_metadata(self, kind: str | None = None) -> list[ResourceMetadata]:
        """List indexed metadata without resolving any schema.

        Without a kind, every resource is listed, grouped by sorted kind.
        """
        if self._index is None:
            return []
        kinds = [kind] if kind is not None else self._index.available_kinds()
        return [metadata for name in kinds for metadata in self._index.versions_of(name)]

    def get_kind_versions(self, kind: str) -> list[ResolvedResource]:
        if self._index is None:
            return []
        return [
            ResolvedResource(metadata=metadata, schema=self._schema_for(metadata))
            for metadata in self._index.versions_of(kind)
        ]

    def get_schema_by_gvk(self, group: str, version: str, kind: str) -> ResolvedResource | None:
        if self._index is None:
            return None

        metadata = self._index.lookup(group, version, kind)
        if metadata is None:
            return None
        return ResolvedResource(metadata=metadata, schema=self._schema_for(metadata))

    def get_resolved_schema(self, group: str, version: str, kind: str) -> dict[str, Any] | None:
        resource = self.get_schema_by_gvk(group, version, kind)
        return resource.schema if resource else None

    def get_schema_properties(self, group: str, version: str, kind: str) -> SchemaProperties | None:
        schema = self.get_resolved_schema(group, version, kind)
        return schema_properties(schema) if schema is not None else None

    def get_flattened_properties(
        self, group: str, version: str, kind: str, max_depth: int = DEFAULT_FLATTEN_DEPTH
    ) -> FlattenedProperties | None:
        schema = self.get_resolved_schema(group, version, kind)
        return flatten(schema, max_depth=max_depth) if schema is not None else None

    def search_resources(self, query: str) -> list[ResourceMetadata]:
        if self._index is None:
            return []
        return self._index.search(query)

    def cache_stats(self) -> CacheStats:
        total_kinds = len(self._index.by_kind) if self._index is not None else 0
        return self.cache.stats(total_kinds)
