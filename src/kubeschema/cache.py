"""In-memory cache of resolved schemas, keyed by definition key."""

from __future__ import annotations

import logging
from typing import Any

from kubeschema.models import CacheStats

_LOG = logging.getLogger(__name__)


class ResolutionCache:
    """Memoizes resolved schemas for the lifetime of one loaded document.

    Entries are never evicted; the cache is cleared wholesale when a new
    document is loaded.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, definition_key: str) -> dict[str, Any] | None:
        schema = self._entries.get(definition_key)
        if schema is None:
            self.misses += 1
            return None
        self.hits += 1
        _LOG.debug("Resolution cache hit: %s", definition_key)
        return schema

    def put(self, definition_key: str, schema: dict[str, Any]) -> None:
        self._entries[definition_key] = schema

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self, total_kinds: int) -> CacheStats:
        """Report cache size relative to the number of indexed kinds.

        The ratio is informational only and can exceed 1 when a kind is
        served by several definitions.
        """
        cached = len(self._entries)
        ratio = cached / total_kinds if total_kinds > 0 else 0.0
        return CacheStats(total_kinds=total_kinds, cached_schemas=cached, cache_hit_ratio=ratio)

    def __contains__(self, definition_key: object) -> bool:
        return definition_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
