"""On-disk cache for downloaded definitions documents.

Raw documents are stored per resource version tag and schema key, bounded by
total size and entry age. Expired entries are treated as misses and removed
when read. This cache holds raw documents only; resolved schemas are never
persisted.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kubeschema.config import CacheConfig

_LOG = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_AGE = timedelta(days=7)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class CacheRef:
    """Reference to a cached definitions document."""

    version: str
    """Resource version tag (e.g., 'v1.29.0')."""

    schema_key: str
    """Schema key within that version (e.g., 'kubernetes')."""

    @property
    def key(self) -> str:
        """Get the storage key for this entry."""
        return f"{_safe_name(self.version)}/{_safe_name(self.schema_key)}"


@dataclass
class CacheEntry:
    """Metadata stored next to each cached document."""

    version: str
    schema_key: str
    timestamp: datetime
    size: int
    hash: str
    source_hash: str = ""
    """Hash of the file the document was read from, empty when unknown."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "schema_key": self.schema_key,
            "timestamp": self.timestamp.isoformat(),
            "size": self.size,
            "hash": self.hash,
            "source_hash": self.source_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            version=data["version"],
            schema_key=data["schema_key"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            size=int(data["size"]),
            hash=data.get("hash", ""),
            source_hash=data.get("source_hash", ""),
        )


@dataclass
class CacheMetrics:
    """Aggregate view of the cache contents."""

    total_entries: int
    total_size: int
    oldest_entry: datetime | None
    newest_entry: datetime | None


def _safe_name(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value) or "_"


def content_hash(content: str | bytes) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


class DiskSchemaCache:
    """Size- and age-bounded cache of raw definitions documents."""

    def __init__(
        self,
        base_path: Path,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] | None = None,
    ):
        self.base_path: Path = base_path
        self.max_size_bytes: int = max_size_bytes
        self.max_age: timedelta = max_age
        self._clock: Callable[[], datetime] = clock or (lambda: datetime.now(UTC))

    def _content_path(self, ref: CacheRef) -> Path:
        return self.base_path / f"{ref.key}.json"

    def _meta_path(self, ref: CacheRef) -> Path:
        return self.base_path / f"{ref.key}.meta.json"

    def _read_entry(self, meta_path: Path) -> CacheEntry | None:
        try:
            return CacheEntry.from_dict(json.loads(meta_path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            _LOG.warning("Ignoring unreadable cache metadata %s: %s", meta_path, e)
            return None

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.max_age

    def entries(self, version: str | None = None) -> list[CacheEntry]:
        """List metadata of all cached entries, optionally for one version."""
        search_path: Path = self.base_path / _safe_name(version) if version else self.base_path
        if not search_path.exists():
            return []

        entries = []
        for meta_path in sorted(search_path.rglob("*.meta.json")):
            entry = self._read_entry(meta_path)
            if entry is not None:
                entries.append(entry)
        return entries

    def get(self, schema_key: str, version: str, source_hash: str | None = None) -> Any | None:
        """Return the cached document, or None on a miss or expired entry.

        When ``source_hash`` is given, an entry recorded for different source
        content is stale and is removed.
        """
        ref = CacheRef(version=version, schema_key=schema_key)
        meta_path: Path = self._meta_path(ref)
        if not meta_path.exists():
            _LOG.debug("Cache miss for schema: %s", ref.key)
            return None

        entry = self._read_entry(meta_path)
        if entry is None or self._is_expired(entry):
            _LOG.info("Cache entry expired for schema: %s", ref.key)
            self.delete(schema_key, version)
            return None

        if source_hash is not None and entry.source_hash != source_hash:
            _LOG.info("Cache entry stale for schema: %s, source changed", ref.key)
            self.delete(schema_key, version)
            return None

        try:
            content = json.loads(self._content_path(ref).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            _LOG.warning("Dropping corrupt cache entry %s: %s", ref.key, e)
            self.delete(schema_key, version)
            return None

        _LOG.debug("Cache hit for schema: %s, size: %d bytes", ref.key, entry.size)
        return content

    def set(self, schema_key: str, version: str, content: Any, source_hash: str = "") -> bool:
        """Store a document. Returns False if it can never fit in the cache."""
        ref = CacheRef(version=version, schema_key=schema_key)
        text = json.dumps(content)
        size = len(text.encode("utf-8"))

        if size > self.max_size_bytes:
            _LOG.warning(
                "Not caching %s: %d bytes exceeds the %d byte limit",
                ref.key,
                size,
                self.max_size_bytes,
            )
            return False

        # An existing entry for the same key is about to be replaced.
        self.delete(schema_key, version)
        if self.metrics().total_size + size > self.max_size_bytes:
            _LOG.info("Cache size limit would be exceeded, cleaning up old entries")
            self.cleanup(required_space=size)

        entry = CacheEntry(
            version=version,
            schema_key=schema_key,
            timestamp=self._clock(),
            size=size,
            hash=content_hash(text),
            source_hash=source_hash,
        )
        content_path: Path = self._content_path(ref)
        content_path.parent.mkdir(parents=True, exist_ok=True)
        content_path.write_text(text, encoding="utf-8")
        self._meta_path(ref).write_text(json.dumps(entry.to_dict()), encoding="utf-8")
        _LOG.debug("Cached schema: %s, size: %d bytes", ref.key, size)
        return True

    def delete(self, schema_key: str, version: str) -> None:
        ref = CacheRef(version=version, schema_key=schema_key)
        for path in (self._content_path(ref), self._meta_path(ref)):
            if path.exists():
                path.unlink()

    def clear(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        removed = 0
        for entry in self.entries():
            self.delete(entry.schema_key, entry.version)
            removed += 1
        return removed

    def cleanup(self, required_space: int = 0) -> int:
        """Remove expired entries, then the oldest ones until ``required_space`` fits.

        Returns the number of entries removed.
        """
        removed = 0
        remaining: list[CacheEntry] = []
        for entry in self.entries():
            if self._is_expired(entry):
                self.delete(entry.schema_key, entry.version)
                removed += 1
            else:
                remaining.append(entry)

        total = sum(entry.size for entry in remaining)
        for entry in sorted(remaining, key=lambda e: e.timestamp):
            if total + required_space <= self.max_size_bytes:
                break
            self.delete(entry.schema_key, entry.version)
            total -= entry.size
            removed += 1

        _LOG.info("Cache cleanup completed, deleted %d entries", removed)
        return removed

    def metrics(self) -> CacheMetrics:
        entries = self.entries()
        timestamps = [entry.timestamp for entry in entries]
        return CacheMetrics(
            total_entries=len(entries),
            total_size=sum(entry.size for entry in entries),
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )


def format_timedelta(delta: timedelta) -> str:
    """Format a timedelta as a human-readable string."""
    total_seconds = int(delta.total_seconds())

    if total_seconds < 60:
        return f"{total_seconds}s ago"
    elif total_seconds < 3600:
        minutes: int = total_seconds // 60
        return f"{minutes}m ago"
    elif total_seconds < 86400:
        hours: int = total_seconds // 3600
        return f"{hours}h ago"
    else:
        days: int = total_seconds // 86400
        return f"{days}d ago"


def create_disk_cache(config: CacheConfig) -> DiskSchemaCache | None:
    """Create the disk cache described by configuration, or None when disabled."""
    if not config.enabled:
        return None

    return DiskSchemaCache(
        config.resolved_path,
        max_size_bytes=config.max_size_mb * 1024 * 1024,
        max_age=timedelta(days=config.max_age_days),
    )
