from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from kubeschema.config import CacheConfig
from kubeschema.storage import (
    CacheEntry,
    CacheRef,
    DiskSchemaCache,
    create_disk_cache,
    format_timedelta,
)

DOCUMENT = {"definitions": {"io.k8s.api.core.v1.Pod": {"type": "object"}}}


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class TestCacheRef:
    def test_key(self):
        assert CacheRef(version="v1.29.0", schema_key="kubernetes").key == "v1.29.0/kubernetes"

    def test_key_sanitized(self):
        assert CacheRef(version="../x", schema_key="a/b").key == ".._x/a_b"


class TestCacheEntry:
    def test_dict_round_trip(self):
        entry = CacheEntry(
            version="v1",
            schema_key="kubernetes",
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            size=10,
            hash="abc",
            source_hash="def",
        )
        assert CacheEntry.from_dict(entry.to_dict()) == entry


class TestDiskSchemaCache:
    def test_set_and_get(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        assert cache.set("kubernetes", "v1.29.0", DOCUMENT)
        assert cache.get("kubernetes", "v1.29.0") == DOCUMENT

    def test_miss(self, tmp_path: Path):
        assert DiskSchemaCache(tmp_path).get("kubernetes", "v1.29.0") is None

    def test_expired_entry_removed_on_read(self, tmp_path: Path):
        clock = FakeClock()
        cache = DiskSchemaCache(tmp_path, max_age=timedelta(days=7), clock=clock)
        cache.set("kubernetes", "v1", DOCUMENT)

        clock.advance(timedelta(days=8))

        assert cache.get("kubernetes", "v1") is None
        assert cache.entries() == []

    def test_entry_within_age_kept(self, tmp_path: Path):
        clock = FakeClock()
        cache = DiskSchemaCache(tmp_path, clock=clock)
        cache.set("kubernetes", "v1", DOCUMENT)
        clock.advance(timedelta(days=6))
        assert cache.get("kubernetes", "v1") == DOCUMENT

    def test_changed_source_is_stale(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        cache.set("kubernetes", "v1", DOCUMENT, source_hash="aaa")

        assert cache.get("kubernetes", "v1", source_hash="aaa") == DOCUMENT
        assert cache.get("kubernetes", "v1", source_hash="bbb") is None
        assert cache.entries() == []

    def test_source_hash_ignored_when_not_given(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        cache.set("kubernetes", "v1", DOCUMENT, source_hash="aaa")
        assert cache.get("kubernetes", "v1") == DOCUMENT

    def test_oversize_document_not_cached(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path, max_size_bytes=10)
        assert cache.set("kubernetes", "v1", DOCUMENT) is False
        assert cache.entries() == []

    def test_oldest_evicted_when_full(self, tmp_path: Path):
        clock = FakeClock()
        size = len('{"definitions": {"io.k8s.api.core.v1.Pod": {"type": "object"}}}')
        cache = DiskSchemaCache(tmp_path, max_size_bytes=size * 2, clock=clock)

        cache.set("kubernetes", "v1", DOCUMENT)
        clock.advance(timedelta(minutes=1))
        cache.set("kubernetes", "v2", DOCUMENT)
        clock.advance(timedelta(minutes=1))
        cache.set("kubernetes", "v3", DOCUMENT)

        versions = sorted(entry.version for entry in cache.entries())
        assert versions == ["v2", "v3"]

    def test_replacing_entry_does_not_evict(self, tmp_path: Path):
        size = len('{"definitions": {"io.k8s.api.core.v1.Pod": {"type": "object"}}}')
        cache = DiskSchemaCache(tmp_path, max_size_bytes=size)
        cache.set("kubernetes", "v1", DOCUMENT)
        assert cache.set("kubernetes", "v1", DOCUMENT)
        assert len(cache.entries()) == 1

    def test_corrupt_content_dropped(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        cache.set("kubernetes", "v1", DOCUMENT)
        (tmp_path / "v1" / "kubernetes.json").write_text("{broken")

        assert cache.get("kubernetes", "v1") is None
        assert cache.entries() == []

    def test_entries_by_version(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        cache.set("kubernetes", "v1", DOCUMENT)
        cache.set("cluster-crds", "v1", DOCUMENT)
        cache.set("kubernetes", "v2", DOCUMENT)

        assert len(cache.entries()) == 3
        assert sorted(entry.schema_key for entry in cache.entries("v1")) == ["cluster-crds", "kubernetes"]

    def test_delete_nonexistent(self, tmp_path: Path):
        DiskSchemaCache(tmp_path).delete("kubernetes", "v1")

    def test_clear(self, tmp_path: Path):
        cache = DiskSchemaCache(tmp_path)
        cache.set("kubernetes", "v1", DOCUMENT)
        cache.set("kubernetes", "v2", DOCUMENT)
        assert cache.clear() == 2
        assert cache.entries() == []

    def test_cleanup_removes_expired_only(self, tmp_path: Path):
        clock = FakeClock()
        cache = DiskSchemaCache(tmp_path, max_age=timedelta(days=1), clock=clock)
        cache.set("kubernetes", "old", DOCUMENT)
        clock.advance(timedelta(days=2))
        cache.set("kubernetes", "new", DOCUMENT)

        assert cache.cleanup() == 1
        assert [entry.version for entry in cache.entries()] == ["new"]

    def test_metrics(self, tmp_path: Path):
        clock = FakeClock()
        cache = DiskSchemaCache(tmp_path, clock=clock)
        assert cache.metrics().total_entries == 0

        cache.set("kubernetes", "v1", DOCUMENT)
        clock.advance(timedelta(hours=1))
        cache.set("kubernetes", "v2", DOCUMENT)

        metrics = cache.metrics()
        assert metrics.total_entries == 2
        assert metrics.oldest_entry < metrics.newest_entry


class TestCreateDiskCache:
    def test_disabled(self):
        assert create_disk_cache(CacheConfig(enabled=False)) is None

    def test_limits_from_config(self, tmp_path: Path):
        cache = create_disk_cache(CacheConfig(path=str(tmp_path), max_size_mb=2, max_age_days=3))
        assert cache is not None
        assert cache.base_path == tmp_path
        assert cache.max_size_bytes == 2 * 1024 * 1024
        assert cache.max_age == timedelta(days=3)


class TestFormatTimedelta:
    def test_seconds(self):
        assert format_timedelta(timedelta(seconds=30)) == "30s ago"

    def test_minutes(self):
        assert format_timedelta(timedelta(minutes=5)) == "5m ago"

    def test_hours(self):
        assert format_timedelta(timedelta(hours=3)) == "3h ago"

    def test_days(self):
        assert format_timedelta(timedelta(days=2)) == "2d ago"
