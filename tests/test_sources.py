from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from kubeschema.config import SchemaSource
from kubeschema.errors import MalformedInputError
from kubeschema.sources import (
    DEFINITIONS_FILE_NAME,
    LEGACY_VERSION,
    discover_definition_files,
    load_definitions,
    parse_definitions,
    read_definitions,
    read_definitions_async,
    select_definition_file,
    version_sort_key,
)
from kubeschema.storage import DiskSchemaCache


def _write_versions(root: Path, versions: list[str], document: dict[str, Any]) -> None:
    for version in versions:
        version_dir = root / version
        version_dir.mkdir(parents=True)
        (version_dir / DEFINITIONS_FILE_NAME).write_text(json.dumps(document))


class TestVersionSortKey:
    def test_natural_order(self):
        versions = ["v1.28.0", "v1.9.0", "v1.29.1"]
        assert sorted(versions, key=version_sort_key) == ["v1.9.0", "v1.28.0", "v1.29.1"]


class TestDiscoverDefinitionFiles:
    def test_version_directories(self, tmp_path: Path, definitions_document: dict[str, Any]):
        _write_versions(tmp_path, ["v1.29.0", "v1.9.0"], definitions_document)
        (tmp_path / "empty").mkdir()

        found = discover_definition_files(SchemaSource(id="k8s", path=str(tmp_path)))
        assert [version for version, _ in found] == ["v1.9.0", "v1.29.0"]

    def test_legacy_layout(self, definitions_file: Path):
        found = discover_definition_files(SchemaSource(id="k8s", path=str(definitions_file.parent)))
        assert found == [(LEGACY_VERSION, definitions_file)]

    def test_missing_path(self, tmp_path: Path):
        assert discover_definition_files(SchemaSource(id="k8s", path=str(tmp_path / "nope"))) == []

    def test_empty_directory(self, tmp_path: Path):
        assert discover_definition_files(SchemaSource(id="k8s", path=str(tmp_path))) == []


class TestParseDefinitions:
    def test_parses_bytes(self):
        assert parse_definitions(b'{"definitions": {}}') == {"definitions": {}}

    def test_invalid_json(self):
        with pytest.raises(MalformedInputError, match="invalid JSON"):
            parse_definitions("{", origin="defs.json")

    def test_top_level_must_be_object(self):
        with pytest.raises(MalformedInputError):
            parse_definitions("[1, 2]")


class TestReadDefinitions:
    def test_read(self, definitions_file: Path, definitions_document: dict[str, Any]):
        assert read_definitions(definitions_file) == definitions_document

    def test_read_async(self, definitions_file: Path, definitions_document: dict[str, Any]):
        assert asyncio.run(read_definitions_async(definitions_file)) == definitions_document


class TestSelectDefinitionFile:
    def test_newest_by_default(self, tmp_path: Path, definitions_document: dict[str, Any]):
        _write_versions(tmp_path, ["v1.28.0", "v1.29.0"], definitions_document)
        version, path = select_definition_file(SchemaSource(id="k8s", path=str(tmp_path)))
        assert version == "v1.29.0"
        assert path == tmp_path / "v1.29.0" / DEFINITIONS_FILE_NAME

    def test_explicit_version(self, tmp_path: Path, definitions_document: dict[str, Any]):
        _write_versions(tmp_path, ["v1.28.0", "v1.29.0"], definitions_document)
        version, _ = select_definition_file(SchemaSource(id="k8s", path=str(tmp_path)), "v1.28.0")
        assert version == "v1.28.0"

    def test_unknown_version(self, tmp_path: Path, definitions_document: dict[str, Any]):
        _write_versions(tmp_path, ["v1.29.0"], definitions_document)
        with pytest.raises(FileNotFoundError, match="available: v1.29.0"):
            select_definition_file(SchemaSource(id="k8s", path=str(tmp_path)), "v1.20.0")

    def test_no_documents(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            select_definition_file(SchemaSource(id="k8s", path=str(tmp_path)))


class TestLoadDefinitions:
    def test_without_cache(self, definitions_file: Path, definitions_document: dict[str, Any]):
        source = SchemaSource(id="k8s", path=str(definitions_file.parent))
        assert load_definitions(source) == (LEGACY_VERSION, definitions_document)

    def test_populates_and_uses_cache(self, tmp_path: Path, definitions_document: dict[str, Any]):
        root = tmp_path / "schemas"
        _write_versions(root, ["v1.29.0"], definitions_document)
        source = SchemaSource(id="k8s", path=str(root))
        cache = DiskSchemaCache(tmp_path / "cache")

        load_definitions(source, cache=cache)
        assert [entry.schema_key for entry in cache.entries("v1.29.0")] == ["k8s"]

        with patch("kubeschema.sources.parse_definitions") as mock_parse:
            version, document = load_definitions(source, cache=cache)
        mock_parse.assert_not_called()
        assert version == "v1.29.0"
        assert document == definitions_document

    def test_edited_file_is_reloaded(self, tmp_path: Path):
        path = tmp_path / DEFINITIONS_FILE_NAME
        path.write_text(json.dumps({"definitions": {"x.Old": {"type": "object"}}}))
        source = SchemaSource(id="cluster-crds", path=str(tmp_path))
        cache = DiskSchemaCache(tmp_path / "cache")

        load_definitions(source, cache=cache)
        path.write_text(json.dumps({"definitions": {"x.New": {"type": "object"}}}))
        version, document = load_definitions(source, cache=cache)

        assert version == LEGACY_VERSION
        assert list(document["definitions"]) == ["x.New"]
        cached = cache.get("cluster-crds", LEGACY_VERSION)
        assert list(cached["definitions"]) == ["x.New"]
