from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import yaml

from kubeschema.config import CONFIG_FILE_NAME, KubeschemaConfig
from kubeschema.crd import CRD_SOURCE
from kubeschema.errors import ConfigError
from kubeschema.workspace import ConfigProvider, get_config, new_indexer, open_crd_index, open_index


class TestConfigProvider:
    def test_singleton(self):
        assert ConfigProvider.get_instance() is ConfigProvider.get_instance()

    def test_use_path(self, tmp_path: Path):
        config_path = tmp_path / CONFIG_FILE_NAME
        config_path.write_text(yaml.safe_dump({"resolver": {"max_depth": 4}}))

        ConfigProvider.get_instance().use_path(config_path)

        assert get_config().resolver.max_depth == 4
        assert ConfigProvider.get_instance().config_path == config_path

    def test_config_cached(self):
        with patch("kubeschema.workspace.load_config", return_value=KubeschemaConfig()) as mock_load:
            get_config()
            get_config()
        mock_load.assert_called_once()


class TestNewIndexer:
    def test_uses_resolver_config(self):
        config = KubeschemaConfig.from_dict({"resolver": {"strategy": "eager", "max_depth": 6}})
        indexer = new_indexer(config)
        assert indexer.strategy.name == "eager"
        assert indexer.max_depth == 6

    def test_unknown_strategy(self):
        config = KubeschemaConfig.from_dict({"resolver": {"strategy": "sometimes"}})
        with pytest.raises(ConfigError, match="resolver.strategy"):
            new_indexer(config)


class TestOpenIndex:
    def test_explicit_file(self, definitions_file: Path):
        loaded = open_index(definitions_file)
        assert loaded.version == "-"
        assert loaded.origin == str(definitions_file)
        assert loaded.indexer.get_schema_by_gvk("core", "v1", "Pod") is not None

    def test_configured_source(self, tmp_path: Path, definitions_document: dict[str, Any]):
        (tmp_path / "defs").mkdir()
        (tmp_path / "defs" / "_definitions.json").write_text(json.dumps(definitions_document))
        config_path = tmp_path / CONFIG_FILE_NAME
        config_path.write_text(
            yaml.safe_dump({"sources": [{"id": "k8s", "path": "defs"}], "cache": {"enabled": False}})
        )
        ConfigProvider.get_instance().use_path(config_path)

        loaded = open_index()

        assert loaded.source == "k8s"
        assert loaded.version == "default"
        assert loaded.indexer.index.source == "k8s"

    def test_no_source(self, tmp_path: Path):
        config_path = tmp_path / CONFIG_FILE_NAME
        config_path.write_text(yaml.safe_dump({"sources": []}))
        ConfigProvider.get_instance().use_path(config_path)

        with pytest.raises(FileNotFoundError, match="any enabled source"):
            open_index()


def test_open_crd_index(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text(yaml.safe_dump({"apiVersion": "v1", "kind": "ConfigMap"}))

    loaded = open_crd_index([path])

    assert loaded.source == CRD_SOURCE
    assert loaded.indexer.get_available_kinds() == []
