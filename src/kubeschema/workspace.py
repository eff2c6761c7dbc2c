"""Configuration access and indexer construction for CLI commands."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from kubeschema.config import (
    KubeschemaConfig,
    SchemaSource,
    find_config_file,
    load_config,
    resolve_source,
)
from kubeschema.crd import CRD_SOURCE, load_crd_documents
from kubeschema.errors import ConfigError
from kubeschema.indexer import SchemaIndexer
from kubeschema.sources import load_definitions, read_definitions_async
from kubeschema.storage import create_disk_cache

if TYPE_CHECKING:
    from kubeschema.storage import DiskSchemaCache


class ConfigProvider:
    """Provides access to configuration with caching."""

    _instance: ConfigProvider | None = None

    def __init__(self) -> None:
        self._config: KubeschemaConfig | None = None
        self._config_path: Path | None = None

    @classmethod
    def get_instance(cls) -> ConfigProvider:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def use_path(self, config_path: Path | None) -> None:
        """Pin the config file to load instead of searching for one."""
        self._config_path = config_path
        self._config = None

    @property
    def config_path(self) -> Path | None:
        """The pinned config file, or the one found by searching upwards."""
        return self._config_path or find_config_file()

    def get_config(self) -> KubeschemaConfig:
        if self._config is None:
            self._config = load_config(self._config_path)
        return self._config


def get_config() -> KubeschemaConfig:
    return ConfigProvider.get_instance().get_config()


def get_config_path() -> Path | None:
    return ConfigProvider.get_instance().config_path


def get_disk_cache() -> DiskSchemaCache | None:
    return create_disk_cache(get_config().cache)


@dataclass
class LoadedIndex:
    """An indexer together with where its document came from."""

    indexer: SchemaIndexer
    source: str
    version: str
    origin: str


def new_indexer(config: KubeschemaConfig) -> SchemaIndexer:
    try:
        return SchemaIndexer(strategy=config.resolver.strategy, max_depth=config.resolver.max_depth)
    except ValueError as e:
        raise ConfigError(f"Invalid resolver.strategy in configuration: {e}") from e


def open_index(
    definitions: Path | None = None,
    source_id: str | None = None,
    version: str | None = None,
) -> LoadedIndex:
    """Load a definitions document into a fresh indexer.

    An explicit ``definitions`` file bypasses configured sources and the disk
    cache. Otherwise the configured source is used (the first enabled one when
    ``source_id`` is None).
    """
    config = get_config()
    indexer = new_indexer(config)

    if definitions is not None:
        tag = source_id or "kubernetes"

        async def read() -> dict:
            return await read_definitions_async(definitions)

        asyncio.run(indexer.load(read, source=tag))
        return LoadedIndex(indexer=indexer, source=tag, version="-", origin=str(definitions))

    source: SchemaSource | None = resolve_source(config, source_id)
    if source is None:
        wanted = source_id or "any enabled source"
        raise FileNotFoundError(f"No schema source configured for {wanted}")

    selected_version, document = load_definitions(source, version, cache=get_disk_cache())
    indexer.load_document(document, source=source.id)
    return LoadedIndex(
        indexer=indexer, source=source.id, version=selected_version, origin=source.path
    )


def open_crd_index(paths: list[Path]) -> LoadedIndex:
    """Index CRD manifests read from YAML files."""
    indexer = new_indexer(get_config())
    indexer.load_document(load_crd_documents(paths), source=CRD_SOURCE)
    origin = ", ".join(str(p) for p in paths)
    return LoadedIndex(indexer=indexer, source=CRD_SOURCE, version="-", origin=origin)
