"""Configuration management for kubeschema.

This module handles loading and managing configuration from a YAML file,
describing where definitions documents live and how they are resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kubeschema.errors import ConfigError

CONFIG_FILE_NAME = ".kubeschema.yaml"

DEFAULT_CACHE_PATH = "~/.cache/kubeschema"


@dataclass
class SchemaSource:
    """A location holding one or more ``_definitions.json`` documents."""

    id: str
    """Source identifier, also used as the source tag on indexed resources."""

    path: str
    """Directory containing either ``_definitions.json`` or version subdirectories."""

    name: str | None = None
    """Human-readable name (defaults to the id)."""

    enabled: bool = True

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass
class ResolverConfig:
    """Configuration for ``$ref`` resolution."""

    max_depth: int = 10
    """Maximum recursion depth before references are left unexpanded."""

    strategy: str = "lazy"
    """Resolution strategy: 'lazy' (on demand) or 'eager' (at load time)."""


@dataclass
class FlattenConfig:
    """Configuration for flattened property views."""

    max_depth: int = 3
    """Maximum number of dotted path segments."""


@dataclass
class CacheConfig:
    """Configuration for the on-disk cache of downloaded definitions."""

    enabled: bool = True
    path: str = DEFAULT_CACHE_PATH
    max_size_mb: int = 50
    max_age_days: int = 7

    @property
    def resolved_path(self) -> Path:
        return Path(self.path).expanduser()


@dataclass
class KubeschemaConfig:
    """Main configuration for kubeschema."""

    sources: list[SchemaSource] = field(default_factory=list)
    """Definitions sources, in lookup order."""

    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    flatten: FlattenConfig = field(default_factory=FlattenConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @classmethod
    def get_default(cls) -> KubeschemaConfig:
        """Get default configuration with standard paths."""
        return cls(
            sources=[
                SchemaSource(id="kubernetes", name="Kubernetes", path="schemas/kubernetes"),
                SchemaSource(
                    id="cluster-crds",
                    name="Cluster CRDs",
                    path="schemas/crds",
                    enabled=False,
                ),
            ],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KubeschemaConfig:
        """Create config from a dictionary."""
        sources = []
        for source_data in data.get("sources", []):
            sources.append(
                SchemaSource(
                    id=source_data.get("id", "kubernetes"),
                    path=source_data.get("path", ""),
                    name=source_data.get("name"),
                    enabled=source_data.get("enabled", True),
                )
            )

        resolver_data = data.get("resolver", {})
        resolver = ResolverConfig(
            max_depth=resolver_data.get("max_depth", 10),
            strategy=resolver_data.get("strategy", "lazy"),
        )

        flatten_data = data.get("flatten", {})
        flatten = FlattenConfig(max_depth=flatten_data.get("max_depth", 3))

        cache_data = data.get("cache", {})
        cache = CacheConfig(
            enabled=cache_data.get("enabled", True),
            path=cache_data.get("path", DEFAULT_CACHE_PATH),
            max_size_mb=cache_data.get("max_size_mb", 50),
            max_age_days=cache_data.get("max_age_days", 7),
        )

        return cls(sources=sources, resolver=resolver, flatten=flatten, cache=cache)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "sources": [
                {
                    k: v
                    for k, v in {
                        "id": source.id,
                        "name": source.name,
                        "path": source.path,
                        "enabled": source.enabled,
                    }.items()
                    if v is not None
                }
                for source in self.sources
            ],
            "resolver": {
                "max_depth": self.resolver.max_depth,
                "strategy": self.resolver.strategy,
            },
            "flatten": {
                "max_depth": self.flatten.max_depth,
            },
            "cache": {
                "enabled": self.cache.enabled,
                "path": self.cache.path,
                "max_size_mb": self.cache.max_size_mb,
                "max_age_days": self.cache.max_age_days,
            },
        }


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the config file by walking up the directory tree.

    Starts from start_path (or cwd) and walks up looking for .kubeschema.yaml.
    """
    if start_path is None:
        start_path = Path.cwd()

    current: Path = start_path
    while current != current.parent:
        config_path: Path = current / CONFIG_FILE_NAME
        if config_path.exists():
            return config_path
        current = current.parent

    return None


def load_config(config_path: Path | None = None) -> KubeschemaConfig:
    """Load configuration from file or return defaults.

    If config_path is None, searches for .kubeschema.yaml in the directory tree.
    If no config file is found, returns default configuration. Relative source
    paths are interpreted relative to the config file's directory.
    """
    if config_path is None:
        config_path = find_config_file()

    if config_path is None or not config_path.exists():
        return KubeschemaConfig.get_default()

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top-level value must be a mapping")

    config = KubeschemaConfig.from_dict(data)
    base_dir = config_path.parent
    for source in config.sources:
        source_path = Path(source.path).expanduser()
        if not source_path.is_absolute():
            source.path = str(base_dir / source_path)
    return config


def save_config(config: KubeschemaConfig, config_path: Path) -> None:
    """Save configuration to a file."""
    with config_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def generate_default_config() -> str:
    """Generate default configuration as YAML string."""
    config: KubeschemaConfig = KubeschemaConfig.get_default()
    return yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)


def resolve_source(config: KubeschemaConfig, source_id: str | None = None) -> SchemaSource | None:
    """Resolve a source id to its configuration.

    Without an id, the first enabled source is returned. Matching is
    case-insensitive. Returns None if no match is found.
    """
    if source_id is None:
        for source in config.sources:
            if source.enabled:
                return source
        return None

    source_id_lower: str = source_id.lower()
    for source in config.sources:
        if source.id.lower() == source_id_lower:
            return source

    return None
