"""CLI command groups for kubeschema."""

from kubeschema.commands.cache_cmd import cache
from kubeschema.commands.config_cmd import config
from kubeschema.commands.crd_cmd import crd
from kubeschema.commands.schema_cmd import schema

__all__ = [
    "cache",
    "config",
    "crd",
    "schema",
]
