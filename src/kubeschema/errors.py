"""Error taxonomy for kubeschema.

Every error that reaches a caller is a ``SchemaError`` subclass, so callers
can branch on the type instead of parsing messages.
"""

from __future__ import annotations


class SchemaError(Exception):
    """Base class for kubeschema errors."""


class ConfigError(SchemaError):
    """The configuration file cannot be read or holds an invalid value."""


class MalformedInputError(SchemaError):
    """The definitions document or one of its entries has the wrong shape."""


class UnresolvedReferenceError(SchemaError):
    """A definition key has no backing node in the raw document."""

    def __init__(self, definition_key: str):
        self.definition_key = definition_key
        super().__init__(f"Definition not found: {definition_key}")


class LoadInProgressError(SchemaError):
    """A second document load was started before the first one finished."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(
            f"A definitions load is already in progress (requested source: {source})"
        )
