"""Lazy ``$ref`` resolution for Kubernetes definitions.

A definition is resolved depth-first: every local ``#/definitions/<key>``
pointer is inlined, ``description`` annotations are dropped, and pointers that
loop back into their own lineage or point nowhere are replaced by an open
object schema instead of failing the whole resolution.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kubeschema.errors import UnresolvedReferenceError
from kubeschema.models import (
    ListNode,
    MappingNode,
    RefNode,
    ScalarNode,
    classify_node,
    fallback_schema,
)

if TYPE_CHECKING:
    from kubeschema.models import SchemaIndex

_LOG = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


def _is_annotation(key: str, value: Any) -> bool:
    # A property literally named "description" has a schema (mapping) as value.
    return key == "description" and not isinstance(value, dict)


def _open_object(siblings: dict[str, Any]) -> dict[str, Any]:
    return {**siblings, **fallback_schema()}


class ReferenceResolver:
    """Resolves definitions from one raw ``definitions`` mapping."""

    def __init__(self, definitions: dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH):
        self.definitions = definitions
        self.max_depth = max_depth

    def resolve(self, definition_key: str) -> dict[str, Any]:
        """Return the fully inlined schema for ``definition_key``.

        Raises:
            UnresolvedReferenceError: the key itself is not in the document.
        """
        node = self.definitions.get(definition_key)
        if not isinstance(node, dict):
            raise UnresolvedReferenceError(definition_key)

        return self._resolve(node, self.max_depth, frozenset({definition_key}))

    def _resolve(self, value: Any, depth: int, lineage: frozenset[str]) -> Any:
        if depth <= 0:
            _LOG.debug("Maximum resolution depth reached, references left unexpanded")
            return self._strip(value)

        node = classify_node(value)
        if isinstance(node, ScalarNode):
            return node.value
        if isinstance(node, ListNode):
            return [self._resolve(item, depth - 1, lineage) for item in node.items]
        if isinstance(node, MappingNode):
            return {
                key: self._resolve(child, depth - 1, lineage)
                for key, child in node.fields.items()
                if not _is_annotation(key, child)
            }
        if isinstance(node, RefNode):
            return self._resolve_ref(node, depth, lineage)
        raise TypeError(f"Unhandled schema node: {node!r}")

    def _resolve_ref(self, node: RefNode, depth: int, lineage: frozenset[str]) -> dict[str, Any]:
        siblings = {
            key: self._resolve(child, depth - 1, lineage)
            for key, child in node.siblings.items()
            if not _is_annotation(key, child)
        }

        target = node.target
        if target is None:
            _LOG.warning("Unsupported schema reference: %s", node.ref)
            return _open_object(siblings)

        if target in lineage:
            _LOG.info("Circular reference detected: %s", target)
            return _open_object(siblings)

        referenced = self.definitions.get(target)
        if not isinstance(referenced, dict):
            _LOG.warning("Could not resolve schema reference: %s", node.ref)
            return _open_object(siblings)

        # Each branch carries its own lineage; siblings never see each other.
        resolved = self._resolve(referenced, depth - 1, lineage | {target})
        if not isinstance(resolved, dict):
            return _open_object(siblings)
        return {**resolved, **siblings}

    def _strip(self, value: Any) -> Any:
        """Drop annotations and unexpanded pointers without following them."""
        node = classify_node(value)
        if isinstance(node, ScalarNode):
            return node.value
        if isinstance(node, ListNode):
            return [self._strip(item) for item in node.items]
        if isinstance(node, MappingNode):
            return {
                key: self._strip(child)
                for key, child in node.fields.items()
                if not _is_annotation(key, child)
            }
        if isinstance(node, RefNode):
            return _open_object(
                {
                    key: self._strip(child)
                    for key, child in node.siblings.items()
                    if not _is_annotation(key, child)
                }
            )
        raise TypeError(f"Unhandled schema node: {node!r}")


def resolve(
    definition_key: str, index: SchemaIndex, max_depth: int = DEFAULT_MAX_DEPTH
) -> dict[str, Any]:
    """Resolve ``definition_key`` against the definitions backing ``index``."""
    return ReferenceResolver(index.definitions, max_depth=max_depth).resolve(definition_key)
