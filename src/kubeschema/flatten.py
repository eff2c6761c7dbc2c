"""Form-oriented views of resolved schemas."""

from __future__ import annotations

from typing import Any

from kubeschema.models import FlattenedProperties, SchemaProperties, SchemaTreeNode

DEFAULT_FLATTEN_DEPTH = 3


def schema_properties(schema: dict[str, Any]) -> SchemaProperties:
    """Project the top-level fields a form renderer needs from a resolved schema."""
    return SchemaProperties(
        properties=schema.get("properties") or {},
        required=list(schema.get("required") or []),
        type=schema.get("type") or "object",
        additional_properties=schema.get("additionalProperties"),
        pattern_properties=schema.get("patternProperties"),
    )


def _is_expandable(prop: Any) -> bool:
    return isinstance(prop, dict) and prop.get("type") == "object" and bool(prop.get("properties"))


def _flatten(properties: dict[str, Any], path: str, depth: int, max_depth: int) -> dict[str, Any]:
    if depth >= max_depth:
        return {}

    flattened: dict[str, Any] = {}
    for name, prop in properties.items():
        current = f"{path}.{name}" if path else name
        if _is_expandable(prop):
            flattened.update(_flatten(prop["properties"], current, depth + 1, max_depth))
        else:
            flattened[current] = prop
    return flattened


def flatten(schema: dict[str, Any], max_depth: int = DEFAULT_FLATTEN_DEPTH) -> FlattenedProperties:
    """Flatten a resolved schema into dotted property paths.

    Object properties with their own ``properties`` are replaced by their
    children. Nothing deeper than ``max_depth`` path segments is returned;
    objects that would need more are dropped.
    """
    projection = schema_properties(schema)
    return FlattenedProperties(
        properties=_flatten(projection.properties, "", 0, max_depth),
        required=projection.required,
        original_schema=projection,
    )


def _node_type(prop: dict[str, Any]) -> str:
    prop_type = prop.get("type")
    if isinstance(prop_type, list):
        return prop_type[0] if prop_type else "unknown"
    return prop_type or "unknown"


def build_schema_tree(
    schema: dict[str, Any], name: str = "", path: str = "", required: bool = False
) -> SchemaTreeNode:
    """Build a property tree from a resolved schema.

    Array items appear as a ``[]`` child and map values of an object with a
    schema-typed ``additionalProperties`` as a ``*`` child.
    """
    node_type = _node_type(schema)
    node = SchemaTreeNode(name=name, path=path, type=node_type, required=required)

    properties = schema.get("properties")
    if isinstance(properties, dict) and properties:
        node.type = "object"
        required_names = set(schema.get("required") or [])
        for child_name, child in properties.items():
            if not isinstance(child, dict):
                continue
            child_path = f"{path}.{child_name}" if path else child_name
            node.children.append(
                build_schema_tree(child, child_name, child_path, child_name in required_names)
            )
        return node

    items = schema.get("items")
    if node_type == "array" and isinstance(items, dict):
        node.children.append(build_schema_tree(items, "[]", f"{path}[]"))
        return node

    additional = schema.get("additionalProperties")
    if node_type == "object" and isinstance(additional, dict):
        child_path = f"{path}.*" if path else "*"
        node.children.append(build_schema_tree(additional, "*", child_path))

    return node
