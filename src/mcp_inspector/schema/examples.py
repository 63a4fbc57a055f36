"""Example argument generation from a tool's input schema."""

from typing import Any

_MISSING = object()

_TYPE_FALLBACKS: dict[str, Any] = {
    "string": "example string",
    "number": 42,
    "integer": 42,
    "boolean": True,
}


def generate_example(schema: Any) -> dict[str, Any]:
    """Build example arguments for a JSON Schema.

    Each property gets the first of ``example``, ``default``,
    ``examples[0]`` and ``enum[0]`` it declares, otherwise a placeholder for
    its type. Nested objects recurse. Properties whose type has no
    placeholder are left out, as is anything that is not an object schema.

    Args:
        schema: JSON Schema (normally a tool's ``inputSchema``)

    Returns:
        Mapping of property name to example value
    """
    if not _is_object_schema(schema):
        return {}

    example: dict[str, Any] = {}
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return example

    for name, prop in properties.items():
        value = _property_example(prop)
        if value is not _MISSING:
            example[name] = value
    return example


def _is_object_schema(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    schema_type = _schema_type(schema)
    if schema_type is None:
        return isinstance(schema.get("properties"), dict)
    return schema_type == "object"


def _schema_type(schema: dict[str, Any]) -> str | None:
    schema_type = schema.get("type")
    # ["string", "null"] style unions use the first concrete type
    if isinstance(schema_type, list):
        concrete = [t for t in schema_type if t != "null"]
        return concrete[0] if concrete and isinstance(concrete[0], str) else None
    return schema_type if isinstance(schema_type, str) else None


def _property_example(prop: Any) -> Any:
    if not isinstance(prop, dict):
        return _MISSING

    for key in ("example", "default"):
        if key in prop:
            return prop[key]

    for key in ("examples", "enum"):
        values = prop.get(key)
        if isinstance(values, list) and values:
            return values[0]

    schema_type = _schema_type(prop)
    if schema_type in _TYPE_FALLBACKS:
        return _TYPE_FALLBACKS[schema_type]
    if schema_type == "array":
        return []
    if schema_type == "object":
        return generate_example(prop)
    return _MISSING
