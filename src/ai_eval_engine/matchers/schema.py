"""
Structural JSON-Schema subset validator.

Supported keywords: ``type`` (a name or a list of names), ``properties``,
``required``, ``items`` and ``enum``. Everything else is ignored. The
validator collects every error with a JSON-path style location instead of
stopping at the first one.
"""

from __future__ import annotations

from typing import Any

_TYPE_CHECKS = {
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, (list, tuple)),
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "null": lambda v: v is None,
}


def _type_name(value: Any) -> str:
    for name in ("null", "boolean", "integer", "number", "string", "array", "object"):
        if _TYPE_CHECKS[name](value):
            return name
    return type(value).__name__


def validate_schema(value: Any, schema: dict[str, Any], path: str = "$") -> list[str]:
    """Return every violation of ``schema`` by ``value``; empty means valid."""
    errors: list[str] = []

    expected_type = schema.get("type")
    if expected_type is not None:
        allowed = expected_type if isinstance(expected_type, list) else [expected_type]
        unknown = [t for t in allowed if t not in _TYPE_CHECKS]
        if unknown:
            raise ValueError(f"Unsupported schema type(s) {unknown} at {path}")
        if not any(_TYPE_CHECKS[t](value) for t in allowed):
            errors.append(f"{path}: expected {' or '.join(allowed)}, got {_type_name(value)}")
            # Nested keywords are meaningless for the wrong type
            return errors

    if "enum" in schema and value not in schema["enum"]:
        errors.append(f"{path}: {value!r} is not one of {schema['enum']!r}")

    if isinstance(value, dict):
        for key in schema.get("required", []):
            if key not in value:
                errors.append(f"{path}: missing required property '{key}'")
        for key, prop_schema in schema.get("properties", {}).items():
            if key in value:
                errors.extend(validate_schema(value[key], prop_schema, f"{path}.{key}"))

    if isinstance(value, (list, tuple)) and "items" in schema:
        for i, item in enumerate(value):
            errors.extend(validate_schema(item, schema["items"], f"{path}[{i}]"))

    return errors
