"""Compile a user schema into the Gemini response-schema dialect."""
from __future__ import annotations

from typing import Any, Dict, List

from .errors import EmptySchemaError
from .schema import SchemaField

PLACEHOLDER_PROPERTY = "placeholder"
PLACEHOLDER_DESCRIPTION = "Placeholder for empty object"


def placeholder_object() -> Dict[str, Any]:
    # Gemini rejects OBJECT types that declare no properties.
    return {
        "type": "OBJECT",
        "properties": {
            PLACEHOLDER_PROPERTY: {"type": "STRING", "description": PLACEHOLDER_DESCRIPTION},
        },
    }


def _object_schema(children: List[SchemaField]) -> Dict[str, Any]:
    named = [c for c in children if c.is_named]
    if not named:
        return placeholder_object()
    nested = _compile_fields(named)
    return {"type": "OBJECT", "properties": nested["properties"], "required": nested["required"]}


def compile_field(field: SchemaField) -> Dict[str, Any]:
    if field.type == "STRING":
        compiled: Dict[str, Any] = {"type": "STRING"}
    elif field.type == "NUMBER":
        compiled = {"type": "NUMBER"}
    elif field.type == "BOOLEAN":
        compiled = {"type": "BOOLEAN"}
    elif field.type in ("ARRAY_OF_STRINGS", "ARRAY"):
        compiled = {"type": "ARRAY", "items": {"type": "STRING"}}
    elif field.type == "OBJECT":
        compiled = _object_schema(field.children)
    elif field.type == "ARRAY_OF_OBJECTS":
        compiled = {"type": "ARRAY", "items": _object_schema(field.children)}
    else:
        raise ValueError(f"Unsupported field type: {field.type}")

    if field.description and field.description.strip():
        compiled["description"] = field.description
    return compiled


def _compile_fields(fields: List[SchemaField]) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    is_required: Dict[str, bool] = {}
    for field in fields:
        # Duplicate sibling names collapse onto one key; the later field wins.
        properties[field.name] = compile_field(field)
        is_required[field.name] = field.required
    required = [name for name in properties if is_required[name]]
    return {"type": "OBJECT", "properties": properties, "required": required}


def compile_schema(fields: List[SchemaField]) -> Dict[str, Any]:
    """Translate a field forest into ``{type, properties, required}``.

    Fields with blank names are dropped at every depth. Raises
    EmptySchemaError when no root field survives, so no request is sent.
    """
    named = [f for f in fields if f.is_named]
    if not named:
        raise EmptySchemaError()
    return _compile_fields(named)
