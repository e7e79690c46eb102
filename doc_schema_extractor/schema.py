"""User-authored extraction schemas.

A schema is an ordered forest of fields. Scalar fields never carry children;
only OBJECT and ARRAY_OF_OBJECTS fields do, so the two shapes are separate
models joined into one union on the ``type`` tag.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Iterator, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .errors import SchemaParseError

SCALAR_TYPES = ("STRING", "NUMBER", "BOOLEAN", "ARRAY_OF_STRINGS", "ARRAY")
CONTAINER_TYPES = ("OBJECT", "ARRAY_OF_OBJECTS")

EMPTY_NAME_ERROR = "Field name cannot be empty."


def new_field_id() -> str:
    return f"field-{uuid4().hex[:12]}"


class _FieldBase(BaseModel):
    id: str = Field(default_factory=new_field_id)
    name: str = ""
    description: Optional[str] = None
    required: bool = True
    error: Optional[str] = None

    @property
    def is_named(self) -> bool:
        return bool(self.name.strip())


class ScalarField(_FieldBase):
    type: Literal["STRING", "NUMBER", "BOOLEAN", "ARRAY_OF_STRINGS", "ARRAY"] = "STRING"


class ContainerField(_FieldBase):
    type: Literal["OBJECT", "ARRAY_OF_OBJECTS"]
    children: List[SchemaField] = Field(default_factory=list)


SchemaField = Annotated[Union[ScalarField, ContainerField], Field(discriminator="type")]

ContainerField.model_rebuild()

_schema_adapter = TypeAdapter(List[SchemaField])


def _normalize_raw_field(raw: Any) -> Any:
    # Editors and templates omit "type" for plain strings and send
    # "children": null on leaves; settle both before validation.
    if not isinstance(raw, dict):
        return raw
    field = dict(raw)
    field.setdefault("type", "STRING")
    if field.get("type") in CONTAINER_TYPES:
        children = field.get("children") or []
        field["children"] = [_normalize_raw_field(c) for c in children] if isinstance(children, list) else children
    else:
        field.pop("children", None)
    return field


def parse_schema(raw: Any) -> List[SchemaField]:
    """Build a field forest from JSON text or already-decoded JSON."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if not text.strip():
            return []
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaParseError(f"Schema is not valid JSON: {exc}") from exc

    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise SchemaParseError("Schema must be a JSON list of fields.")

    try:
        return _schema_adapter.validate_python([_normalize_raw_field(f) for f in raw])
    except ValidationError as exc:
        raise SchemaParseError(f"Invalid schema: {exc}") from exc


def schema_to_data(fields: List[SchemaField]) -> List[dict]:
    return [f.model_dump(exclude_none=True) for f in fields]


def schema_to_json(fields: List[SchemaField], indent: int = 2) -> str:
    return json.dumps(schema_to_data(fields), indent=indent, ensure_ascii=False)


def iter_fields(fields: List[SchemaField]) -> Iterator[SchemaField]:
    """Depth-first walk over every node of the forest."""
    for field in fields:
        yield field
        if isinstance(field, ContainerField):
            yield from iter_fields(field.children)


def clone_schema(fields: List[SchemaField]) -> List[SchemaField]:
    """Independent deep copy; edits to the clone never reach the source."""
    return [f.model_copy(deep=True) for f in fields]


def clone_with_fresh_ids(fields: List[SchemaField]) -> List[SchemaField]:
    cloned = clone_schema(fields)
    for field in iter_fields(cloned):
        field.id = new_field_id()
    return cloned


def validate_field_names(fields: List[SchemaField]) -> List[SchemaField]:
    """Return a copy with ``error`` set on every blank-named node."""
    checked = clone_schema(fields)
    for field in iter_fields(checked):
        field.error = None if field.is_named else EMPTY_NAME_ERROR
    return checked


def has_schema_errors(fields: List[SchemaField]) -> bool:
    return any(f.error for f in iter_fields(fields))
