from __future__ import annotations

from typing import Any, Dict, List

from .paths import join_path
from .schema import ContainerField, ScalarField, SchemaField


def is_record_list(value: Any) -> bool:
    """True for a non-empty list whose non-null elements are all objects."""
    if not isinstance(value, list):
        return False
    present = [v for v in value if v is not None]
    return bool(present) and all(isinstance(v, dict) for v in present)


def schema_columns(fields: List[SchemaField], parent_key: str = '') -> List[str]:
    """Depth-first dot paths for every leaf of the schema.

    OBJECT and ARRAY_OF_OBJECTS children sit directly under the parent path
    (no index segment). A container with no named children is its own column.
    """
    columns: List[str] = []
    for field in fields:
        if not field.is_named:
            continue
        current_key = join_path(parent_key, field.name)
        if isinstance(field, ContainerField):
            nested = schema_columns(field.children, current_key)
            columns.extend(nested if nested else [current_key])
        else:
            columns.append(current_key)

    # Duplicate sibling names map onto the same output key.
    unique: List[str] = []
    for column in columns:
        if column not in unique:
            unique.append(column)
    return unique


def _merge_objects(objects: List[Dict[str, Any]]) -> Dict[str, List[Any]]:
    # key -> every observed value, keys in first-appearance order
    merged: Dict[str, List[Any]] = {}
    for obj in objects:
        for k, v in obj.items():
            merged.setdefault(str(k), []).append(v)
    return merged


def _infer_field(name: str, values: List[Any]) -> SchemaField:
    sample = [v for v in values if v is not None]
    if not sample:
        return ScalarField(name=name, type="STRING")

    first = sample[0]
    if isinstance(first, bool):
        return ScalarField(name=name, type="BOOLEAN")
    if isinstance(first, (int, float)):
        return ScalarField(name=name, type="NUMBER")
    if isinstance(first, dict):
        objects = [v for v in sample if isinstance(v, dict)]
        return ContainerField(name=name, type="OBJECT", children=_infer_children(objects))
    if isinstance(first, list):
        if is_record_list(first):
            elements = [e for v in sample if isinstance(v, list) for e in v if isinstance(e, dict)]
            return ContainerField(name=name, type="ARRAY_OF_OBJECTS", children=_infer_children(elements))
        return ScalarField(name=name, type="ARRAY_OF_STRINGS")
    return ScalarField(name=name, type="STRING")


def _infer_children(objects: List[Dict[str, Any]]) -> List[SchemaField]:
    return [_infer_field(k, vs) for k, vs in _merge_objects(objects).items()]


def infer_schema(data: Any) -> List[SchemaField]:
    """Guess a field forest from a sample extracted payload."""
    if isinstance(data, dict):
        return _infer_children([data])
    if isinstance(data, list):
        return _infer_children([d for d in data if isinstance(d, dict)])
    return []
