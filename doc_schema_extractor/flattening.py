"""Flatten extracted JSON into ordered columns and string rows.

Every tabular exporter goes through ``flatten_for_export``. The only thing
that differs between them is how arrays of records are laid out, which is
the job of a FlattenPolicy:

- ``JoinPolicy``: one row per record; each record-array property becomes one
  column whose cell joins the element values as ``[1] a; [2] b``.
- ``RowExpansionPolicy``: a record expands into ``max(len(array), 1)`` rows;
  scalar fields repeat on every row, element *i* fills row *i*.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .paths import join_path
from .records import resolve_records
from .schema import SchemaField
from .schema_utils import is_record_list, schema_columns


def format_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except TypeError:
            return str(value)
    return str(value)


class _RecordSlot:
    """Marks where an expanded record array sits among a record's columns."""

    __slots__ = ("path", "elements", "keys")

    def __init__(self, path: str, elements: List[Dict[str, str]]):
        self.path = path
        self.elements = elements
        self.keys: List[str] = []
        for element in elements:
            for key in element:
                if key not in self.keys:
                    self.keys.append(key)


class FlattenPolicy(ABC):
    name = "base"
    scalar_separator = "; "
    record_separator = "; "

    def join_scalars(self, values: List[Any]) -> str:
        return self.scalar_separator.join(format_scalar(v) for v in values)

    def join_records(self, path: str, elements: List[Any]) -> Dict[str, str]:
        """Collapse a record array into one ``[i] value`` string per property.

        An element missing a property adds nothing to that property's cell.
        """
        labelled: Dict[str, List[str]] = {}
        for index, element in enumerate(elements, start=1):
            if not isinstance(element, dict):
                continue
            for key, text in self.flatten_value(element).items():
                labelled.setdefault(join_path(path, key), []).append(f"[{index}] {text}")
        return {key: self.record_separator.join(parts) for key, parts in labelled.items()}

    def flatten_value(self, value: Dict[str, Any], expand: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        self._flatten_into(out, value, '', expand)
        return out

    def _flatten_into(self, out: Dict[str, Any], value: Any, path: str, expand: bool) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                self._flatten_into(out, child, join_path(path, key), expand)
        elif is_record_list(value):
            if expand:
                elements = [self.flatten_value(e) if isinstance(e, dict) else {} for e in value]
                out[path] = _RecordSlot(path, elements)
            else:
                out.update(self.join_records(path, value))
        elif isinstance(value, list):
            out[path] = self.join_scalars(value)
        else:
            out[path] = format_scalar(value)

    @abstractmethod
    def flatten_record(self, record: Dict[str, Any]) -> List[Dict[str, str]]:
        """Rows produced by one top-level record."""


class JoinPolicy(FlattenPolicy):
    name = "join"

    def flatten_record(self, record: Dict[str, Any]) -> List[Dict[str, str]]:
        return [self.flatten_value(record)]


class RowExpansionPolicy(FlattenPolicy):
    name = "expand"
    scalar_separator = "\n"
    # Only used for record arrays nested inside an expanded element.
    record_separator = "\n"

    def flatten_record(self, record: Dict[str, Any]) -> List[Dict[str, str]]:
        flat = self.flatten_value(record, expand=True)
        slots = [v for v in flat.values() if isinstance(v, _RecordSlot)]
        depth = max([len(s.elements) for s in slots] + [1])

        rows: List[Dict[str, str]] = []
        for i in range(depth):
            row: Dict[str, str] = {}
            for key, value in flat.items():
                if isinstance(value, _RecordSlot):
                    element = value.elements[i] if i < len(value.elements) else {}
                    for sub_key in value.keys:
                        row[join_path(value.path, sub_key)] = element.get(sub_key, "")
                else:
                    row[key] = value
            rows.append(row)
        return rows


POLICIES: Dict[str, FlattenPolicy] = {
    JoinPolicy.name: JoinPolicy(),
    RowExpansionPolicy.name: RowExpansionPolicy(),
}


def get_policy(policy: Union[str, FlattenPolicy, None]) -> FlattenPolicy:
    if policy is None:
        return POLICIES[JoinPolicy.name]
    if isinstance(policy, FlattenPolicy):
        return policy
    try:
        return POLICIES[policy.lower()]
    except KeyError:
        raise ValueError(f"Unknown flatten policy: {policy!r} (expected one of {sorted(POLICIES)})") from None


@dataclass
class FlatTable:
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    def as_lists(self) -> List[List[str]]:
        return [[row.get(c, "") for c in self.columns] for row in self.rows]

    def head(self, limit: int = 3) -> "FlatTable":
        return FlatTable(list(self.columns), self.rows[:max(1, int(limit))])

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.as_lists(), columns=self.columns)


def flatten_for_export(
    data: Any,
    schema: Optional[List[SchemaField]] = None,
    policy: Union[str, FlattenPolicy, None] = None,
) -> FlatTable:
    """Flatten an extracted object (or batch of objects) into a FlatTable.

    With a schema the columns are exactly its depth-first paths; otherwise
    they are every flattened key in order of first appearance. Missing cells
    are empty strings.
    """
    active = get_policy(policy)

    flat_rows: List[Dict[str, str]] = []
    for record in resolve_records(data):
        flat_rows.extend(active.flatten_record(record))

    columns = schema_columns(schema) if schema else []
    if not columns:
        columns = list(dict.fromkeys(key for flat in flat_rows for key in flat))

    rows = [{c: flat.get(c, "") for c in columns} for flat in flat_rows]
    return FlatTable(columns, rows)
