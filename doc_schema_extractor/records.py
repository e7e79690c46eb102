from __future__ import annotations

from typing import Any, Dict, List

from loguru import logger


def resolve_records(data: Any) -> List[Dict[str, Any]]:
    """Resolve an extracted payload into its top-level records.

    Supports payloads that are:
    - dict (single record) -> one record
    - list[dict] (batch) -> one record per dict, non-dict entries skipped
    - anything else -> no records
    """
    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        return []

    records: List[Dict[str, Any]] = []
    for idx, entry in enumerate(data):
        if isinstance(entry, dict):
            records.append(entry)
        else:
            logger.debug("Skipping non-object batch element at index {}", idx)
    return records


def compute_record_count_text(data: Any) -> str:
    if data is None:
        return ""
    count = len(resolve_records(data))
    if isinstance(data, list):
        return f"Records: {count} (batch of {len(data)})"
    return f"Records: {count}"
