from __future__ import annotations

import os
from typing import Optional

DEFAULT_EXPORT_STEM = "extraction"


def join_path(parent: Optional[str], key) -> str:
    """Join a parent dot path and a key segment.

    Keys are used verbatim; a key that already contains '.' stays readable
    in the column header rather than being escaped.
    """
    if not isinstance(key, str):
        key = str(key)
    return f"{parent}.{key}" if parent else key


def strip_extension(file_name: Optional[str]) -> str:
    if not file_name:
        return ""
    base = os.path.basename(file_name.strip())
    stem, ext = os.path.splitext(base)
    # splitext leaves dotfiles like '.env' whole; keep them as the stem.
    return stem if ext else base


def export_file_name(original_name: Optional[str], extension: str) -> str:
    """Original document name, extension stripped, with the export extension."""
    stem = strip_extension(original_name) or DEFAULT_EXPORT_STEM
    ext = extension if extension.startswith(".") else f".{extension}"
    return f"{stem}{ext.lower()}"
