from __future__ import annotations

import json
import mimetypes
import os
from typing import Any, Tuple

DEFAULT_MIME_TYPE = "application/octet-stream"


def _resolve_path(file_obj) -> str:
    return file_obj.name if hasattr(file_obj, 'name') else file_obj


def read_json_content(file_obj) -> Any:
    """Read JSON content from an uploaded file or file path."""
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, bytes):
            content = content.decode('utf-8')
        return json.loads(content)

    with open(_resolve_path(file_obj), 'r', encoding='utf-8') as f:
        return json.load(f)


def guess_mime_type(file_name: str) -> str:
    mime_type, _ = mimetypes.guess_type(file_name or "")
    return mime_type or DEFAULT_MIME_TYPE


def read_document(file_obj) -> Tuple[str, bytes, str]:
    """Read an uploaded document as ``(file name, bytes, MIME type)``."""
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, str):
            content = content.encode('utf-8')
        name = os.path.basename(getattr(file_obj, 'name', '') or 'document')
        return name, content, guess_mime_type(name)

    path = _resolve_path(file_obj)
    with open(path, 'rb') as f:
        content = f.read()
    name = os.path.basename(path)
    return name, content, guess_mime_type(name)
