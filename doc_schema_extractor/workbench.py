"""Per-session extraction state: the document batch, the editor and history.

Each file moves pendiente -> procesando -> completado | error. A successful
extraction prepends an immutable ExtractionResult to the history; a failed
one only records the error on the file.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional
from uuid import uuid4

from loguru import logger

from .config import settings
from .errors import ExtractorError, FileNotInBatchError
from .exporters import write_export
from .gemini_client import GeminiExtractor, get_extractor
from .schema import ScalarField, SchemaField, clone_schema, clone_with_fresh_ids
from .templates import EXAMPLE_FILE_CONTENT, EXAMPLE_FILE_NAME, EXAMPLE_PROMPT, EXAMPLE_SCHEMA, Template


class FileStatus(str, Enum):
    PENDING = "pendiente"
    PROCESSING = "procesando"
    COMPLETED = "completado"
    ERROR = "error"


@dataclass
class UploadedFile:
    id: str
    name: str
    content: bytes
    mime_type: str
    status: FileStatus = FileStatus.PENDING
    extracted_data: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ExtractionResult:
    id: str
    file_id: str
    file_name: str
    schema: List[SchemaField]
    extracted_data: Any
    timestamp: str
    prompt: str = ""


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def default_schema() -> List[SchemaField]:
    return [ScalarField(name="", type="STRING")]


@dataclass
class Workbench:
    extractor: Optional[GeminiExtractor] = None
    files: List[UploadedFile] = field(default_factory=list)
    active_file_id: Optional[str] = None
    schema: List[SchemaField] = field(default_factory=default_schema)
    prompt: str = field(default_factory=lambda: settings.default_prompt)
    history: List[ExtractionResult] = field(default_factory=list)

    # --- batch -------------------------------------------------------------

    def add_file(self, name: str, content: bytes, mime_type: str) -> UploadedFile:
        uploaded = UploadedFile(id=_new_id("file"), name=name, content=content, mime_type=mime_type)
        self.files.append(uploaded)
        if self.active_file_id is None:
            self.active_file_id = uploaded.id
        logger.info("Added {} ({}, {} bytes) to the batch", name, mime_type, len(content))
        return uploaded

    def use_example_file(self) -> UploadedFile:
        self.files = []
        self.active_file_id = None
        return self.add_file(EXAMPLE_FILE_NAME, EXAMPLE_FILE_CONTENT.encode("utf-8"), "text/plain")

    def get_file(self, file_id: str) -> UploadedFile:
        for uploaded in self.files:
            if uploaded.id == file_id:
                return uploaded
        raise FileNotInBatchError(f"File {file_id} is not in the current batch.")

    @property
    def active_file(self) -> Optional[UploadedFile]:
        if self.active_file_id is None:
            return None
        try:
            return self.get_file(self.active_file_id)
        except FileNotInBatchError:
            return None

    def select_file(self, file_id: Optional[str]) -> Optional[UploadedFile]:
        if file_id is not None:
            self.get_file(file_id)
        self.active_file_id = file_id
        return self.active_file

    def remove_file(self, file_id: str) -> None:
        self.files = [f for f in self.files if f.id != file_id]
        if self.active_file_id == file_id:
            self.active_file_id = self.files[0].id if self.files else None

    # --- editor ------------------------------------------------------------

    def set_schema(self, schema: List[SchemaField]) -> None:
        self.schema = clone_schema(schema)

    def apply_template(self, template: Template) -> None:
        self.schema = clone_schema(template.schema)
        self.prompt = template.prompt

    def use_example(self) -> None:
        self.prompt = EXAMPLE_PROMPT
        self.schema = clone_with_fresh_ids(EXAMPLE_SCHEMA)

    # --- extraction --------------------------------------------------------

    def _extractor(self) -> GeminiExtractor:
        return self.extractor or get_extractor()

    def extract(self, file_id: Optional[str] = None) -> UploadedFile:
        """Run one extraction; the file's status records the outcome."""
        target = self.get_file(file_id) if file_id else self.active_file
        if target is None:
            raise FileNotInBatchError("No file selected.")

        target.status = FileStatus.PROCESSING
        target.error = None
        target.extracted_data = None

        schema = clone_schema(self.schema)
        prompt = self.prompt
        try:
            data = self._extractor().extract(target.content, target.mime_type, schema, prompt)
        except ExtractorError as exc:
            target.status = FileStatus.ERROR
            target.error = str(exc)
            logger.warning("Extraction failed for {}: {}", target.name, exc)
            return target

        target.status = FileStatus.COMPLETED
        target.extracted_data = data
        entry = ExtractionResult(
            id=_new_id("hist"),
            file_id=target.id,
            file_name=target.name,
            schema=schema,
            extracted_data=copy.deepcopy(data),
            timestamp=datetime.now(timezone.utc).isoformat(),
            prompt=prompt,
        )
        self.history.insert(0, entry)
        logger.info("Extraction completed for {} (history entry {})", target.name, entry.id)
        return target

    def extract_all(self) -> List[UploadedFile]:
        """Extract every pending file, one after the other."""
        pending = [f for f in self.files if f.status == FileStatus.PENDING]
        return [self.extract(f.id) for f in pending]

    # --- history -----------------------------------------------------------

    def get_history_entry(self, history_id: str) -> ExtractionResult:
        for entry in self.history:
            if entry.id == history_id:
                return entry
        raise ExtractorError(f"History entry not found: {history_id}")

    def replay(self, history_id: str) -> UploadedFile:
        """Restore the schema and prompt of a past extraction."""
        entry = self.get_history_entry(history_id)
        try:
            uploaded = self.get_file(entry.file_id)
        except FileNotInBatchError:
            raise FileNotInBatchError(
                f'The original file "{entry.file_name}" is no longer in the current batch. '
                "Upload it again to reuse this extraction."
            ) from None
        self.active_file_id = uploaded.id
        self.schema = clone_schema(entry.schema)
        self.prompt = entry.prompt or self.prompt
        return uploaded

    # --- export ------------------------------------------------------------

    def schema_for_file(self, file_id: str) -> Optional[List[SchemaField]]:
        """Schema of the latest extraction of a file; fixes export column order."""
        return next((e.schema for e in self.history if e.file_id == file_id), None)

    def export(self, file_id: str, fmt: str, directory: Optional[str] = None) -> str:
        uploaded = self.get_file(file_id)
        if uploaded.status != FileStatus.COMPLETED:
            raise ExtractorError(f"{uploaded.name} has no extracted data to export.")
        return write_export(
            uploaded.extracted_data, fmt, uploaded.name, schema=self.schema_for_file(file_id), directory=directory
        )

    def export_history(self, history_id: str, fmt: str, directory: Optional[str] = None) -> str:
        entry = self.get_history_entry(history_id)
        return write_export(entry.extracted_data, fmt, entry.file_name, schema=entry.schema, directory=directory)
