from __future__ import annotations

from typing import Any, List, Optional, Tuple

import gradio as gr
from loguru import logger

from .errors import ExtractorError
from .flattening import flatten_for_export
from .gemini_client import GeminiExtractor
from .io_utils import read_document, read_json_content
from .records import compute_record_count_text
from .schema import has_schema_errors, iter_fields, parse_schema, schema_to_json, validate_field_names
from .schema_utils import infer_schema
from .templates import TemplateStore
from .workbench import FileStatus, Workbench

PREVIEW_LIMIT = 20


def file_choices(workbench: Workbench) -> List[Tuple[str, str]]:
    return [(f"{f.name} [{f.status.value}]", f.id) for f in workbench.files]


def file_selector_update(workbench: Workbench):
    return gr.update(choices=file_choices(workbench), value=workbench.active_file_id)


def history_rows(workbench: Workbench) -> List[List[str]]:
    return [[entry.timestamp, entry.file_name, entry.id] for entry in workbench.history]


def history_selector_update(workbench: Workbench):
    choices = [(f"{e.file_name} ({e.timestamp})", e.id) for e in workbench.history]
    return gr.update(choices=choices, value=choices[0][1] if choices else None)


def template_selector_update(store: TemplateStore, value: Optional[str] = None):
    names = [t.name for t in store.list()]
    return gr.update(choices=names, value=value if value in names else None)


def describe_file(workbench: Workbench) -> Tuple[Any, str]:
    """Result payload and status line for the active file."""
    active = workbench.active_file
    if active is None:
        return None, "Select a document from the batch to start."
    if active.status == FileStatus.ERROR:
        return None, f"Extraction error for {active.name}: {active.error}"
    if active.status == FileStatus.COMPLETED:
        return active.extracted_data, f"{active.name}: completed. {compute_record_count_text(active.extracted_data)}"
    return None, f"{active.name}: {active.status.value}."


def _parse_editor_schema(schema_text: str):
    """Parse and name-check the editor schema; returns (fields, error message)."""
    try:
        fields = validate_field_names(parse_schema(schema_text))
    except ExtractorError as exc:
        return None, str(exc)
    if has_schema_errors(fields):
        blank = sum(1 for f in iter_fields(fields) if f.error)
        return fields, f"Fix the schema field names to continue ({blank} field(s) without a name)."
    return fields, ""


def handle_documents_upload(file_objs, workbench: Workbench):
    if not file_objs:
        return workbench, file_selector_update(workbench), "No file uploaded."
    if not isinstance(file_objs, list):
        file_objs = [file_objs]

    added = 0
    for file_obj in file_objs:
        try:
            name, content, mime_type = read_document(file_obj)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read uploaded document: {}", exc)
            continue
        workbench.add_file(name, content, mime_type)
        added += 1
    return workbench, file_selector_update(workbench), f"Added {added} document(s). Batch size: {len(workbench.files)}."


def handle_use_example_file(workbench: Workbench):
    uploaded = workbench.use_example_file()
    return workbench, file_selector_update(workbench), f"Loaded example document {uploaded.name}."


def handle_file_select(file_id: Optional[str], workbench: Workbench):
    try:
        workbench.select_file(file_id)
    except ExtractorError as exc:
        return workbench, None, str(exc)
    data, message = describe_file(workbench)
    return workbench, data, message


def handle_use_example_schema(workbench: Workbench):
    workbench.use_example()
    return workbench, workbench.prompt, schema_to_json(workbench.schema)


def handle_schema_check(schema_text: str):
    fields, error = _parse_editor_schema(schema_text)
    if error:
        return error
    named = sum(1 for f in iter_fields(fields) if f.is_named)
    return f"Schema OK: {named} named field(s)."


def handle_api_key_change(api_key: str, workbench: Workbench):
    if workbench.extractor is None:
        workbench.extractor = GeminiExtractor(api_key=(api_key or "").strip() or None)
    else:
        workbench.extractor.set_api_key(api_key)
    return workbench, "API key set." if workbench.extractor.get_api_key() else "API key cleared."


def _apply_editor(workbench: Workbench, prompt: str, schema_text: str) -> str:
    fields, error = _parse_editor_schema(schema_text)
    if error:
        return error
    workbench.set_schema(fields)
    workbench.prompt = prompt or ""
    return ""


def run_extraction_handler(file_id: Optional[str], prompt: str, schema_text: str, workbench: Workbench):
    error = _apply_editor(workbench, prompt, schema_text)
    if not error:
        try:
            workbench.extract(file_id or None)
        except ExtractorError as exc:
            error = str(exc)

    data, message = describe_file(workbench)
    return (
        workbench,
        data,
        error or message,
        file_selector_update(workbench),
        history_selector_update(workbench),
        history_rows(workbench),
    )


def run_extract_all_handler(prompt: str, schema_text: str, workbench: Workbench):
    error = _apply_editor(workbench, prompt, schema_text)
    if not error:
        processed = workbench.extract_all()
        failed = sum(1 for f in processed if f.status == FileStatus.ERROR)
        message = f"Processed {len(processed)} pending document(s), {failed} failed."
    else:
        message = error

    data, _ = describe_file(workbench)
    return (
        workbench,
        data,
        message,
        file_selector_update(workbench),
        history_selector_update(workbench),
        history_rows(workbench),
    )


def preview_result_handler(file_id: Optional[str], policy: str, workbench: Workbench):
    try:
        uploaded = workbench.get_file(file_id) if file_id else workbench.active_file
    except ExtractorError:
        return None
    if uploaded is None or uploaded.status != FileStatus.COMPLETED:
        return None
    table = flatten_for_export(uploaded.extracted_data, workbench.schema_for_file(uploaded.id), policy)
    if not table.columns:
        return None
    return table.head(PREVIEW_LIMIT).to_dataframe()


def export_result_handler(file_id: Optional[str], output_format: str, workbench: Workbench):
    target = file_id or workbench.active_file_id
    if not target:
        return None, "No document selected."
    try:
        path = workbench.export(target, output_format)
    except ExtractorError as exc:
        return None, str(exc)
    except OSError as exc:
        return None, f"Error during export: {exc}"
    return path, f"Export successful! Saved to {path}"


def export_history_handler(history_id: Optional[str], output_format: str, workbench: Workbench):
    if not history_id:
        return None, "No history entry selected."
    try:
        path = workbench.export_history(history_id, output_format)
    except ExtractorError as exc:
        return None, str(exc)
    except OSError as exc:
        return None, f"Error during export: {exc}"
    return path, f"Export successful! Saved to {path}"


def show_history_entry_handler(history_id: Optional[str], workbench: Workbench):
    if not history_id:
        return None
    try:
        return workbench.get_history_entry(history_id).extracted_data
    except ExtractorError:
        return None


def handle_replay(history_id: Optional[str], workbench: Workbench):
    if not history_id:
        return workbench, gr.update(), gr.update(), file_selector_update(workbench), "No history entry selected."
    try:
        uploaded = workbench.replay(history_id)
    except ExtractorError as exc:
        return workbench, gr.update(), gr.update(), file_selector_update(workbench), str(exc)
    return (
        workbench,
        workbench.prompt,
        schema_to_json(workbench.schema),
        file_selector_update(workbench),
        f"Restored schema and prompt for {uploaded.name}.",
    )


def handle_template_select(template_name: Optional[str], store: TemplateStore, workbench: Workbench):
    if not template_name:
        return workbench, gr.update(), gr.update(), ""
    try:
        template = store.find_by_name(template_name)
    except ExtractorError as exc:
        return workbench, gr.update(), gr.update(), str(exc)
    workbench.apply_template(template)
    return workbench, workbench.prompt, schema_to_json(workbench.schema), f"Applied template {template.name}."


def handle_template_save(name: str, description: str, schema_text: str, prompt: str, store: TemplateStore):
    fields, error = _parse_editor_schema(schema_text)
    if error:
        return store, template_selector_update(store), error
    try:
        template = store.save(name, description, fields, prompt)
    except ExtractorError as exc:
        return store, template_selector_update(store), str(exc)
    return store, template_selector_update(store, template.name), f"Saved template {template.name}."


def handle_template_delete(template_name: Optional[str], store: TemplateStore):
    if not template_name:
        return store, template_selector_update(store), "No template selected."
    try:
        store.delete(store.find_by_name(template_name).id)
    except ExtractorError as exc:
        return store, template_selector_update(store, template_name), str(exc)
    return store, template_selector_update(store), f"Deleted template {template_name}."


def handle_schema_file_upload(file_obj):
    if file_obj is None:
        return gr.update(), "No file uploaded."
    try:
        fields = parse_schema(read_json_content(file_obj))
    except (ValueError, ExtractorError) as exc:
        return gr.update(), f"Error parsing schema: {exc}"
    return schema_to_json(fields), f"Loaded schema with {len(fields)} root field(s)."


def handle_infer_schema(file_id: Optional[str], workbench: Workbench):
    try:
        uploaded = workbench.get_file(file_id) if file_id else workbench.active_file
    except ExtractorError as exc:
        return gr.update(), str(exc)
    if uploaded is None or uploaded.extracted_data is None:
        return gr.update(), "No extracted data to infer a schema from."
    fields = infer_schema(uploaded.extracted_data)
    if not fields:
        return gr.update(), "Extracted data has no object fields."
    return schema_to_json(fields), f"Inferred {len(fields)} root field(s) from {uploaded.name}."
