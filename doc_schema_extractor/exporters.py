"""Byte encoders for CSV, Excel, PDF and JSON exports.

The tabular formats share ``flatten_for_export`` and only differ in how the
resulting FlatTable is written out. JSON bypasses the flattener.
"""
from __future__ import annotations

import csv
import io
import json
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
from xml.sax.saxutils import escape

import pandas as pd
from loguru import logger
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .config import settings
from .errors import UnknownExportFormatError
from .flattening import FlatTable, FlattenPolicy, flatten_for_export
from .paths import export_file_name
from .schema import SchemaField

SHEET_NAME = "Datos Extraidos"
HEADER_FILL = "4472C4"
DEFAULT_TITLE = "Datos Extraidos"


def table_to_csv(table: FlatTable, title: Optional[str] = None) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(table.columns)
    writer.writerows(table.as_lists())
    # BOM so Excel opens the file as UTF-8.
    return buffer.getvalue().encode("utf-8-sig")


def _worksheet_text(text: str) -> str:
    # openpyxl refuses ASCII control characters other than tab and newlines.
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def table_to_excel(table: FlatTable, title: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame = pd.DataFrame(
            [[_worksheet_text(v) for v in row] for row in table.as_lists()],
            columns=[_worksheet_text(c) for c in table.columns],
        )
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(fill_type="solid", fgColor=HEADER_FILL)
        for cell in sheet[1]:
            cell.font = header_font
            cell.fill = header_fill

        wrap = Alignment(wrap_text=True, vertical="top")
        for row in sheet.iter_rows(min_row=2):
            for cell in row:
                cell.alignment = wrap
                # Extracted text is data; a leading "=" must not become a formula.
                if cell.data_type == "f":
                    cell.data_type = "s"

        for idx, column in enumerate(table.columns, start=1):
            longest = max([len(column)] + [len(line) for row in table.rows for line in row.get(column, "").split("\n")])
            sheet.column_dimensions[get_column_letter(idx)].width = min(60, longest + 2)
    return buffer.getvalue()


def table_to_pdf(table: FlatTable, title: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    title = title or DEFAULT_TITLE
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=36,
        rightMargin=36,
        topMargin=36,
        bottomMargin=36,
        title=title,
    )
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle("Cell", parent=styles["BodyText"], fontSize=7, leading=9)
    header_style = ParagraphStyle("HeaderCell", parent=cell_style, fontName="Helvetica-Bold", textColor=colors.white)

    elems: List[Any] = [Paragraph(escape(title), styles["Heading2"]), Spacer(1, 8)]
    if not table.columns:
        elems.append(Paragraph("No data extracted.", styles["BodyText"]))
    else:
        def cell(text: str, style: ParagraphStyle) -> Paragraph:
            return Paragraph(escape(text).replace("\n", "<br/>"), style)

        data = [[cell(c, header_style) for c in table.columns]]
        data.extend([cell(v, cell_style) for v in row] for row in table.as_lists())
        col_width = doc.width / len(table.columns)
        grid = Table(data, colWidths=[col_width] * len(table.columns), repeatRows=1)
        grid.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{HEADER_FILL}")),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F2")]),
        ]))
        elems.append(grid)

    doc.build(elems)
    return buffer.getvalue()


def data_to_json(data: Any) -> bytes:
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class ExportFormat:
    name: str
    extension: str
    encoder: Optional[Callable[[FlatTable, Optional[str]], bytes]]
    policy_setting: Optional[str] = None

    @property
    def tabular(self) -> bool:
        return self.encoder is not None

    def default_policy(self) -> Optional[str]:
        return getattr(settings, self.policy_setting) if self.policy_setting else None


EXPORT_FORMATS: Dict[str, ExportFormat] = {
    "CSV": ExportFormat("CSV", ".csv", table_to_csv, "csv_policy"),
    "Excel": ExportFormat("Excel", ".xlsx", table_to_excel, "excel_policy"),
    "PDF": ExportFormat("PDF", ".pdf", table_to_pdf, "pdf_policy"),
    "JSON": ExportFormat("JSON", ".json", None),
}


def get_export_format(name: str) -> ExportFormat:
    for key, fmt in EXPORT_FORMATS.items():
        if key.lower() == (name or "").strip().lower():
            return fmt
    raise UnknownExportFormatError(f"Unknown export format: {name!r}")


def export_bytes(
    data: Any,
    fmt: str,
    schema: Optional[List[SchemaField]] = None,
    policy: Union[str, FlattenPolicy, None] = None,
    title: Optional[str] = None,
) -> bytes:
    export_format = get_export_format(fmt)
    if not export_format.tabular:
        return data_to_json(data)
    table = flatten_for_export(data, schema, policy or export_format.default_policy())
    return export_format.encoder(table, title)


def write_export(
    data: Any,
    fmt: str,
    original_name: Optional[str],
    schema: Optional[List[SchemaField]] = None,
    directory: Optional[str] = None,
    policy: Union[str, FlattenPolicy, None] = None,
) -> str:
    """Encode ``data`` and write it next to other exports; returns the path."""
    export_format = get_export_format(fmt)
    file_name = export_file_name(original_name, export_format.extension)
    payload = export_bytes(data, export_format.name, schema=schema, policy=policy, title=original_name)

    directory = directory or settings.export_dir
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, file_name)
    with open(path, 'wb') as f:
        f.write(payload)

    logger.info("Exported {} ({} bytes) to {}", export_format.name, len(payload), path)
    return path
