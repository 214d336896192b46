"""
Excel export for a parsed HQMF document.
Generates a workbook with Overview, Data Criteria, Field Values, Occurrences
and Diagnostics tabs.
"""

import logging
from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.utils import get_column_letter

from ..metadata.serialisers import (
    CRITERIA_COLUMNS,
    FIELD_VALUE_COLUMNS,
    OCCURRENCE_COLUMNS,
    serialise_criteria_rows,
    serialise_field_value_rows,
    serialise_occurrence_rows,
)
from ..parsing.pipeline import HQMFDocument

logger = logging.getLogger(__name__)

# Styling constants
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
ALT_ROW_FILL = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
VARIABLE_FILL = PatternFill(start_color="E7F1FF", end_color="E7F1FF", fill_type="solid")
CENTRE_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT_ALIGNMENT = Alignment(horizontal="left", vertical="top", wrap_text=True)

DIAGNOSTIC_COLUMNS = ["Criterion ID", "Message", "Reference ID"]


def _apply_header_style(ws, row_num: int):
    """Apply header styling to a row."""
    for cell in ws[row_num]:
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = CENTRE_ALIGNMENT


def _auto_size_columns(ws, max_width: int = 60):
    """Auto-size columns based on content with max width limit."""
    for column in ws.columns:
        column_letter = get_column_letter(column[0].column)
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        ws.column_dimensions[column_letter].width = min(max_length + 2, max_width)


def _write_table(ws, columns: List[str], rows: List[Dict[str, Any]], highlight_column: str = None):
    ws.append(columns)
    _apply_header_style(ws, 1)

    for row_idx, row in enumerate(rows, start=2):
        ws.append([row.get(column, "") for column in columns])
        if highlight_column and row.get(highlight_column):
            fill = VARIABLE_FILL
        elif row_idx % 2 == 1:
            fill = ALT_ROW_FILL
        else:
            fill = None
        for cell in ws[row_idx]:
            cell.alignment = LEFT_ALIGNMENT
            if fill is not None:
                cell.fill = fill

    _auto_size_columns(ws)
    ws.freeze_panes = "A2"


def _generate_overview_tab(wb: Workbook, document: HQMFDocument) -> None:
    """Generate the Overview tab with measure metadata and extraction counts."""
    ws = wb.create_sheet("Overview", 0)
    ws.append(["Field", "Value"])
    _apply_header_style(ws, 1)

    metadata = document.metadata
    period = metadata.measure_period
    period_text = ""
    if period is not None and period.low is not None and period.high is not None:
        period_text = f"{period.low.value} - {period.high.value}"

    overview_rows = [
        ("Measure ID", metadata.id),
        ("Set ID", metadata.set_id or ""),
        ("Version", metadata.version_number),
        ("CMS ID", metadata.cms_id or ""),
        ("Title", metadata.title or ""),
        ("Source File", metadata.source_name or ""),
        ("Measure Period", period_text),
    ]
    for key, count in document.result.summary().items():
        overview_rows.append((f"Count: {key.replace('_', ' ').title()}", count))

    for label, value in overview_rows:
        ws.append([label, value])
        ws.cell(row=ws.max_row, column=1).font = Font(bold=True)

    _auto_size_columns(ws)
    ws.freeze_panes = "A2"


def generate_criteria_excel(document: HQMFDocument) -> bytes:
    """
    Generate complete Excel workbook for a parsed document.

    Returns bytes of the Excel file ready for download.
    """
    wb = Workbook()

    # Remove default sheet
    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]

    _generate_overview_tab(wb, document)
    _write_table(
        wb.create_sheet("Data Criteria"),
        CRITERIA_COLUMNS,
        serialise_criteria_rows(document.data_criteria),
        highlight_column="Variable",
    )
    _write_table(wb.create_sheet("Field Values"), FIELD_VALUE_COLUMNS, serialise_field_value_rows(document.data_criteria))
    _write_table(wb.create_sheet("Occurrences"), OCCURRENCE_COLUMNS, serialise_occurrence_rows(document.result))
    _write_table(
        wb.create_sheet("Diagnostics"),
        DIAGNOSTIC_COLUMNS,
        [
            {"Criterion ID": d.criterion_id, "Message": d.message, "Reference ID": d.reference_id or ""}
            for d in document.diagnostics
        ],
    )

    output = BytesIO()
    wb.save(output)
    output.seek(0)

    logger.info(f"Generated Excel export for {document.metadata.id}: {len(document.data_criteria)} data criteria")
    return output.getvalue()
