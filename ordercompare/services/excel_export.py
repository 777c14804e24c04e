"""Excel export — render a Comparison Report as an .xlsx workbook."""

from __future__ import annotations

import io
from typing import Any, Sequence

import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ordercompare.schemas.common import LineStatus
from ordercompare.schemas.comparison import ComparisonReport

logger = structlog.get_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Column definitions: (header_name, field_name, width)
MATCHED_COLUMNS = [
    ("Field", "field", 28),
    ("Value", "value", 40),
    ("Match Quality", "match_quality", 16),
]

DISCREPANCY_COLUMNS = [
    ("Field", "field", 28),
    ("Purchase Order Value", "purchase_order_value", 30),
    ("Sales Order Value", "sales_order_value", 30),
    ("Reason", "reason", 50),
]

LINE_COLUMNS = [
    ("PO Description", "po_product_description", 36),
    ("PO Quantity", "po_quantity", 12),
    ("PO Unit Price", "po_unit_price", 14),
    ("PO Total Price", "po_total_price", 14),
    ("SO Description", "so_product_description", 36),
    ("SO Quantity", "so_quantity", 12),
    ("SO Unit Price", "so_unit_price", 14),
    ("SO Total Price", "so_total_price", 14),
    ("Status", "status", 30),
    ("Notes", "comparison_notes", 60),
]

_ATTENTION_FILL = PatternFill(start_color="FDE2E1", end_color="FDE2E1", fill_type="solid")


def _write_table(
    ws: Worksheet,
    columns: Sequence[tuple[str, str, int]],
    rows: Sequence[Any],
) -> None:
    # --- Header row ---
    header_font = Font(bold=True, size=11)
    for col_idx, (header, _field, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    # --- Data rows ---
    for row_idx, row in enumerate(rows, start=2):
        row_dict = row.model_dump()
        for col_idx, (_header, field, _width) in enumerate(columns, start=1):
            value = row_dict.get(field)
            # Convert enums to their string value
            if hasattr(value, "value"):
                value = value.value
            ws.cell(row=row_idx, column=col_idx, value=value)

    ws.freeze_panes = "A2"


def generate_report_excel(report: ComparisonReport) -> bytes:
    """Build an .xlsx workbook for a Comparison Report.

    Sheets: Summary, Matched Fields, Discrepancies, Line Items. Line items
    that are not MATCHED are highlighted.
    """
    wb = Workbook()

    summary_ws = wb.active
    summary_ws.title = "Summary"
    summary_ws["A1"] = "Summary"
    summary_ws["A1"].font = Font(bold=True, size=13)
    summary_ws["A2"] = report.summary
    summary_ws["A2"].alignment = Alignment(wrap_text=True, vertical="top")
    summary_ws.column_dimensions["A"].width = 100
    summary_ws["A4"] = "Matched fields"
    summary_ws["B4"] = len(report.matched_items)
    summary_ws["A5"] = "Discrepancies"
    summary_ws["B5"] = len(report.discrepancies)
    summary_ws["A6"] = "Product lines"
    summary_ws["B6"] = len(report.product_line_item_comparisons)

    _write_table(wb.create_sheet("Matched Fields"), MATCHED_COLUMNS, report.matched_items)
    _write_table(wb.create_sheet("Discrepancies"), DISCREPANCY_COLUMNS, report.discrepancies)

    lines_ws = wb.create_sheet("Line Items")
    _write_table(lines_ws, LINE_COLUMNS, report.product_line_item_comparisons)
    for row_idx, line in enumerate(report.product_line_item_comparisons, start=2):
        if line.status is not LineStatus.MATCHED:
            for col_idx in range(1, len(LINE_COLUMNS) + 1):
                lines_ws.cell(row=row_idx, column=col_idx).fill = _ATTENTION_FILL

    buffer = io.BytesIO()
    wb.save(buffer)

    logger.info(
        "excel_generated",
        matched=len(report.matched_items),
        discrepancies=len(report.discrepancies),
        lines=len(report.product_line_item_comparisons),
    )
    return buffer.getvalue()
