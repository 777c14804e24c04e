"""Tests for the Excel report export."""

import io

from openpyxl import load_workbook

from ordercompare.schemas.common import LineStatus, MatchQuality
from ordercompare.schemas.comparison import (
    ComparisonReport,
    Discrepancy,
    MatchedItem,
    ProductLineComparison,
)
from ordercompare.services.excel_export import generate_report_excel


def _report() -> ComparisonReport:
    return ComparisonReport(
        summary="Quantity differs on Widget; Gadget missing from the sales order.",
        matched_items=[MatchedItem(field="buyer", value="ACME", match_quality=MatchQuality.EXACT)],
        discrepancies=[
            Discrepancy(
                field="totalTax",
                purchase_order_value="20",
                sales_order_value="Not present",
                reason="field missing on sales order",
            )
        ],
        product_line_item_comparisons=[
            ProductLineComparison(
                po_product_description="Widget",
                po_quantity="10",
                so_product_description="Widget",
                so_quantity="10",
                status=LineStatus.MATCHED,
                comparison_notes="All details match",
            ),
            ProductLineComparison(
                po_product_description="Gadget",
                po_quantity="1",
                status=LineStatus.PO_ONLY,
                comparison_notes="Present on purchase order only",
            ),
        ],
    )


class TestExcelExport:
    def test_sheets_and_values(self):
        wb = load_workbook(io.BytesIO(generate_report_excel(_report())))
        assert wb.sheetnames == ["Summary", "Matched Fields", "Discrepancies", "Line Items"]

        assert wb["Summary"]["A2"].value.startswith("Quantity differs")
        assert wb["Summary"]["B5"].value == 1

        matched = wb["Matched Fields"]
        assert [c.value for c in matched[2]] == ["buyer", "ACME", "EXACT"]

        discrepancies = wb["Discrepancies"]
        assert discrepancies["C2"].value == "Not present"

        lines = wb["Line Items"]
        assert lines["A1"].value == "PO Description"
        assert lines["I2"].value == "MATCHED"
        assert lines["I3"].value == "PO_ONLY"
        assert lines["E3"].value is None

    def test_non_matched_lines_highlighted(self):
        wb = load_workbook(io.BytesIO(generate_report_excel(_report())))
        lines = wb["Line Items"]
        assert lines["A2"].fill.fill_type is None
        assert lines["A3"].fill.fill_type == "solid"

    def test_empty_report(self):
        report = ComparisonReport(summary="Nothing to compare.")
        wb = load_workbook(io.BytesIO(generate_report_excel(report)))
        assert wb["Line Items"].max_row == 1
