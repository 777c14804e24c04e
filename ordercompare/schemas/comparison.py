"""Schemas for the comparison report and the comparison endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from ordercompare.schemas.common import CamelModel, LineStatus, MatchQuality
from ordercompare.schemas.orders import OrderRecord


class MatchedItem(CamelModel):
    """A header field that agrees on both documents."""
    field: str
    value: str
    match_quality: MatchQuality


class Discrepancy(CamelModel):
    """A header field that differs, or is present on one document only."""
    field: str
    purchase_order_value: str
    sales_order_value: str
    reason: str


class ProductLineComparison(CamelModel):
    """Reconciliation of one product line across the two documents."""
    po_product_description: Optional[str] = None
    po_quantity: Optional[str] = None
    po_unit_price: Optional[str] = None
    po_total_price: Optional[str] = None
    so_product_description: Optional[str] = None
    so_quantity: Optional[str] = None
    so_unit_price: Optional[str] = None
    so_total_price: Optional[str] = None
    status: LineStatus
    comparison_notes: str


class ComparisonReport(CamelModel):
    summary: str
    matched_items: list[MatchedItem] = Field(default_factory=list)
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    product_line_item_comparisons: list[ProductLineComparison] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class CompareRecordsRequest(CamelModel):
    """Compare two already-extracted Order Records."""
    purchase_order: OrderRecord
    sales_order: OrderRecord
    summarize: bool = Field(default=False, description="Also request a narrative summary")


class OdooCompareRequest(CamelModel):
    """Compare a sales order in Odoo with its linked purchase order."""
    so_sequence: str = Field(..., min_length=1, description="Sales order name, e.g. 'SO - 10372'")
