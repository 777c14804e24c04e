"""Field matcher — compares header fields of a purchase order and a sales order."""

from __future__ import annotations

from typing import Mapping, Optional

import structlog

from ordercompare.config import settings
from ordercompare.reconcile.normalizer import (
    compare_values,
    describe_difference,
    normalize_field_name,
)
from ordercompare.schemas.common import MatchQuality
from ordercompare.schemas.comparison import Discrepancy, MatchedItem
from ordercompare.schemas.orders import OrderRecord

logger = structlog.get_logger(__name__)

NOT_PRESENT = "Not present"


def _index_fields(fields: Mapping[str, str], side: str) -> dict[str, tuple[str, str]]:
    """Map normalized field name -> (label as written, value), keeping document order."""
    indexed: dict[str, tuple[str, str]] = {}
    for label, value in fields.items():
        key = normalize_field_name(label)
        if key in indexed:
            logger.warning("duplicate_header_field", side=side, field=label, kept=indexed[key][0])
            continue
        indexed[key] = (label, value if value is not None else "")
    return indexed


def _present(value: str) -> Optional[str]:
    return value if value.strip() else None


def match_fields(
    purchase_order: OrderRecord,
    sales_order: OrderRecord,
    tolerance: float | None = None,
) -> tuple[list[MatchedItem], list[Discrepancy]]:
    """Compare the header fields of two orders.

    Every field name present in either record lands in exactly one of the
    two returned lists. Names are matched case- and whitespace-insensitively;
    the purchase order's spelling is used when both sides carry the field.
    """
    if tolerance is None:
        tolerance = settings.numeric_relative_tolerance

    po_fields = _index_fields(purchase_order.header_fields, "purchase_order")
    so_fields = _index_fields(sales_order.header_fields, "sales_order")
    keys = list(po_fields) + [k for k in so_fields if k not in po_fields]

    matched: list[MatchedItem] = []
    discrepancies: list[Discrepancy] = []

    for key in keys:
        po_entry = po_fields.get(key)
        so_entry = so_fields.get(key)
        label = po_entry[0] if po_entry else so_entry[0]
        po_value = _present(po_entry[1]) if po_entry else None
        so_value = _present(so_entry[1]) if so_entry else None

        if po_value is None and so_value is None:
            if po_entry and so_entry:
                # present but blank on both documents
                matched.append(MatchedItem(field=label, value="", match_quality=MatchQuality.EXACT))
            else:
                blank_side = "purchase order" if po_entry else "sales order"
                missing_side = "sales order" if po_entry else "purchase order"
                discrepancies.append(Discrepancy(
                    field=label,
                    purchase_order_value=NOT_PRESENT,
                    sales_order_value=NOT_PRESENT,
                    reason=f"value blank on {blank_side}, field missing on {missing_side}",
                ))
            continue

        if so_value is None:
            discrepancies.append(Discrepancy(
                field=label,
                purchase_order_value=po_value,
                sales_order_value=NOT_PRESENT,
                reason="field missing on sales order",
            ))
            continue
        if po_value is None:
            discrepancies.append(Discrepancy(
                field=label,
                purchase_order_value=NOT_PRESENT,
                sales_order_value=so_value,
                reason="field missing on purchase order",
            ))
            continue

        quality = compare_values(po_value, so_value, tolerance)
        if quality is not None:
            matched.append(MatchedItem(field=label, value=po_value, match_quality=quality))
        else:
            discrepancies.append(Discrepancy(
                field=label,
                purchase_order_value=po_value,
                sales_order_value=so_value,
                reason=describe_difference(po_value, so_value, tolerance),
            ))

    logger.info(
        "fields_matched",
        fields=len(keys),
        matched=len(matched),
        discrepancies=len(discrepancies),
    )
    return matched, discrepancies
