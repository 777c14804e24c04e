"""Comparison engine — assembles the report for a purchase order / sales order pair."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import structlog

from ordercompare.errors import SummarizationError, ValidationError
from ordercompare.reconcile.fields import match_fields
from ordercompare.reconcile.lines import reconcile_lines
from ordercompare.schemas.common import OrderKind
from ordercompare.schemas.comparison import ComparisonReport
from ordercompare.schemas.documents import SourceDocument
from ordercompare.schemas.orders import OrderRecord
from ordercompare.services.protocols import Extractor, Summarizer

logger = structlog.get_logger(__name__)

FALLBACK_SUMMARY = (
    "A narrative summary could not be generated. "
    "See the structured comparison below."
)


def _require_record(record: Optional[OrderRecord], kind: OrderKind) -> OrderRecord:
    if record is None:
        raise ValidationError(f"The {kind.label} could not be read; no comparison was made.")
    if not isinstance(record, OrderRecord):
        raise ValidationError(f"The {kind.label} is not a valid order record.")
    if record.order_kind is not kind:
        raise ValidationError(
            f"Expected a {kind.label} but received a {record.order_kind.label}."
        )
    return record


def _summarize(
    summarizer: Summarizer,
    purchase_order: OrderRecord,
    sales_order: OrderRecord,
) -> str:
    """Ask the summarizer for a narrative, falling back to a fixed sentence."""
    try:
        summary = summarizer.summarize(purchase_order, sales_order)
    except SummarizationError as exc:
        logger.warning("summary_fallback", reason="summarizer_failed", error=exc.detail or str(exc))
        return FALLBACK_SUMMARY
    except Exception as exc:
        logger.exception("summary_fallback", reason="summarizer_crashed", error=str(exc))
        return FALLBACK_SUMMARY

    if not isinstance(summary, str) or not summary.strip():
        logger.warning("summary_fallback", reason="invalid_payload", payload_type=type(summary).__name__)
        return FALLBACK_SUMMARY
    return summary.strip()


def build_report(
    purchase_order: Optional[OrderRecord],
    sales_order: Optional[OrderRecord],
    summarizer: Optional[Summarizer] = None,
) -> ComparisonReport:
    """Compare two Order Records and assemble the Comparison Report.

    Header fields, product lines and the narrative summary are produced
    concurrently; only the summary may fail, in which case FALLBACK_SUMMARY
    is used and the structured comparison is still returned.

    Raises:
        ValidationError: if either record is missing or of the wrong kind.
    """
    purchase_order = _require_record(purchase_order, OrderKind.PURCHASE)
    sales_order = _require_record(sales_order, OrderKind.SALES)

    logger.info(
        "compare_start",
        po_fields=len(purchase_order.header_fields),
        so_fields=len(sales_order.header_fields),
        po_lines=len(purchase_order.line_items),
        so_lines=len(sales_order.line_items),
        summarize=summarizer is not None,
    )

    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="compare") as pool:
        fields_future = pool.submit(match_fields, purchase_order, sales_order)
        lines_future = pool.submit(
            reconcile_lines, purchase_order.line_items, sales_order.line_items
        )
        summary_future = (
            pool.submit(_summarize, summarizer, purchase_order, sales_order)
            if summarizer is not None
            else None
        )

        matched_items, discrepancies = fields_future.result()
        line_comparisons = lines_future.result()
        summary = summary_future.result() if summary_future is not None else FALLBACK_SUMMARY

    report = ComparisonReport(
        summary=summary,
        matched_items=matched_items,
        discrepancies=discrepancies,
        product_line_item_comparisons=line_comparisons,
    )

    logger.info(
        "compare_complete",
        matched=len(report.matched_items),
        discrepancies=len(report.discrepancies),
        lines=len(report.product_line_item_comparisons),
    )
    return report


def extract_orders(
    purchase_document: SourceDocument,
    sales_document: SourceDocument,
    extractor: Extractor,
) -> tuple[OrderRecord, OrderRecord]:
    """Extract both documents concurrently.

    An ExtractionError for either document aborts the request; the purchase
    order's error is reported first when both fail.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="extract") as pool:
        po_future = pool.submit(
            extractor.extract,
            purchase_document.content,
            purchase_document.mime_type,
            OrderKind.PURCHASE,
        )
        so_future = pool.submit(
            extractor.extract,
            sales_document.content,
            sales_document.mime_type,
            OrderKind.SALES,
        )
        purchase_order = po_future.result()
        sales_order = so_future.result()
    return purchase_order, sales_order


def compare_documents(
    purchase_document: SourceDocument,
    sales_document: SourceDocument,
    extractor: Extractor,
    summarizer: Optional[Summarizer] = None,
) -> ComparisonReport:
    """Full flow: raw documents -> Order Records -> Comparison Report."""
    log = logger.bind(
        purchase_document=purchase_document.filename,
        sales_document=sales_document.filename,
    )
    log.info("documents_received")
    purchase_order, sales_order = extract_orders(purchase_document, sales_document, extractor)
    log.info("documents_extracted")
    return build_report(purchase_order, sales_order, summarizer)
