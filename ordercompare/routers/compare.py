"""Router: /v1/compare — compare a purchase order with a sales order."""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from ordercompare.dependencies import get_extractor, get_odoo_client, get_summarizer
from ordercompare.reconcile.engine import build_report, compare_documents
from ordercompare.routers.uploads import read_upload
from ordercompare.schemas.comparison import (
    CompareRecordsRequest,
    ComparisonReport,
    OdooCompareRequest,
)
from ordercompare.services.odoo_client import OdooClient
from ordercompare.services.protocols import Extractor, Summarizer

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/compare", tags=["comparison"])


@router.post("", response_model=ComparisonReport)
async def compare_uploads(
    purchase_order: UploadFile = File(..., description="Purchase order: PDF, image, CSV or Excel"),
    sales_order: UploadFile = File(..., description="Sales order: PDF, image, CSV or Excel"),
    extractor: Extractor = Depends(get_extractor),
    summarizer: Optional[Summarizer] = Depends(get_summarizer),
):
    """Extract both uploaded documents and compare them.

    Returns matched header fields, field discrepancies and a per-line
    reconciliation. If the narrative summary fails, a fixed sentence is
    returned in its place.
    """
    po_document = await read_upload(purchase_order, "purchase order")
    so_document = await read_upload(sales_order, "sales order")
    return await run_in_threadpool(
        compare_documents, po_document, so_document, extractor, summarizer
    )


@router.post("/records", response_model=ComparisonReport)
async def compare_records(
    req: CompareRecordsRequest,
    summarizer: Optional[Summarizer] = Depends(get_summarizer),
):
    """Compare two Order Records that were extracted earlier."""
    return await run_in_threadpool(
        build_report,
        req.purchase_order,
        req.sales_order,
        summarizer if req.summarize else None,
    )


@router.post("/odoo", response_model=ComparisonReport)
async def compare_from_odoo(
    req: OdooCompareRequest,
    odoo: OdooClient = Depends(get_odoo_client),
    extractor: Extractor = Depends(get_extractor),
    summarizer: Optional[Summarizer] = Depends(get_summarizer),
):
    """Fetch a sales order and its linked purchase order from Odoo, then compare them."""
    purchase_pdf, sales_pdf = await run_in_threadpool(odoo.fetch_order_pair, req.so_sequence)
    logger.info(
        "odoo_documents_fetched",
        sales_order=sales_pdf.reference,
        purchase_order=purchase_pdf.reference,
    )
    return await run_in_threadpool(
        compare_documents,
        purchase_pdf.as_source(),
        sales_pdf.as_source(),
        extractor,
        summarizer,
    )
