"""Router: POST /v1/extract — turn one document into an Order Record."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from ordercompare.dependencies import get_extractor
from ordercompare.routers.uploads import read_upload
from ordercompare.schemas.common import OrderKind
from ordercompare.schemas.orders import OrderRecord
from ordercompare.services.protocols import Extractor

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["extraction"])


@router.post("/extract", response_model=OrderRecord)
async def extract_order(
    file: UploadFile = File(...),
    order_kind: OrderKind = Query(..., description="PURCHASE or SALES"),
    extractor: Extractor = Depends(get_extractor),
):
    """Extract header fields and product lines from a PDF, image or spreadsheet."""
    document = await read_upload(file, order_kind.label)
    logger.info(
        "extract_requested",
        filename=document.filename,
        mime_type=document.mime_type,
        size_bytes=len(document.content),
        order_kind=order_kind.value,
    )
    return await run_in_threadpool(
        extractor.extract, document.content, document.mime_type, order_kind
    )
