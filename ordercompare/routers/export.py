"""Router: POST /v1/export/excel — download a Comparison Report as .xlsx."""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import Response

from ordercompare.schemas.comparison import ComparisonReport
from ordercompare.services.excel_export import XLSX_MEDIA_TYPE, generate_report_excel

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/export", tags=["export"])


@router.post("/excel")
async def export_excel(report: ComparisonReport):
    """Render the posted report as comparison_report.xlsx."""
    content = generate_report_excel(report)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="comparison_report.xlsx"'},
    )
