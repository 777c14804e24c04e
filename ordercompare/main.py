"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordercompare.errors import (
    ExtractionError,
    OdooError,
    OrderCompareError,
    UnsupportedDocumentError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=logging.INFO,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Order Comparator API",
    description=(
        "Compares a purchase order with a sales order. Documents (PDF, image, CSV, Excel) "
        "are extracted by an LLM into order records, then reconciled: matched header fields, "
        "field discrepancies and a per-product-line classification."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS: allow all origins in development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

# Most specific class first
ERROR_STATUS_CODES: list[tuple[type[OrderCompareError], int]] = [
    (UnsupportedDocumentError, 415),
    (ExtractionError, 422),
    (ValidationError, 422),
    (OdooError, 502),
]


def status_code_for(exc: OrderCompareError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(OrderCompareError)
async def order_compare_error_handler(request: Request, exc: OrderCompareError):
    """Return one sanitised message; keep the full detail in the logs."""
    status_code = status_code_for(exc)
    logger.error(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
        message=exc.message,
        detail=exc.detail,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.user_message})


# ---------------------------------------------------------------------------
# Mount routers
# ---------------------------------------------------------------------------

from ordercompare.routers.compare import router as compare_router
from ordercompare.routers.export import router as export_router
from ordercompare.routers.extract import router as extract_router

app.include_router(extract_router)
app.include_router(compare_router)
app.include_router(export_router)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["system"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Order Comparator API",
        "version": "1.0.0",
    }


@app.get("/", tags=["system"])
async def root():
    return {
        "message": "Order Comparator API",
        "docs": "/docs",
        "health": "/health",
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    from ordercompare.config import settings

    uvicorn.run("ordercompare.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
