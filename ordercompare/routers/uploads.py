"""Upload helpers shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, UploadFile

from ordercompare.config import settings
from ordercompare.schemas.documents import SourceDocument
from ordercompare.services.document_loader import resolve_mime_type


async def read_upload(file: UploadFile, label: str) -> SourceDocument:
    """Read an uploaded file into a SourceDocument, rejecting empty or oversized files."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail=f"The {label} file is empty")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"The {label} file exceeds {settings.max_upload_bytes // (1024 * 1024)} MB",
        )
    return SourceDocument(
        content=content,
        mime_type=resolve_mime_type(file.content_type, file.filename),
        filename=file.filename,
    )
