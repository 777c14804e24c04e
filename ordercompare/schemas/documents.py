"""Raw documents handed to the extractor."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SourceDocument(BaseModel):
    """One uploaded or fetched document, before extraction."""
    content: bytes = Field(..., repr=False)
    mime_type: str = Field(..., description="Resolved MIME type")
    filename: Optional[str] = Field(None, description="Original filename, for logs and messages")
