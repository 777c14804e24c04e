"""FastAPI dependencies for the external collaborators (overridable in tests)."""

from __future__ import annotations

from typing import Optional

from ordercompare.config import settings
from ordercompare.services.extractor import OpenAIExtractor
from ordercompare.services.odoo_client import OdooClient
from ordercompare.services.protocols import Extractor, Summarizer
from ordercompare.services.summarizer import OpenAISummarizer


def get_extractor() -> Extractor:
    return OpenAIExtractor()


def get_summarizer() -> Optional[Summarizer]:
    if not settings.summarize_enabled:
        return None
    return OpenAISummarizer()


def get_odoo_client() -> OdooClient:
    return OdooClient.from_settings()
