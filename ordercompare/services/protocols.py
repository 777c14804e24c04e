"""Collaborator interfaces used by the comparison engine."""

from __future__ import annotations

from typing import Protocol

from ordercompare.schemas.common import OrderKind
from ordercompare.schemas.orders import OrderRecord


class Extractor(Protocol):
    def extract(self, document_bytes: bytes, mime_hint: str, order_kind: OrderKind) -> OrderRecord:
        """Turn a raw document into an Order Record; raises ExtractionError."""
        ...


class Summarizer(Protocol):
    def summarize(self, purchase_order: OrderRecord, sales_order: OrderRecord) -> str:
        """Narrative comparison of two orders; raises SummarizationError."""
        ...
