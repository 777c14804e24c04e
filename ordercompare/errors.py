"""Domain errors raised by the order comparison service."""

from __future__ import annotations

MAX_MESSAGE_CHARS = 500


def sanitize_message(message: str, limit: int = MAX_MESSAGE_CHARS) -> str:
    """Make a message safe to return to a caller.

    Drops non-printable characters, collapses whitespace and truncates.
    """
    printable = "".join(ch if ch.isprintable() else " " for ch in message)
    cleaned = " ".join(printable.split())
    if len(cleaned) > limit:
        cleaned = cleaned[: limit - 3].rstrip() + "..."
    return cleaned


class OrderCompareError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def user_message(self) -> str:
        return sanitize_message(self.message)


class ExtractionError(OrderCompareError):
    """A document could not be turned into an Order Record."""

    def __init__(self, document: str, detail: str):
        excerpt = sanitize_message(detail, limit=200)
        super().__init__(f"Could not extract the {document}: {excerpt}", detail=detail)
        self.document = document


class UnsupportedDocumentError(ExtractionError):
    """The uploaded file type is not accepted."""


class ValidationError(OrderCompareError):
    """An Order Record is missing or structurally malformed."""


class SummarizationError(OrderCompareError):
    """The narrative summary could not be produced (non-fatal)."""


class ModelCallError(OrderCompareError):
    """The language model call failed or returned unusable output."""


class OdooError(OrderCompareError):
    """Fetching documents from the Odoo ERP failed."""
