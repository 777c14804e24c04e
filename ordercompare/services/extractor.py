"""Order extraction — LLM turns a document into an Order Record.

The model answers with a strict JSON schema. Header fields come back as a
list of name/value pairs (strict schemas cannot describe free-form maps)
and are folded into the record's header mapping.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ordercompare.errors import ExtractionError, ModelCallError
from ordercompare.schemas.common import OrderKind
from ordercompare.schemas.orders import KNOWN_HEADER_FIELDS, OrderRecord
from ordercompare.services.document_loader import load_document
from ordercompare.services.openai_client import call_openai_structured

logger = structlog.get_logger(__name__)


_NULLABLE_STRING = {"type": ["string", "null"]}
_NULLABLE_NUMBER = {"type": ["number", "null"]}

ORDER_EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "header_fields": {
            "type": "array",
            "description": "Document-level fields (not line items)",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Field name"},
                    "value": {"type": "string", "description": "Value exactly as printed"},
                },
                "required": ["name", "value"],
                "additionalProperties": False,
            },
        },
        "line_items": {
            "type": "array",
            "description": "Ordered products, in document order",
            "items": {
                "type": "object",
                "properties": {
                    "description": {"type": "string", "description": "Product name or description"},
                    "quantity": {**_NULLABLE_STRING, "description": "Quantity as printed"},
                    "unit_price": {**_NULLABLE_STRING, "description": "Unit price as printed"},
                    "total_price": {**_NULLABLE_STRING, "description": "Line total as printed"},
                    "discount": {**_NULLABLE_NUMBER, "description": "Line discount amount"},
                    "tax": {**_NULLABLE_NUMBER, "description": "Line tax amount"},
                },
                "required": ["description", "quantity", "unit_price", "total_price", "discount", "tax"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["header_fields", "line_items"],
    "additionalProperties": False,
}


EXTRACTION_PROMPT = """You are an expert in extracting data from purchase orders and sales orders.

You will be given the content of one {label} (text, spreadsheet rows or page images).

TASK: Extract the document-level fields and every ordered product line.

RULES:
1. Header fields: use these names whenever the document carries the information:
   {field_names}.
   Other clearly labelled document-level fields may be added with a short camelCase name.
2. Copy values exactly as printed (keep currency symbols, separators and units). Do not reformat numbers or dates.
3. Line items: one entry per ordered product, in the order they appear. Quantity, unit price and total price are strings copied as printed, or null when absent.
4. Line discount and tax are numbers when stated for the line, otherwise null.
5. Do not invent values. Omit header fields that are not on the document.

Return your analysis as structured JSON."""


def parse_extraction(raw: dict[str, Any], order_kind: OrderKind) -> OrderRecord:
    """Build an Order Record from the model's JSON answer.

    Raises:
        ExtractionError: when the answer does not fit the Order Record shape.
    """
    header_fields: dict[str, str] = {}
    for entry in raw.get("header_fields") or []:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name") or "").strip()
        value = entry.get("value")
        if not name or value is None:
            continue
        header_fields.setdefault(name, str(value).strip())

    line_items = [item for item in raw.get("line_items") or [] if isinstance(item, dict)]

    try:
        return OrderRecord.model_validate({
            "order_kind": order_kind,
            "header_fields": header_fields,
            "line_items": line_items,
        })
    except PydanticValidationError as exc:
        logger.warning("extraction_invalid", order_kind=order_kind.value, errors=exc.error_count())
        raise ExtractionError(
            order_kind.label, f"the extracted data does not match the order format ({exc.error_count()} errors)"
        ) from exc


class OpenAIExtractor:
    """Extractor backed by an OpenAI chat model."""

    def __init__(self, model: str | None = None):
        self.model = model

    def extract(self, document_bytes: bytes, mime_hint: str, order_kind: OrderKind) -> OrderRecord:
        label = order_kind.label
        loaded = load_document(document_bytes, mime_hint, document=label)

        logger.info(
            "extraction_start",
            order_kind=order_kind.value,
            mime_type=loaded.mime_type,
            chars=len(loaded.text),
            images=len(loaded.images),
        )

        try:
            raw = call_openai_structured(
                system_prompt=EXTRACTION_PROMPT.format(
                    label=label, field_names=", ".join(KNOWN_HEADER_FIELDS)
                ),
                user_content=loaded.content_parts(f"Order type: {label}"),
                schema=ORDER_EXTRACTION_SCHEMA,
                schema_name="order_extraction",
                model=self.model,
            )
        except ModelCallError as exc:
            raise ExtractionError(label, exc.detail or exc.message) from exc

        record = parse_extraction(raw, order_kind)
        logger.info(
            "extraction_complete",
            order_kind=order_kind.value,
            header_fields=len(record.header_fields),
            line_items=len(record.line_items),
        )
        return record
