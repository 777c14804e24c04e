"""Narrative summary of the differences between two orders."""

from __future__ import annotations

from typing import Any

import structlog

from ordercompare.errors import ModelCallError, SummarizationError
from ordercompare.schemas.orders import OrderRecord
from ordercompare.services.openai_client import call_openai_structured

logger = structlog.get_logger(__name__)

SUMMARY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "A concise summary of the discrepancies between the two orders",
        },
    },
    "required": ["summary"],
    "additionalProperties": False,
}

SUMMARY_PROMPT = """You are an expert in analysing purchase orders and sales orders.

Compare the purchase order and the sales order provided as JSON and write a concise summary of the discrepancies between them, focusing on products, quantities, prices, discounts and taxes.
If they agree, say so in one sentence. Do not invent data that is not in the orders."""


class OpenAISummarizer:
    """Summarizer backed by an OpenAI chat model."""

    def __init__(self, model: str | None = None):
        self.model = model

    def summarize(self, purchase_order: OrderRecord, sales_order: OrderRecord) -> str:
        user_content = (
            "Purchase Order:\n"
            + purchase_order.model_dump_json(by_alias=True, indent=2)
            + "\n\nSales Order:\n"
            + sales_order.model_dump_json(by_alias=True, indent=2)
        )
        try:
            raw = call_openai_structured(
                system_prompt=SUMMARY_PROMPT,
                user_content=user_content,
                schema=SUMMARY_SCHEMA,
                schema_name="discrepancy_summary",
                model=self.model,
            )
        except ModelCallError as exc:
            raise SummarizationError("The summary could not be generated.", detail=exc.detail) from exc

        summary = raw.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise SummarizationError(
                "The summary could not be generated.", detail=f"invalid summary payload: {raw!r}"[:300]
            )
        logger.info("summary_generated", chars=len(summary))
        return summary.strip()
