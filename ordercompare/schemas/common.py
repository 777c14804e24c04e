"""Shared schema types used across the application."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OrderKind(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALES = "SALES"

    @property
    def label(self) -> str:
        return "purchase order" if self is OrderKind.PURCHASE else "sales order"


class MatchQuality(str, enum.Enum):
    EXACT = "EXACT"
    FUZZY = "FUZZY"


class LineStatus(str, enum.Enum):
    MATCHED = "MATCHED"
    PARTIAL_MATCH_DETAILS_DIFFER = "PARTIAL_MATCH_DETAILS_DIFFER"
    MISMATCH_QUANTITY = "MISMATCH_QUANTITY"
    MISMATCH_UNIT_PRICE = "MISMATCH_UNIT_PRICE"
    MISMATCH_TOTAL_PRICE = "MISMATCH_TOTAL_PRICE"
    MISMATCH_DESCRIPTION = "MISMATCH_DESCRIPTION"
    PO_ONLY = "PO_ONLY"
    SO_ONLY = "SO_ONLY"


# ---------------------------------------------------------------------------
# Base model
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
