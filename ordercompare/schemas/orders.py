"""Order Record: the normalised extraction result for one document."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import ConfigDict, Field, field_serializer, field_validator

from ordercompare.schemas.common import CamelModel, OrderKind

# Header field names the extractor is asked to use.
KNOWN_HEADER_FIELDS: tuple[str, ...] = (
    "date",
    "referenceNumber",
    "buyer",
    "seller",
    "totalDiscount",
    "totalTax",
    "grandTotal",
    "currency",
    "paymentTerms",
    "deliveryDate",
)


class ProductLine(CamelModel):
    """One ordered product as it appears on a document."""

    model_config = ConfigDict(frozen=True)

    description: str = Field(..., description="Product name or description")
    quantity: Optional[str] = Field(None, description="Quantity as displayed")
    unit_price: Optional[str] = Field(None, description="Unit price as displayed")
    total_price: Optional[str] = Field(None, description="Line total as displayed")
    discount: Optional[float] = Field(None, description="Line discount, if stated")
    tax: Optional[float] = Field(None, description="Line tax, if stated")

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("description must not be blank")
        return value


class OrderRecord(CamelModel):
    """Structured representation of a purchase order or a sales order.

    Header values are kept as the literal extracted text; numbers are only
    interpreted at comparison time.
    """

    model_config = ConfigDict(frozen=True)

    order_kind: OrderKind
    header_fields: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    line_items: tuple[ProductLine, ...] = Field(default_factory=tuple)

    @field_validator("header_fields")
    @classmethod
    def _read_only_header_fields(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("header_fields")
    def _serialize_header_fields(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)
