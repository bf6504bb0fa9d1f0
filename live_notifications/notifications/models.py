"""Notification record models.

The fields declared here are the allow-list: nothing outside them can reach
a published notification. Customer names, emails, phone numbers, addresses,
payment details, order numbers and IP addresses have no field.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationLineItem(BaseModel):
    """A line item stripped down to product data."""

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    name: str | None = None
    title: str | None = None
    quantity: int = Field(default=0, ge=0)
    price: str | None = None
    sku: str | None = None
    product_id: int | None = None
    variant_id: int | None = None
    grams: int | None = None
    vendor: str | None = None
    requires_shipping: bool | None = None
    taxable: bool | None = None
    gift_card: bool | None = None
    image: str | None = None


class NotificationRecord(BaseModel):
    """PII-free order notification, built fresh for each webhook delivery."""

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    created_at: str | None = None
    currency: str | None = None
    total_price: str | None = None
    subtotal_price: str | None = None
    total_tax: str | None = None
    total_discounts: str | None = None
    item_count: int = 0
    line_items: list[NotificationLineItem] = Field(default_factory=list)
    shop: str = ""
    test: bool = False
    total_weight: int | None = None
    tags: str | None = None
    source_name: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; absent optional fields are omitted, not null."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass
class PublishResult:
    """Acknowledgement returned by the Hookdeck Publish API."""

    id: str
    created_at: str
    source_id: str = ""
