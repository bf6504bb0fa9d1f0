"""Order → notification normalization.

Copies only allow-listed fields from a Shopify order payload into a
NotificationRecord. Excluded PII:
- Customer names, emails, phone numbers
- Shipping/billing addresses
- Order numbers and names
- Browser/client IP addresses
- Payment details

Included:
- Order metadata (created_at, currency, test flag)
- Financial totals (prices, tax, discounts)
- Line items (product names, quantities, prices, SKUs, images)
- Shop domain, weight, tags, source name
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from live_notifications.notifications.images import AdminGraphQLClient, resolve_image
from live_notifications.notifications.models import NotificationLineItem, NotificationRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ORDER_FIELDS = (
    "created_at",
    "currency",
    "total_price",
    "subtotal_price",
    "total_tax",
    "total_discounts",
    "total_weight",
    "tags",
    "source_name",
)

LINE_ITEM_FIELDS = (
    "name",
    "title",
    "quantity",
    "price",
    "sku",
    "product_id",
    "variant_id",
    "grams",
    "vendor",
    "requires_shipping",
    "taxable",
    "gift_card",
)


def _pick(source: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: source[name] for name in fields if source.get(name) is not None}


async def _no_image() -> None:
    return None


def _build(model: type[ModelT], values: dict[str, Any]) -> ModelT:
    """Validate values into model, dropping fields that fail validation."""
    try:
        return model(**values)
    except ValidationError as e:
        invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
        # Field names only; values may be customer data
        logger.warning("Dropping invalid %s fields: %s", model.__name__, sorted(map(str, invalid)))
        return model(**{k: v for k, v in values.items() if k not in invalid})


async def normalize(
    order: dict[str, Any],
    shop_domain: str | None = None,
    image_lookup: AdminGraphQLClient | None = None,
) -> NotificationRecord:
    """Build a PII-free NotificationRecord from a Shopify order payload.

    Args:
        order: Parsed orders/create webhook payload
        shop_domain: Shop domain from the webhook context; falls back to
            ``order["shop_domain"]``
        image_lookup: Admin GraphQL client; when None, images are skipped

    Returns:
        NotificationRecord with ``item_count`` equal to the summed quantities

    Fields whose values do not fit the record (a negative quantity,
    fractional grams) are dropped rather than failing the notification.
    """
    raw_items = [item for item in (order.get("line_items") or []) if isinstance(item, dict)]

    # Lookups are independent; gather keeps results in line-item order.
    lookups = [
        resolve_image(item["product_id"], image_lookup)
        if image_lookup is not None and item.get("product_id")
        else _no_image()
        for item in raw_items
    ]
    images = await asyncio.gather(*lookups)

    line_items = [
        _build(NotificationLineItem, {**_pick(item, LINE_ITEM_FIELDS), "image": image})
        for item, image in zip(raw_items, images)
    ]

    notification = _build(
        NotificationRecord,
        {
            **_pick(order, ORDER_FIELDS),
            "item_count": sum(item.quantity for item in line_items),
            "line_items": line_items,
            "shop": shop_domain or order.get("shop_domain") or "",
            "test": bool(order.get("test") or False),
        },
    )

    logger.debug(
        "Normalized order for %s: %d line items, %d units",
        notification.shop,
        len(line_items),
        notification.item_count,
    )
    return notification
