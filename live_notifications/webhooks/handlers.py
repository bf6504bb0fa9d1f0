"""Webhook HTTP handlers — FastAPI route handlers for orders/create deliveries.

Each delivery moves through:

    RECEIVED -> AUTHENTICATED -> NORMALIZED -> PUBLISHED
    RECEIVED -> AUTH_FAILED                      (401)
    AUTHENTICATED -> PUBLISH_FAILED              (502/500, gateway redelivers)
    AUTHENTICATED -> SKIPPED                     (200, nothing to publish)

Security contract:
- Never return error details to webhook caller (info disclosure)
- Return 401 only for signature failures
- Never log order payloads (they carry customer PII)
- Log one audit line per delivery
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from enum import Enum

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from live_notifications.config import Settings
from live_notifications.errors import AuthenticationError, PublishError
from live_notifications.notifications.images import AdminGraphQLClient, is_shop_domain
from live_notifications.notifications.publisher import HookdeckPublisher, publish_order_notification
from live_notifications.webhooks.idempotency import DeliveryLedger
from live_notifications.webhooks.verification import authenticate

logger = logging.getLogger(__name__)

ORDERS_CREATE = "orders/create"


class WebhookState(str, Enum):
    """Lifecycle of one webhook delivery."""

    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    AUTH_FAILED = "auth_failed"
    NORMALIZED = "normalized"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"
    SKIPPED = "skipped"


@dataclass
class WebhookDelivery:
    """Request-scoped record of a single delivery."""

    topic: str
    shop: str
    webhook_id: str
    state: WebhookState = WebhookState.RECEIVED
    event_id: str = ""
    reason: str = ""

    def advance(self, state: WebhookState, reason: str = "") -> None:
        logger.debug("Webhook %s: %s -> %s", self.webhook_id, self.state.value, state.value)
        self.state = state
        self.reason = reason


def _audit(delivery: WebhookDelivery, started: float) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT topic=%s shop=%s id=%s state=%s reason=%s event=%s elapsed_ms=%.1f",
        delivery.topic or "unknown",
        delivery.shop or "unknown",
        delivery.webhook_id or "unknown",
        delivery.state.value,
        delivery.reason or "-",
        delivery.event_id or "-",
        (time.time() - started) * 1000,
    )


def _image_lookup(request: Request, shop: str) -> AdminGraphQLClient | None:
    """Admin client for image enrichment, or None when no admin access exists.

    The shop header is not covered by the signature, so the access token is
    only sent to a myshopify.com host matching the configured shop.
    """
    settings: Settings = request.app.state.settings
    if not shop or not settings.shopify_admin_access_token:
        return None
    if not is_shop_domain(shop):
        logger.warning("Skipping image enrichment for non-Shopify shop domain")
        return None
    expected = settings.shopify_shop_domain.lower().strip()
    if expected and shop.lower().strip() != expected:
        logger.warning("Skipping image enrichment for unexpected shop %s", shop)
        return None
    return AdminGraphQLClient(
        shop,
        settings.shopify_admin_access_token,
        request.app.state.http_client,
        api_version=settings.shopify_api_version,
        timeout=settings.http_timeout_seconds,
    )


async def handle_order_webhook(request: Request, default_topic: str = "") -> Response:
    """Verify, normalize and publish one orders/create delivery.

    Returns 200 (empty) when published or deliberately skipped, 401 on a bad
    signature, 502 when the publish failed and 500 on unexpected errors.
    Non-2xx responses make the gateway redeliver.
    """
    started = time.time()
    settings: Settings = request.app.state.settings
    publisher: HookdeckPublisher = request.app.state.publisher
    ledger: DeliveryLedger = request.app.state.ledger

    # Raw body is needed for HMAC verification
    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}

    delivery = WebhookDelivery(
        topic=headers.get("x-shopify-topic") or default_topic,
        shop=headers.get("x-shopify-shop-domain", ""),
        webhook_id=headers.get("x-shopify-webhook-id", ""),
    )

    # 1. Verify signature
    try:
        authenticate(body, headers, settings.shopify_api_secret)
    except AuthenticationError:
        delivery.advance(WebhookState.AUTH_FAILED)
        _audit(delivery, started)
        return JSONResponse({"status": "unauthorized"}, status_code=401)
    delivery.advance(WebhookState.AUTHENTICATED)

    # 2. Only orders/create produces notifications
    if delivery.topic != ORDERS_CREATE:
        delivery.advance(WebhookState.SKIPPED, "unsupported_topic")
        _audit(delivery, started)
        return Response(status_code=200)

    # 3. Parse JSON payload; redelivering a malformed body would not help
    try:
        order = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        order = None
    if not isinstance(order, dict):
        delivery.advance(WebhookState.SKIPPED, "invalid_json")
        _audit(delivery, started)
        return Response(status_code=200)

    # 4. Skip deliveries already published
    if await ledger.already_published(delivery.webhook_id):
        delivery.advance(WebhookState.SKIPPED, "duplicate")
        _audit(delivery, started)
        return Response(status_code=200)

    # 5. Normalize and publish
    try:
        result = await publish_order_notification(
            publisher,
            order,
            delivery.shop,
            _image_lookup(request, delivery.shop),
            source_name=settings.notifications_source_name,
        )
    except PublishError as e:
        delivery.advance(WebhookState.PUBLISH_FAILED, f"http_{e.status_code or 'none'}")
        _audit(delivery, started)
        return JSONResponse({"status": "error"}, status_code=502)
    except Exception:
        logger.exception("Failed to process webhook %s", delivery.webhook_id)
        delivery.advance(WebhookState.PUBLISH_FAILED, "internal_error")
        _audit(delivery, started)
        return JSONResponse({"status": "error"}, status_code=500)

    delivery.advance(WebhookState.NORMALIZED)
    delivery.event_id = result.id
    await ledger.mark_published(delivery.webhook_id)
    delivery.advance(WebhookState.PUBLISHED)
    _audit(delivery, started)
    return Response(status_code=200)


def register_webhook_routes(app: FastAPI) -> None:
    """Register webhook endpoint routes on the FastAPI app."""

    @app.post("/webhooks/orders/create")
    async def orders_create_webhook(request: Request):
        """Receive orders/create deliveries (signature-verified)."""
        return await handle_order_webhook(request, default_topic=ORDERS_CREATE)

    @app.post("/webhooks/shopify")
    async def shopify_webhook(request: Request):
        """Receive Shopify deliveries; topic comes from X-Shopify-Topic."""
        return await handle_order_webhook(request)

    logger.info("Webhook routes registered: /webhooks/{orders/create,shopify}")
