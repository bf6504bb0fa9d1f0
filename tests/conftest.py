"""Shared fixtures for the live notifications test suite."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from live_notifications.app import create_app
from live_notifications.config import Settings
from live_notifications.webhooks.idempotency import DeliveryLedger
from live_notifications.webhooks.verification import compute_signature

WEBHOOK_SECRET = "shopify-test-secret"
SHOP = "snow-shop.myshopify.com"


class FakeUpstream:
    """MockTransport handler standing in for Hookdeck, Shopify Admin and Ably."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.publish_status = 200
        self.publish_body: Any = {
            "id": "evt_123",
            "source_id": "src_456",
            "created_at": "2025-12-01T10:00:00.000Z",
        }
        self.images: dict[int, str] = {}
        self.graphql_status = 200
        self.token_status = 201
        self.fail_with: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if request.url.host == "hkdk.events":
            return httpx.Response(self.publish_status, json=self.publish_body)
        if request.url.path.endswith("/graphql.json"):
            return self._graphql(request)
        if request.url.host == "rest.ably.io":
            params = json.loads(request.content)
            return httpx.Response(
                self.token_status,
                json={
                    "token": "ably-token-xyz",
                    "keyName": params["keyName"],
                    "issued": params["timestamp"],
                    "expires": params["timestamp"] + params["ttl"],
                    "capability": params["capability"],
                },
            )
        return httpx.Response(404)

    def _graphql(self, request: httpx.Request) -> httpx.Response:
        if self.graphql_status != 200:
            return httpx.Response(self.graphql_status, text="upstream error")
        gid = json.loads(request.content)["variables"]["id"]
        product_id = int(gid.rsplit("/", 1)[1])
        url = self.images.get(product_id)
        image = {"url": url} if url else None
        return httpx.Response(200, json={"data": {"product": {"featuredImage": image}}})

    def sent_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return compute_signature(body, secret)


def _make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "hookdeck_api_key": "hk_test_key",
        "shopify_api_secret": WEBHOOK_SECRET,
        "shopify_admin_access_token": "",
        "ably_api_key": "",
        "redis_url": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def settings_factory():
    """Build Settings with test defaults; keyword arguments override."""
    return _make_settings


@pytest.fixture
def shop() -> str:
    return SHOP


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def ledger() -> DeliveryLedger:
    return DeliveryLedger("")


@pytest.fixture
def client(settings, http_client, ledger):
    """TestClient over an app whose outbound HTTP goes to FakeUpstream."""
    app = create_app(settings, http_client=http_client, ledger=ledger)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def order() -> dict[str, Any]:
    """An orders/create payload carrying the usual customer PII."""
    return {
        "id": 820982911946154508,
        "order_number": 1234,
        "name": "#1234",
        "email": "jon@example.com",
        "contact_email": "jon@example.com",
        "phone": "+1-555-867-5309",
        "browser_ip": "203.0.113.42",
        "created_at": "2025-12-01T10:00:00-05:00",
        "currency": "USD",
        "total_price": "29.99",
        "subtotal_price": "27.98",
        "total_tax": "2.01",
        "total_discounts": "0.00",
        "total_weight": 800,
        "tags": "holiday",
        "source_name": "web",
        "test": False,
        "customer": {
            "first_name": "Jon",
            "last_name": "Snowden",
            "email": "jon@example.com",
            "phone": "+1-555-867-5309",
        },
        "billing_address": {
            "name": "Jon Snowden",
            "address1": "742 Evergreen Terrace",
            "city": "Springfield",
            "zip": "49007",
        },
        "shipping_address": {
            "name": "Jon Snowden",
            "address1": "742 Evergreen Terrace",
            "city": "Springfield",
            "zip": "49007",
        },
        "payment_details": {"credit_card_number": "•••• •••• •••• 4242"},
        "line_items": [
            {
                "id": 466157049,
                "name": "Mug - Red",
                "title": "Mug",
                "quantity": 2,
                "price": "13.99",
                "sku": "MUG-RED",
                "product_id": 555,
                "variant_id": 39072856,
                "grams": 400,
                "vendor": "Snow Co",
                "requires_shipping": True,
                "taxable": True,
                "gift_card": False,
                "properties": [{"name": "Gift note", "value": "For Jon Snowden"}],
                "origin_location": {"address1": "1 Warehouse Way"},
            }
        ],
    }


@pytest.fixture
def signed_headers():
    """Factory for valid Shopify webhook headers over a raw body."""

    def _make(
        body: bytes, topic: str = "orders/create", webhook_id: str = "wh-1", shop: str = SHOP
    ) -> dict[str, str]:
        return {
            "X-Shopify-Hmac-SHA256": sign(body),
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop,
            "X-Shopify-Webhook-Id": webhook_id,
            "Content-Type": "application/json",
        }

    return _make
