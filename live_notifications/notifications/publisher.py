"""Hookdeck Publish API client.

Publishes notification records to a Hookdeck Publish API source, which
forwards them to the Ably channel configured on the connection.

Security contract:
- API key is sent as a Bearer token and never logged
- Payload contents are never logged (only the source name and event id)
- No retries here: a failed publish raises PublishError and the webhook
  gateway's redelivery is the retry mechanism
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from live_notifications.errors import PublishError
from live_notifications.notifications.images import AdminGraphQLClient
from live_notifications.notifications.models import NotificationRecord, PublishResult
from live_notifications.notifications.normalizer import normalize

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_URL = "https://hkdk.events/v1/publish"
ORDER_NOTIFICATIONS_SOURCE = "shopify-notifications-publish"

# Keep error bodies short in exceptions and logs
_MAX_ERROR_BODY = 500


class HookdeckPublisher:
    """Sends records to the Hookdeck Publish API."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        url: str = DEFAULT_PUBLISH_URL,
        timeout: float = 5.0,
    ):
        if not api_key:
            raise ValueError("HookdeckPublisher requires an api_key")
        self._api_key = api_key
        self._http = http_client
        self.url = url
        self._timeout = timeout

    async def publish(
        self,
        source_name: str,
        payload: NotificationRecord | dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> PublishResult:
        """Publish one record to a Hookdeck source.

        Args:
            source_name: Publish API source to route through
            payload: Record sent as ``{"data": payload}``
            headers: Extra headers forwarded with the event

        Returns:
            PublishResult with the Hookdeck event id and creation time

        Raises:
            PublishError: non-2xx response, transport failure or unreadable body
        """
        data = payload.to_payload() if isinstance(payload, NotificationRecord) else payload

        request_headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "X-Hookdeck-Source-Name": source_name,
            **(headers or {}),
        }

        logger.info("Publishing to Hookdeck source: %s", source_name)
        try:
            response = await self._http.post(
                self.url,
                json={"data": data},
                headers=request_headers,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Hookdeck publish to %s failed: %s", source_name, type(e).__name__)
            raise PublishError(None, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            body = response.text[:_MAX_ERROR_BODY]
            logger.error(
                "Hookdeck publish to %s rejected: HTTP %d %s",
                source_name,
                response.status_code,
                body,
            )
            raise PublishError(response.status_code, body)

        try:
            result = response.json()
            published = PublishResult(
                id=str(result["id"]),
                created_at=str(result.get("created_at", "")),
                source_id=str(result.get("source_id", "")),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise PublishError(
                response.status_code,
                f"Unreadable publish response: {response.text[:_MAX_ERROR_BODY]}",
            ) from e

        logger.info("Hookdeck accepted event %s on %s", published.id, source_name)
        return published



async def publish_order_notification(
    publisher: HookdeckPublisher,
    order: dict[str, Any],
    shop_domain: str | None = None,
    image_lookup: AdminGraphQLClient | None = None,
    source_name: str = ORDER_NOTIFICATIONS_SOURCE,
) -> PublishResult:
    """Normalize an orders/create payload and publish it to the notifications source.

    Raises:
        PublishError: the publish was rejected or never reached Hookdeck
    """
    notification = await normalize(order, shop_domain, image_lookup)
    return await publisher.publish(source_name, notification)
