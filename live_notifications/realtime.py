"""Subscriber tokens for the storefront real-time client.

The browser never sees the Ably API key. It asks this service for a
short-lived token whose capability is limited to subscribing on the
notifications channel; the token is issued by Ably's REST API using the
server-side key.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

import httpx

from live_notifications.errors import TokenIssueError

logger = logging.getLogger(__name__)


@dataclass
class SubscriberToken:
    """Ably token details handed to the browser client."""

    token: str
    expires: int
    capability: str
    channel: str


def parse_api_key(api_key: str) -> tuple[str, str]:
    """Split an Ably key ``appId.keyId:keySecret`` into (key_name, key_secret)."""
    key_name, sep, key_secret = api_key.partition(":")
    if not sep or not key_name or not key_secret:
        raise ValueError("ABLY_API_KEY must be in format: appId.keyId:keySecret")
    return key_name, key_secret


def subscribe_capability(channel: str) -> str:
    return json.dumps({channel: ["subscribe"]}, separators=(",", ":"))


class SubscriberTokenIssuer:
    """Issues subscribe-only Ably tokens through the REST requestToken endpoint."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        channel: str = "shopify-notifications",
        rest_url: str = "https://rest.ably.io",
        ttl_ms: int = 3_600_000,
        timeout: float = 5.0,
    ):
        self._key_name, self._key_secret = parse_api_key(api_key)
        self._http = http_client
        self.channel = channel
        self._rest_url = rest_url.rstrip("/")
        self._ttl_ms = ttl_ms
        self._timeout = timeout

    async def issue(self) -> SubscriberToken:
        capability = subscribe_capability(self.channel)
        token_params = {
            "keyName": self._key_name,
            "ttl": self._ttl_ms,
            "capability": capability,
            "timestamp": int(time.time() * 1000),
        }
        url = f"{self._rest_url}/keys/{self._key_name}/requestToken"

        try:
            response = await self._http.post(
                url,
                json=token_params,
                auth=(self._key_name, self._key_secret),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise TokenIssueError(f"Ably token request failed: {type(e).__name__}") from e

        if not response.is_success:
            logger.error("Ably token request rejected: HTTP %d", response.status_code)
            raise TokenIssueError("Ably token request rejected", response.status_code)

        try:
            details = response.json()
            token = SubscriberToken(
                token=details["token"],
                expires=int(details.get("expires", 0)),
                capability=details.get("capability", capability),
                channel=self.channel,
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise TokenIssueError("Unreadable Ably token response", response.status_code) from e

        logger.info("Issued subscriber token for channel %s", self.channel)
        return token
