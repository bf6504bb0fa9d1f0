"""Redelivery dedup — Redis record of deliveries already published.

Hookdeck and Shopify deliver at least once, so the same X-Shopify-Webhook-Id
can arrive more than once.

Contract:
- A delivery is marked only after its publish succeeded, so a failed publish
  stays eligible for redelivery
- Key pattern: webhook:published:{webhook_id}, 24h TTL
- If Redis is down, falls back to allowing (fail-open for availability)
"""

from __future__ import annotations

import logging

import redis.asyncio as redis_lib

logger = logging.getLogger(__name__)

_DEDUP_TTL_SECONDS = 86400  # 24 hours

_KEY_PREFIX = "webhook:published"


class DeliveryLedger:
    """Tracks which webhook deliveries have already been published."""

    def __init__(self, redis_url: str):
        self._redis_url = redis_url
        self._redis: redis_lib.Redis | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._redis_url)

    def _get_redis(self) -> redis_lib.Redis:
        if self._redis is None:
            self._redis = redis_lib.from_url(self._redis_url, decode_responses=True)
        return self._redis

    @staticmethod
    def _key(webhook_id: str) -> str:
        return f"{_KEY_PREFIX}:{webhook_id}"

    async def already_published(self, webhook_id: str) -> bool:
        """True if this delivery id was published before."""
        if not self.enabled or not webhook_id:
            return False
        try:
            seen = await self._get_redis().exists(self._key(webhook_id))
        except Exception:
            logger.warning(
                "Redis unavailable for webhook dedup — allowing %s",
                webhook_id,
                exc_info=True,
            )
            return False
        if seen:
            logger.info("Duplicate webhook delivery skipped: %s", webhook_id)
            return True
        return False

    async def mark_published(self, webhook_id: str) -> None:
        """Record a successful publish for this delivery id."""
        if not self.enabled or not webhook_id:
            return
        try:
            await self._get_redis().set(self._key(webhook_id), "1", ex=_DEDUP_TTL_SECONDS)
        except Exception:
            logger.warning("Failed to mark webhook as published: %s", webhook_id)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
