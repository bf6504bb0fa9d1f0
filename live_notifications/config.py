"""Live notifications configuration.

All values come from the environment (or a local ``.env`` file) and are read
once at process start. The Hookdeck API key is the only hard requirement:
without it nothing can be published, so ``load_settings`` refuses to continue.
"""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

from live_notifications.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Environment-driven settings for the notifications service."""

    # Hookdeck Publish API (outbound leg)
    hookdeck_api_key: str = ""
    hookdeck_publish_url: str = "https://hkdk.events/v1/publish"
    notifications_source_name: str = "shopify-notifications-publish"

    # Shopify app client secret, used to verify inbound webhook HMACs
    shopify_api_secret: str = ""

    # Optional Admin API access for product image enrichment
    shopify_admin_access_token: str = ""
    shopify_api_version: str = "2025-01"
    # Shop the admin token belongs to; empty accepts any myshopify.com shop
    shopify_shop_domain: str = ""

    # Ably (real-time broadcast leg), format appId.keyId:keySecret
    ably_api_key: str = ""
    ably_channel: str = "shopify-notifications"
    ably_rest_url: str = "https://rest.ably.io"
    ably_token_ttl_ms: int = 3_600_000

    # Redelivery dedup; empty disables it
    redis_url: str = "redis://localhost:6379/0"

    http_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def publish_configured(self) -> bool:
        return bool(self.hookdeck_api_key)

    @property
    def realtime_configured(self) -> bool:
        return bool(self.ably_api_key)


def load_settings(**overrides) -> Settings:
    """Read settings and fail fast on missing required credentials.

    Raises:
        ConfigurationError: HOOKDECK_API_KEY is not set.
    """
    settings = Settings(**overrides)
    if not settings.hookdeck_api_key:
        raise ConfigurationError(
            "HOOKDECK_API_KEY",
            "get one from https://dashboard.hookdeck.com/settings/project/api-keys",
        )
    if not settings.shopify_api_secret:
        logger.warning("SHOPIFY_API_SECRET not set, every webhook will be rejected")
    if not settings.ably_api_key:
        logger.info("ABLY_API_KEY not set, subscriber tokens unavailable")
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler for the service process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
