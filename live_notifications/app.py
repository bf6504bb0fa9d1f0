"""FastAPI application factory for the notifications service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from live_notifications import __version__
from live_notifications.config import Settings, load_settings
from live_notifications.errors import TokenIssueError
from live_notifications.notifications.publisher import HookdeckPublisher
from live_notifications.realtime import SubscriberTokenIssuer
from live_notifications.webhooks.handlers import register_webhook_routes
from live_notifications.webhooks.idempotency import DeliveryLedger

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    ledger: DeliveryLedger | None = None,
) -> FastAPI:
    """Build the app. Without explicit settings, reads the environment.

    Raises:
        ConfigurationError: HOOKDECK_API_KEY is missing
    """
    settings = settings or load_settings()
    ledger = ledger or DeliveryLedger(settings.redis_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        app.state.http_client = client
        app.state.publisher = HookdeckPublisher(
            settings.hookdeck_api_key,
            client,
            url=settings.hookdeck_publish_url,
            timeout=settings.http_timeout_seconds,
        )
        app.state.token_issuer = (
            SubscriberTokenIssuer(
                settings.ably_api_key,
                client,
                channel=settings.ably_channel,
                rest_url=settings.ably_rest_url,
                ttl_ms=settings.ably_token_ttl_ms,
                timeout=settings.http_timeout_seconds,
            )
            if settings.realtime_configured
            else None
        )
        logger.info("Notifications service started (publishing to %s)", settings.hookdeck_publish_url)
        try:
            yield
        finally:
            await ledger.close()
            if http_client is None:
                await client.aclose()

    app = FastAPI(title="Live Order Notifications", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.ledger = ledger

    register_webhook_routes(app)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "publish_configured": settings.publish_configured,
            "realtime_configured": settings.realtime_configured,
        }

    @app.get("/notifications/token")
    async def subscriber_token(request: Request):
        """Subscribe-only Ably token for the storefront client."""
        issuer: SubscriberTokenIssuer | None = request.app.state.token_issuer
        if issuer is None:
            return JSONResponse({"status": "unavailable"}, status_code=503)
        try:
            token = await issuer.issue()
        except TokenIssueError:
            return JSONResponse({"status": "error"}, status_code=502)
        return {
            "token": token.token,
            "expires": token.expires,
            "capability": token.capability,
            "channel": token.channel,
        }

    return app
