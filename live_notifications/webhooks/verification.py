"""Shopify webhook signature verification.

Security contract:
- hmac.compare_digest() only (constant-time, no timing attacks)
- Verification failure -> 401 immediately, no payload processing
- Missing secret -> verification always fails (fail-closed)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping

from live_notifications.errors import AuthenticationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"


def compute_signature(body: bytes, secret: str) -> str:
    """Base64-encoded HMAC-SHA256 of the raw body, as Shopify sends it."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_shopify(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Verify a Shopify webhook HMAC-SHA256 signature.

    Args:
        body: Raw request body bytes
        signature_header: Value of X-Shopify-Hmac-SHA256 header
        secret: Shopify app client secret

    Returns:
        True if signature is valid
    """
    if not secret:
        logger.warning("SHOPIFY_API_SECRET not set — rejecting webhook")
        return False
    if not signature_header:
        return False

    return hmac.compare_digest(compute_signature(body, secret), signature_header)


def authenticate(body: bytes, headers: Mapping[str, str], secret: str) -> None:
    """Raise AuthenticationError unless the request carries a valid signature.

    ``headers`` must use lowercase keys.
    """
    if not verify_shopify(body, headers.get(SIGNATURE_HEADER), secret):
        raise AuthenticationError("Invalid Shopify webhook signature")
