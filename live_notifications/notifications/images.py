"""Product image lookup via the Shopify GraphQL Admin API.

Image enrichment is best-effort: a lookup that fails for any reason leaves
the line item without an image, it never fails the notification.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from live_notifications.errors import ImageLookupError

logger = logging.getLogger(__name__)

# The access token is only ever sent to a Shopify-hosted shop
SHOP_DOMAIN_PATTERN = re.compile(r"[a-z0-9][a-z0-9-]*\.myshopify\.com")


def is_shop_domain(domain: str) -> bool:
    return SHOP_DOMAIN_PATTERN.fullmatch(domain.lower().strip()) is not None


PRODUCT_IMAGE_QUERY = """
query getProduct($id: ID!) {
  product(id: $id) {
    featuredImage {
      url
    }
  }
}
"""


class AdminGraphQLClient:
    """Authenticated Shopify Admin GraphQL client for a single shop."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        http_client: httpx.AsyncClient,
        api_version: str = "2025-01",
        timeout: float = 5.0,
    ):
        if not shop_domain or not access_token:
            raise ValueError("AdminGraphQLClient requires shop_domain and access_token")
        if not is_shop_domain(shop_domain):
            raise ValueError(f"Not a myshopify.com shop domain: {shop_domain!r}")
        self.shop_domain = shop_domain.lower().strip()
        self._access_token = access_token
        self._http = http_client
        self._timeout = timeout
        self.endpoint = f"https://{self.shop_domain}/admin/api/{api_version}/graphql.json"

    async def execute(self, query: str, variables: dict | None = None) -> dict[str, Any]:
        """Run one GraphQL request. Single attempt, no retry.

        Raises:
            ImageLookupError: transport failure, non-2xx, bad JSON or GraphQL errors.
        """
        try:
            response = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={
                    "X-Shopify-Access-Token": self._access_token,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ImageLookupError(f"Admin GraphQL request failed: {e}") from e

        if not isinstance(result, dict):
            raise ImageLookupError("Admin GraphQL response is not an object")
        if result.get("errors"):
            raise ImageLookupError(f"Admin GraphQL errors: {result['errors']}")
        return result


async def resolve_image(product_id: int, client: AdminGraphQLClient) -> str | None:
    """Return the featured image URL for a product, or None."""
    try:
        result = await client.execute(
            PRODUCT_IMAGE_QUERY,
            {"id": f"gid://shopify/Product/{product_id}"},
        )
        product = (result.get("data") or {}).get("product") or {}
        url = (product.get("featuredImage") or {}).get("url")
        if not url:
            raise ImageLookupError(f"No featured image for product {product_id}")
        if not isinstance(url, str):
            raise ImageLookupError(f"Malformed image url for product {product_id}")
    except ImageLookupError as e:
        logger.warning("Image lookup skipped for product %s: %s", product_id, e)
        return None
    except AttributeError:
        logger.warning("Image lookup skipped for product %s: malformed response", product_id)
        return None

    logger.debug("Image URL for product %s: %s", product_id, url)
    return url
