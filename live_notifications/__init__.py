"""Live order notifications — Shopify orders/create → Hookdeck → Ably.

Receives signed order webhooks, strips customer PII, and publishes a
notification record to the Hookdeck Publish API for real-time fan-out.
"""

__version__ = "0.1.0"
