"""Inbound Shopify webhooks.

Each orders/create delivery is signature-verified, deduplicated, normalized
to a PII-free notification and published to Hookdeck.
"""
