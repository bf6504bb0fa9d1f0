"""Error taxonomy for the notification pipeline."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for all live_notifications errors."""


class ConfigurationError(NotificationError):
    """Raised at startup when a required setting is missing."""

    def __init__(self, setting: str, hint: str = ""):
        self.setting = setting
        message = f"{setting} environment variable is not set"
        if hint:
            message = f"{message}: {hint}"
        super().__init__(message)


class AuthenticationError(NotificationError):
    """Raised when an inbound webhook signature does not validate."""


class ImageLookupError(NotificationError):
    """Raised by the Admin GraphQL client; always recovered by the image resolver."""


class PublishError(NotificationError):
    """Raised when the ingestion endpoint rejects a publish or cannot be reached.

    ``status_code`` is None when the request never got an HTTP response.
    """

    def __init__(self, status_code: int | None, body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Hookdeck publish failed: {body}")
        else:
            super().__init__(f"Hookdeck publish failed: {status_code} - {body}")


class TokenIssueError(NotificationError):
    """Raised when Ably refuses or fails to issue a subscriber token."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
