"""Run the notifications service: ``python -m live_notifications``."""

from __future__ import annotations

import logging
import sys

import uvicorn

from live_notifications.app import create_app
from live_notifications.config import configure_logging, load_settings
from live_notifications.errors import ConfigurationError

logger = logging.getLogger(__name__)


def main() -> int:
    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    logging.getLogger().setLevel(settings.log_level.upper())
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
