"""
Logging setup for the Knowbook Canvas service.

Signup, credential storage and key validation log through module loggers;
failures that the workflows swallow (backend outages, metadata write errors)
only surface here, so the root handler must be configured before the app
serves requests.
"""

import logging
import sys

_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Route all service loggers to stdout at ``level``."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # httpx logs every request line at INFO, including the URL.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
