"""
Logging setup for the service process
"""

import logging

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", fmt: str = None):
    """
    Configure the root logger once for the process

    Args:
        level: Level name (DEBUG, INFO, ...)
        fmt: Record format
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=fmt or DEFAULT_FORMAT,
    )
    # Socket.IO / Engine.IO are chatty at INFO
    logging.getLogger("socketio").setLevel(logging.WARNING)
    logging.getLogger("engineio").setLevel(logging.WARNING)
