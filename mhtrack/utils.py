"""Small shared helpers."""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "mhtrack", level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Get a logger, attaching a stream handler to the package root once.

    Args:
        name: Logger name.
        level: Optional level applied to the package root logger.

    Returns:
        Logger instance.
    """
    root = logging.getLogger("mhtrack")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False

    if level is not None:
        if isinstance(level, str):
            level = level.upper()
        root.setLevel(level)

    return logging.getLogger(name)
