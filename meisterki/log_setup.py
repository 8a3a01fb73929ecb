"""Centralized logging configuration.
Call setup_logging() once at application startup.
"""

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once. Repeated calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_value = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(level_value)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level_value)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    ))
    root.addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger("fontTools").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
