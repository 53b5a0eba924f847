"""
Logging utilities for scratchformer.

Provides centralized logging configuration and logger factory.

Author: Oliver Perrin
Date: December 2025
"""

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging. Call once during application setup."""

    logging.basicConfig(level=level, format=_FORMAT)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
