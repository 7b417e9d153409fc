"""
Logging setup.

Modules log through logging.getLogger(__name__); applications call
configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import sys

from shopcore.config import ShopSettings, get_settings

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
KV_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)r"


class KeyValueFormatter(logging.Formatter):
    """key=value lines; extra fields passed as `data={...}` are appended."""

    def __init__(self) -> None:
        super().__init__(KV_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        data = getattr(record, "data", None)
        if isinstance(data, dict):
            line += "".join(f" {k}={v}" for k, v in data.items())
        return line


def configure_logging(settings: ShopSettings | None = None) -> logging.Logger:
    """Install a stdout handler on the shopcore logger."""
    settings = settings or get_settings()

    logger = logging.getLogger("shopcore")
    logger.setLevel(settings.log_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "kv":
        handler.setFormatter(KeyValueFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


__all__ = ("configure_logging", "KeyValueFormatter")
