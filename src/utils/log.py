from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "signup"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stdout handler to the ``signup`` logger tree."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
