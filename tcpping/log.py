from __future__ import annotations

import logging
import sys

ROOT_LOGGER = "tcpping"

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "") -> logging.Logger:
    """Return the project logger, or a child of it when name is given."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stderr handler to the project logger.

    Safe to call more than once; only the level is updated on later calls.
    """
    logger = get_logger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, _DATEFMT))
    logger.addHandler(handler)
    # probe events have their own sinks; keep diagnostics off the root logger
    logger.propagate = False
    return logger
