"""
ctrident — Centralized Logging Configuration

One ``ctrident`` logger owns the only handler; each component logs
through a child of it so lines carry their origin:

    from ctrident.logging_config import get_logger
    logger = get_logger("containerd")      # → "ctrident.containerd"

stdout carries the container_added JSON lines, so log output goes to
stderr only.
"""

import logging
import os
import sys

ROOT_NAME = "ctrident"
DEFAULT_LEVEL = os.environ.get("CTRIDENT_LOG_LEVEL", "INFO").upper()

_FORMAT = "[%(asctime)s] [%(levelname)-5s] [%(name)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _to_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


logger = logging.getLogger(ROOT_NAME)
logger.setLevel(_to_level(DEFAULT_LEVEL))

_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
logger.addHandler(_handler)

# Prevent duplicate logs if imported multiple times
logger.propagate = False


def get_logger(component: str) -> logging.Logger:
    """Child logger for one component; shares the root's handler and level."""
    return logger.getChild(component)


def set_level(level: str) -> None:
    """Apply a level name from settings; unknown names fall back to INFO."""
    logger.setLevel(_to_level(level))
