"""Logging setup for applications embedding keyweave."""

import logging
import sys
from typing import Optional

from keyweave.core.config import load_settings


def configure_logging(level: Optional[int] = None) -> None:
    # Root logger, configured once. Without an explicit level,
    # KEYWEAVE_LOG_LEVEL decides.
    if level is None:
        level = load_settings().log_level
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("keyweave").debug("Logging configured at %s", logging.getLevelName(level))
