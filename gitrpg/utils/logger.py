"""Logging utilities for gitrpg.

Configures a standard library logger per area (`gitrpg.duel`,
`gitrpg.challenges`, ...) with a single stream handler.
"""
import logging
from typing import Optional

from gitrpg.config import Settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "gitrpg", level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter(_FORMAT)
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(level or Settings.LOG_LEVEL)
    return logger
