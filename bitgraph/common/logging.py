# bitgraph/common/logging.py
from __future__ import annotations

import logging
from typing import Optional

from bitgraph.common.settings import get_settings


def get_logger(name: str = "bitgraph", level: Optional[int | str] = None) -> logging.Logger:
    """
    Return a logger for the bitgraph core.
    The host application owns logging setup; if it has not installed any
    handlers yet, we add a basicConfig once (at LOG_LEVEL) so messages are not lost.
    """
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers and not logger.handlers:
        logging.basicConfig(
            level=level or get_settings().log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if level is not None:
        logger.setLevel(level)
    return logger
