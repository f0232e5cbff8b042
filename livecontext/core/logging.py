# core/logging.py
from __future__ import annotations
import logging
import os
from typing import Optional

ROOT_LOGGER = "livecontext"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _attach_handler(logger: logging.Logger) -> None:
    if logger.handlers:
        return
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(h)


def get_logger(name: str = ROOT_LOGGER, level: Optional[str] = None) -> logging.Logger:
    """``livecontext.*`` loggers share one handler on the package logger."""
    lvl = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger(ROOT_LOGGER)
    _attach_handler(root)
    if not root.level or level is not None:
        root.setLevel(lvl)
    if name == ROOT_LOGGER:
        return root
    logger = logging.getLogger(name)
    if not name.startswith(ROOT_LOGGER + "."):
        _attach_handler(logger)
        logger.setLevel(lvl)
    elif level is not None:
        logger.setLevel(lvl)
    return logger
