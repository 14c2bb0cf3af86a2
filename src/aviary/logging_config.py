"""
Logging configuration for the aviary package.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "aviary"


def setup_logging(level: int = logging.INFO, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the 'aviary' logger.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to also write logs to.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # reconfiguring (server reload, repeated CLI runs in tests) must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at level %s", logging.getLevelName(level))
    return logger
