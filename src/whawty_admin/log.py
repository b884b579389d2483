"""Logging setup for the console front ends."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """
    Replace loguru's default sink.

    Args:
        level: Minimum level to emit
        log_file: Write to this file (rotated at 1 MB) instead of stderr
    """
    logger.remove()
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), level=level, format=LOG_FORMAT, rotation="1 MB", retention=3)
    else:
        logger.add(sys.stderr, level=level, format=LOG_FORMAT)
