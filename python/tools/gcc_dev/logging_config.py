#!/usr/bin/env python3
"""
Logging configuration for the GCC development helper.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)
DEBUG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

_initialized = False


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Set up logging configuration using loguru.

    Args:
        log_level: The logging level (TRACE, DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives every record at DEBUG and above
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=DEBUG_FORMAT if log_level in ("DEBUG", "TRACE") else CONSOLE_FORMAT,
        level=log_level,
        colorize=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=3,
        )


def initialize() -> bool:
    """
    Install the default stderr sink once per process.

    Returns True when this call did the setup, False when it had already run.
    """
    global _initialized
    if _initialized:
        return False
    setup_logging()
    _initialized = True
    return True
