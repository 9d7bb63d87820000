"""Logging utility for critical CSS extraction."""

import logging
import os
from typing import Optional, Union
from .config import LOG_FILE, LOG_LEVEL

def setup_logging(log_level: Union[int, str] = LOG_LEVEL,
                  log_file: Optional[str] = LOG_FILE) -> None:
    """Set up logging configuration.

    Args:
        log_level: Level name or number for the root logger
        log_file: Optional file to mirror log output into
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers
    )

    # cssutils reports every unknown property and selector it meets
    logging.getLogger('CSSUTILS').setLevel(logging.CRITICAL)

# Exported functions
__all__ = ['setup_logging']
