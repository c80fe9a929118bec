"""Logging setup for the market service."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from worldmarket.config import MarketConfig, get_config

LOGGER_NAME = "worldmarket"

CONSOLE_FORMAT = '%(levelname)s - %(name)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'

# Marks handlers installed here so reconfiguring leaves others alone
_OWNED = "_worldmarket_handler"


def log_file_path(log_dir: Union[str, Path], now: Optional[datetime] = None) -> Path:
    """Timestamped log file for one server run: <log_dir>/market_YYYYmmdd_HHMMSS.log"""
    now = now or datetime.now()
    return Path(log_dir) / f"market_{now.strftime('%Y%m%d_%H%M%S')}.log"


def _owned(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED, True)
    return handler


def configure_logging(config: Optional[MarketConfig] = None) -> logging.Logger:
    """
    Attach console and optional file output to the package logger.

    Module loggers (``logging.getLogger(__name__)`` under ``worldmarket.``)
    propagate here, so this is called once per process from the app factory
    or a script. Calling it again replaces only the handlers it installed.

    Args:
        config: Market configuration; LOG_LEVEL, LOG_TO_FILE and LOG_DIR apply

    Returns:
        The ``worldmarket`` logger
    """
    if config is None:
        config = get_config()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.logging_level)

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = _owned(logging.StreamHandler(sys.stdout))
    console_handler.setLevel(config.logging_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    # Trade records go to the file at DEBUG regardless of the console level
    if config.log_to_file:
        log_file = log_file_path(config.log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = _owned(logging.FileHandler(log_file, encoding='utf-8'))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

        logger.info(f"Market log file: {log_file}")

    return logger
