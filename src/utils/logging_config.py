"""Logging setup for the screener and its CLI."""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "wheelscreener"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers kept at WARNING unless verbose
NOISY_LOGGERS = ("aiohttp", "asyncio")


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    verbose: bool = False,
) -> logging.Logger:
    """Configure the ``wheelscreener`` logger.

    Console output goes to stderr so stdout carries only command output
    (dry-run payloads, screener listings). Calling again only adjusts levels.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file that receives the same records.
        verbose: Force DEBUG, including the third-party loggers.

    Returns:
        The configured logger.
    """
    level = logging.DEBUG if verbose else getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
