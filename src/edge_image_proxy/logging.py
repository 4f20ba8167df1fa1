"""Centralized logging configuration using loguru.

Every module logs through loguru's ``logger`` with ``{}`` placeholders.
``setup_logging`` is called once, by the CLI, before the server starts.

Example:
    from edge_image_proxy.logging import setup_logging

    setup_logging(level="DEBUG")

    from loguru import logger
    logger.info("Serving {} with status {}", url, status)

"""

import logging
import sys
from typing import Any

from loguru import logger

# Chatty stdlib loggers of the HTTP stack
QUIET_LOGGERS = ("httpx", "httpcore", "PIL")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru for the proxy.

    Args:
        level: Minimum log level to capture. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: If True, serialize each record as JSON for log shippers.
        log_file: Optional file path to also write logs to, rotated at 10 MB.

    Returns:
        The configured loguru logger instance.

    """
    logger.remove()

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format=CONSOLE_FORMAT,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    # Per-request origin fetches would otherwise log every connection at INFO
    if level.upper() != "DEBUG":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str | None = None) -> Any:
    """Get a logger, optionally bound to a name such as the module name.

    The bound name is available to sinks as ``{extra[name]}``.

    Args:
        name: Optional name to bind to the logger context.

    Returns:
        A loguru logger instance, optionally with name context.

    """
    if name:
        return logger.bind(name=name)
    return logger
