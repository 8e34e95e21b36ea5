"""Logging for the termbridge server and CLI.

Everything under the ``termbridge`` logger namespace (sessions, shells,
the sandbox channel) goes to stderr, and optionally to a log file as well.
uvicorn keeps its own loggers.
"""

from __future__ import annotations

import logging
import sys

from termbridge.config.settings import LoggingConfig

PACKAGE_LOGGER = "termbridge"


def _handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    formatter = logging.Formatter(config.format)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Point the ``termbridge`` logger at the configured outputs.

    Safe to call more than once: previous handlers are closed and
    replaced. An unrecognised level name falls back to INFO.

    Args:
        config: Logging section of the settings; defaults if None.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in _handlers(config):
        logger.addHandler(handler)

    logger.debug(
        "Logging to stderr%s at %s",
        f" and {config.file}" if config.file else "",
        logging.getLevelName(logger.level),
    )
