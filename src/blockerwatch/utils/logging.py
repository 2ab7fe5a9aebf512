"""Logging setup utilities for blockerwatch.

Configures logging for the entire application based on the logging
configuration settings.
"""

from __future__ import annotations

import logging
import sys

from blockerwatch.config.settings import LoggingConfig

# Third-party loggers that report every request or inference at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "ppocr")


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the blockerwatch application.

    Sets up the root 'blockerwatch' logger with the specified level,
    format, and optional file handler. Calling it again replaces the
    handlers installed by the previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("blockerwatch")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    quiet_level = max(root_logger.level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    root_logger.info("Logging initialized at %s level", config.level)
