"""Package-wide logging for layerflow.

All modules log through children of the ``layerflow`` logger obtained with
``get_logger(__name__)``. The parent logger gets one stdout handler the first
time it is needed; the CLI changes its level with ``set_global_log_level``.
"""

import logging
import sys

ROOT_LOGGER_NAME = "layerflow"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_root_logger(level: int = logging.INFO) -> None:
    """Attach the stdout handler to the ``layerflow`` logger once.

    Later calls do nothing, so neither handlers nor levels set through
    ``set_global_log_level`` are overwritten.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(level)
    # Records still reach the root logger, where pytest's caplog listens
    package_logger.propagate = True

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``, configuring the package logger first."""
    setup_root_logger()
    return logging.getLogger(name)


def set_global_log_level(level: int) -> None:
    """Set the level of the ``layerflow`` logger and its handlers."""
    setup_root_logger()
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def reset_logging() -> None:
    """Drop the package handler so the next call configures it afresh."""
    global _configured
    _configured = False
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


setup_root_logger()
