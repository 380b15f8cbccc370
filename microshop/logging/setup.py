"""
Logging setup for microshop.

Logging is initialized after configuration has been loaded, so settings
loading can log through the standard library without depending on this
module.

Usage:
    from microshop.config.settings import AppSettings
    from microshop.logging.setup import setup_logging, get_logger

    settings = AppSettings.load()
    setup_logging(settings.logging_config)

    logger = get_logger(__name__)
"""

import logging
from typing import Any, Optional

from microshop.logging.log_manager import LogManager


_logging_configured = False
_log_manager: Optional[LogManager] = None


def setup_logging(logging_config: dict[str, Any]) -> None:
    """
    Initialize logging system with configuration.

    Calling it again is a no-op until reset_logging() is called.

    Args:
        logging_config: Dictionary with logging configuration
    """
    global _logging_configured, _log_manager

    if _logging_configured:
        logging.getLogger(__name__).debug(
            "Logging already configured, skipping re-initialization")
        return

    _log_manager = LogManager.get_instance(logging_config)
    _logging_configured = True

    logging.getLogger(__name__).debug("Logging system initialized")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Before setup_logging() runs this returns the plain named logger, so
    module-level loggers created at import time keep working once the
    configuration is applied.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        Logger instance
    """
    if _logging_configured and _log_manager is not None:
        return _log_manager.get_logger(name)
    return logging.getLogger(name)


def is_logging_configured() -> bool:
    """
    Check if logging has been configured.

    Returns:
        True if setup_logging() has been called
    """
    return _logging_configured


def reset_logging():
    """
    Reset logging configuration.

    This is mainly useful for testing.
    """
    global _logging_configured, _log_manager
    _logging_configured = False
    _log_manager = None
    LogManager.reset_instance()
