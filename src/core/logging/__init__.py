"""
Structured logging for Gildhall Economy.

Importing this package installs the root handlers (see ``setup_logging``).
"""

from src.core.logging.logger import (
    LogContext,
    LoggingSettings,
    clear_log_context,
    get_log_context,
    get_logger,
    new_request_id,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "LoggingSettings",
    "new_request_id",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
]
