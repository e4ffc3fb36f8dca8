"""
Core infrastructure layer for Gildhall Economy.

Provides a single import surface for the infrastructure subsystems:

- Configuration management (Config, ConfigManager)
- Database subsystem (DatabaseService)
- Logging (structured logging, logger factory)

This module is intentionally thin: no logic, no configuration, no I/O.
Feature modules import from their own subpackages, not from src.core directly.
"""

from __future__ import annotations

from src.core.config import Config, ConfigManager
from src.core.database import DatabaseService
from src.core.logging import get_logger, setup_logging

__all__ = [
    "Config",
    "ConfigManager",
    "DatabaseService",
    "setup_logging",
    "get_logger",
]
