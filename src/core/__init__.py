"""
RaidGuard - Core Package
========================

Configuration, logging, errors and the database layer.

DESIGN:
    Core modules expose process-wide singletons:
    - get_config() returns the same Config instance
    - get_db() returns the same DatabaseManager instance
    - logger is a global TreeLogger instance

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    NY_TZ,
    get_config,
)
from .database import DatabaseManager, get_db
from .errors import (
    ConfigurationError,
    ExternalActionFailure,
    PersistenceError,
    RaidGuardError,
)
from .logger import logger, TreeLogger


__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    # Database
    "DatabaseManager",
    "get_db",
    # Errors
    "RaidGuardError",
    "ConfigurationError",
    "PersistenceError",
    "ExternalActionFailure",
    # Logger
    "logger",
    "TreeLogger",
]
