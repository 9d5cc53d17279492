"""
RaidGuard - Database Manager
============================

Central SQLite database manager for raid protection state.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import os
import threading
from pathlib import Path
from typing import Optional

from src.core.logger import logger

from src.core.database.base import DatabaseBase
from src.core.database.schema import SchemaMixin
from src.core.database.settings import SettingsMixin
from src.core.database.incidents import IncidentsMixin
from src.core.database.joins import JoinsMixin
from src.core.database.lockdown import LockdownMixin


# =============================================================================
# Constants
# =============================================================================

# Path: src/core/database/manager.py -> go up 4 levels to reach project root
DATA_DIR: Path = Path(__file__).parent.parent.parent.parent / "data"
DB_PATH: Path = Path(os.getenv("DATABASE_PATH") or DATA_DIR / "raidguard.db")


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    DatabaseBase,
    SchemaMixin,
    SettingsMixin,
    IncidentsMixin,
    JoinsMixin,
    LockdownMixin,
):
    """
    Centralized database manager with thread-safe operations.

    DESIGN: Singleton pattern ensures single database connection.
    Uses WAL mode for better concurrency with multiple readers.
    All operations are thread-safe via internal locking.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        """Singleton pattern - only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize database connection and tables."""
        if self._initialized:
            return

        self._db_lock = threading.Lock()
        self._conn = None
        self._db_path = DB_PATH

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Manager Initialized", [
            ("Path", str(self._db_path)),
            ("WAL Mode", "Enabled"),
        ], emoji="🗄️")


# =============================================================================
# Global Instance
# =============================================================================

_db: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = DatabaseManager()
    return _db


__all__ = ["DatabaseManager", "get_db", "DATA_DIR", "DB_PATH"]
