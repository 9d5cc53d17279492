"""
RaidGuard - Database Module
===========================

SQLite persistence for raid settings, incidents, join events and lockdowns.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from src.core.database.manager import (
    DatabaseManager,
    get_db,
    DATA_DIR,
    DB_PATH,
)
from src.core.database.base import _safe_json_loads

from src.core.database.models import (
    RaidSettingsRecord,
    RaidIncidentRecord,
    JoinEventRecord,
    LockdownStateRecord,
    ChannelOverwriteRecord,
)

__all__ = [
    # Main interface
    "DatabaseManager",
    "get_db",

    # Helpers
    "_safe_json_loads",
    "DATA_DIR",
    "DB_PATH",

    # Type definitions
    "RaidSettingsRecord",
    "RaidIncidentRecord",
    "JoinEventRecord",
    "LockdownStateRecord",
    "ChannelOverwriteRecord",
]
