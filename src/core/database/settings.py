"""
RaidGuard - Database Settings Module
====================================

Per-guild raid protection settings storage.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

from src.core.database.base import _safe_json_loads
from src.core.database.models import RaidSettingsRecord

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class SettingsMixin:
    """Mixin for raid settings database operations."""

    def get_raid_settings(self: "DatabaseManager", guild_id: int) -> Optional[RaidSettingsRecord]:
        """
        Get stored settings for a guild.

        Returns:
            Record with the decoded data dict, or None if never saved.
        """
        row = self.fetchone(
            "SELECT guild_id, version, data, updated_at FROM raid_settings WHERE guild_id = ?",
            (guild_id,)
        )
        if not row:
            return None
        return {
            "guild_id": row["guild_id"],
            "version": row["version"],
            "data": _safe_json_loads(row["data"], default={}),
            "updated_at": row["updated_at"],
        }

    def update_raid_settings(
        self: "DatabaseManager",
        guild_id: int,
        data: Dict[str, Any],
        version: int,
    ) -> None:
        """Replace the full settings blob for a guild."""
        self.execute(
            """INSERT OR REPLACE INTO raid_settings (guild_id, version, data, updated_at)
               VALUES (?, ?, ?, ?)""",
            (guild_id, version, json.dumps(data), time.time())
        )


__all__ = ["SettingsMixin"]
