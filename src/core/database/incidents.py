"""
RaidGuard - Database Incidents Module
=====================================

Append-only raid incident audit log.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import time
from typing import List, Optional, Sequence, TYPE_CHECKING

from src.core.database.base import _safe_json_loads
from src.core.database.models import RaidIncidentRecord

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class IncidentsMixin:
    """Mixin for raid incident database operations."""

    def append_raid_incident(
        self: "DatabaseManager",
        guild_id: int,
        incident_type: str,
        severity: Optional[str],
        details: Optional[str],
        action_taken: Optional[str],
        affected_users: Sequence[int],
        created_at: Optional[float] = None,
    ) -> int:
        """
        Append an incident.

        Returns:
            Row ID of the new incident.
        """
        cursor = self.execute(
            """INSERT INTO raid_incidents
               (guild_id, incident_type, severity, details, action_taken,
                affected_users, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                guild_id,
                incident_type,
                severity,
                details,
                action_taken,
                json.dumps([int(u) for u in affected_users]),
                created_at if created_at is not None else time.time(),
            )
        )
        return cursor.lastrowid

    def get_recent_raid_incidents(
        self: "DatabaseManager",
        guild_id: int,
        limit: int = 10,
    ) -> List[RaidIncidentRecord]:
        """Get the most recent incidents for a guild, newest first."""
        rows = self.fetchall(
            """SELECT * FROM raid_incidents
               WHERE guild_id = ?
               ORDER BY created_at DESC, id DESC
               LIMIT ?""",
            (guild_id, limit)
        )
        return [
            {
                "id": row["id"],
                "guild_id": row["guild_id"],
                "incident_type": row["incident_type"],
                "severity": row["severity"],
                "details": row["details"],
                "action_taken": row["action_taken"],
                "affected_users": _safe_json_loads(row["affected_users"], default=[]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]


__all__ = ["IncidentsMixin"]
