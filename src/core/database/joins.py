"""
RaidGuard - Database Joins Module
=================================

Join event storage for velocity tracking.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import List, TYPE_CHECKING

from src.core.database.models import JoinEventRecord

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class JoinsMixin:
    """Mixin for join event database operations."""

    def add_join_event(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        joined_at: float,
    ) -> bool:
        """
        Record a join. Duplicate (guild, user, timestamp) triples are ignored.

        Returns:
            True if a new row was written.
        """
        cursor = self.execute(
            """INSERT OR IGNORE INTO join_events (guild_id, user_id, joined_at)
               VALUES (?, ?, ?)""",
            (guild_id, user_id, joined_at)
        )
        return cursor.rowcount > 0

    def get_join_events(
        self: "DatabaseManager",
        guild_id: int,
        since: float,
        until: float,
    ) -> List[JoinEventRecord]:
        """Get joins with since <= joined_at <= until, ascending."""
        rows = self.fetchall(
            """SELECT guild_id, user_id, joined_at FROM join_events
               WHERE guild_id = ? AND joined_at >= ? AND joined_at <= ?
               ORDER BY joined_at ASC, id ASC""",
            (guild_id, since, until)
        )
        return [dict(row) for row in rows]

    def delete_join_events_before(
        self: "DatabaseManager",
        guild_id: int,
        cutoff: float,
    ) -> int:
        """
        Delete joins older than cutoff.

        Returns:
            Number of rows deleted.
        """
        cursor = self.execute(
            "DELETE FROM join_events WHERE guild_id = ? AND joined_at < ?",
            (guild_id, cutoff)
        )
        return cursor.rowcount


__all__ = ["JoinsMixin"]
