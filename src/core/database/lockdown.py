"""
RaidGuard - Database Lockdown Operations Module
===============================================

Lockdown state and @everyone overwrite snapshots.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import time
from typing import List, Optional, TYPE_CHECKING

from src.core.database.models import ChannelOverwriteRecord, LockdownStateRecord
from src.core.logger import logger

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class LockdownMixin:
    """Mixin for lockdown database operations."""

    # =========================================================================
    # Lockdown State
    # =========================================================================

    def start_lockdown(
        self: "DatabaseManager",
        guild_id: int,
        locked_by: int,
        reason: Optional[str] = None,
        channel_count: int = 0,
    ) -> None:
        """
        Record a guild lockdown.

        Args:
            guild_id: Guild being locked.
            locked_by: User (or bot) that initiated the lockdown.
            reason: Reason for lockdown.
            channel_count: Number of channels locked.
        """
        self.execute(
            """INSERT OR REPLACE INTO lockdown_state
               (guild_id, locked_at, locked_by, reason, channel_count)
               VALUES (?, ?, ?, ?, ?)""",
            (guild_id, time.time(), locked_by, reason, channel_count)
        )

        logger.tree("Lockdown State Saved", [
            ("Guild ID", str(guild_id)),
            ("Locked By", str(locked_by)),
            ("Channels", str(channel_count)),
        ], emoji="🔒")

    def end_lockdown(self: "DatabaseManager", guild_id: int) -> None:
        """End a lockdown and clear its snapshots."""
        self.execute("DELETE FROM lockdown_state WHERE guild_id = ?", (guild_id,))
        self.clear_channel_overwrites(guild_id)

        logger.tree("Lockdown State Cleared", [
            ("Guild ID", str(guild_id)),
        ], emoji="🔓")

    def is_locked(self: "DatabaseManager", guild_id: int) -> bool:
        row = self.fetchone(
            "SELECT 1 FROM lockdown_state WHERE guild_id = ?",
            (guild_id,)
        )
        return row is not None

    def get_lockdown_state(self: "DatabaseManager", guild_id: int) -> Optional[LockdownStateRecord]:
        row = self.fetchone(
            "SELECT * FROM lockdown_state WHERE guild_id = ?",
            (guild_id,)
        )
        return dict(row) if row else None

    def set_unlock_at(
        self: "DatabaseManager",
        guild_id: int,
        unlock_at: Optional[float],
    ) -> None:
        """Store (or clear, with None) when an active lockdown expires."""
        self.execute(
            "UPDATE lockdown_state SET unlock_at = ? WHERE guild_id = ?",
            (unlock_at, guild_id)
        )

    # =========================================================================
    # Overwrite Snapshots
    # =========================================================================

    def save_channel_overwrite(
        self: "DatabaseManager",
        guild_id: int,
        channel_id: int,
        allow_bits: Optional[int],
        deny_bits: Optional[int],
    ) -> None:
        """
        Save a channel's @everyone overwrite before it is locked.

        DESIGN: allow_bits/deny_bits both None means the channel had no
        explicit overwrite, so unlock removes it instead of restoring.
        """
        has_overwrite = allow_bits is not None and deny_bits is not None
        self.execute(
            """INSERT OR REPLACE INTO lockdown_overwrites
               (guild_id, channel_id, has_overwrite, allow_bits, deny_bits)
               VALUES (?, ?, ?, ?, ?)""",
            (
                guild_id,
                channel_id,
                1 if has_overwrite else 0,
                allow_bits if has_overwrite else None,
                deny_bits if has_overwrite else None,
            )
        )

    def get_channel_overwrites(self: "DatabaseManager", guild_id: int) -> List[ChannelOverwriteRecord]:
        rows = self.fetchall(
            """SELECT channel_id, has_overwrite, allow_bits, deny_bits
               FROM lockdown_overwrites WHERE guild_id = ?""",
            (guild_id,)
        )
        return [
            {
                "channel_id": row["channel_id"],
                "has_overwrite": bool(row["has_overwrite"]),
                "allow_bits": row["allow_bits"],
                "deny_bits": row["deny_bits"],
            }
            for row in rows
        ]

    def clear_channel_overwrites(self: "DatabaseManager", guild_id: int) -> None:
        self.execute("DELETE FROM lockdown_overwrites WHERE guild_id = ?", (guild_id,))


__all__ = ["LockdownMixin"]
