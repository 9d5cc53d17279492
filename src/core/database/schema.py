"""
RaidGuard - Database Schema Module
==================================

Table definitions for raid protection state.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Create all tables and indexes.

        DESIGN: CREATE IF NOT EXISTS everywhere so restarts are safe.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Raid Protection Settings
        # DESIGN: One JSON blob per guild, tagged with its schema version
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS raid_settings (
                guild_id INTEGER PRIMARY KEY,
                version INTEGER NOT NULL,
                data TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Raid Incidents (append-only audit log)
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS raid_incidents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                incident_type TEXT NOT NULL,
                severity TEXT,
                details TEXT,
                action_taken TEXT,
                affected_users TEXT NOT NULL DEFAULT '[]',
                created_at REAL NOT NULL
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_raid_incidents_guild "
            "ON raid_incidents(guild_id, created_at)"
        )

        # -----------------------------------------------------------------
        # Join Events (velocity tracking, pruned daily)
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS join_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                joined_at REAL NOT NULL,
                UNIQUE(guild_id, user_id, joined_at)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_join_events_guild "
            "ON join_events(guild_id, joined_at)"
        )

        # -----------------------------------------------------------------
        # Lockdown State
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lockdown_state (
                guild_id INTEGER PRIMARY KEY,
                locked_at REAL NOT NULL,
                locked_by INTEGER NOT NULL,
                reason TEXT,
                channel_count INTEGER DEFAULT 0,
                unlock_at REAL
            )
        """)
        try:
            cursor.execute("ALTER TABLE lockdown_state ADD COLUMN unlock_at REAL")
        except sqlite3.OperationalError:
            pass  # Column already exists

        # -----------------------------------------------------------------
        # Lockdown Overwrite Snapshots
        # DESIGN: has_overwrite = 0 means "no explicit @everyone overwrite"
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lockdown_overwrites (
                guild_id INTEGER NOT NULL,
                channel_id INTEGER NOT NULL,
                has_overwrite INTEGER NOT NULL,
                allow_bits INTEGER,
                deny_bits INTEGER,
                PRIMARY KEY (guild_id, channel_id)
            )
        """)

        conn.commit()


__all__ = ["SchemaMixin"]
