"""
RaidGuard - Database Base Module
================================

Core SQLite connection and execution methods.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple

from src.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from src.core.errors import PersistenceError
from src.core.logger import logger


# =============================================================================
# Helper Functions
# =============================================================================

def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Parse JSON, returning default on empty or corrupted input."""
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50]}")
        return default


# =============================================================================
# Base Database Class
# =============================================================================

class DatabaseBase:
    """
    Connection handling shared by every mixin.

    DESIGN: One connection guarded by a thread lock, WAL journal.
    Every sqlite3.Error is re-raised as PersistenceError so callers in the
    engine only have to know about one failure type.
    """

    _db_path: Path
    _db_lock: threading.Lock
    _conn: Optional[sqlite3.Connection]

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """Open the connection and apply pragmas."""
        try:
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                timeout=DB_CONNECTION_TIMEOUT,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [
                ("Path", str(self._db_path)),
                ("Error", str(e)),
            ])
            raise PersistenceError("connect", e) from e

    def _ensure_connection(self) -> sqlite3.Connection:
        """Return a live connection, reconnecting if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(
        self,
        query: str,
        params: Tuple = (),
        commit: bool = True,
    ) -> sqlite3.Cursor:
        """Execute one statement under the lock."""
        with self._db_lock:
            try:
                conn = self._ensure_connection()
                cursor = conn.cursor()
                cursor.execute(query, params)
                if commit:
                    conn.commit()
                return cursor
            except sqlite3.Error as e:
                raise PersistenceError(query.split()[0].upper(), e) from e

    def executemany(
        self,
        query: str,
        params_list: List[Tuple],
        commit: bool = True,
    ) -> sqlite3.Cursor:
        """Execute one statement for many parameter tuples under the lock."""
        with self._db_lock:
            try:
                conn = self._ensure_connection()
                cursor = conn.cursor()
                cursor.executemany(query, params_list)
                if commit:
                    conn.commit()
                return cursor
            except sqlite3.Error as e:
                raise PersistenceError(query.split()[0].upper(), e) from e

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchall()

    def close(self) -> None:
        """Close the connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")


__all__ = ["DatabaseBase", "_safe_json_loads"]
