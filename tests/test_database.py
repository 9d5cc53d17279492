"""
RaidGuard - Database Tests
==========================

Tests for the database layer to ensure data integrity.
"""

import sqlite3

import pytest

from src.core.errors import PersistenceError


class TestRaidSettings:
    """Tests for the versioned settings record."""

    def test_missing_settings_returns_none(self, test_db):
        assert test_db.get_raid_settings(1) is None

    def test_update_and_get(self, test_db):
        test_db.update_raid_settings(1, {"enabled": True, "join_threshold": 7}, 1)
        record = test_db.get_raid_settings(1)
        assert record["version"] == 1
        assert record["data"] == {"enabled": True, "join_threshold": 7}

    def test_update_replaces_whole_blob(self, test_db):
        test_db.update_raid_settings(1, {"enabled": True, "join_threshold": 7}, 1)
        test_db.update_raid_settings(1, {"enabled": False}, 1)
        assert test_db.get_raid_settings(1)["data"] == {"enabled": False}

    def test_settings_are_per_guild(self, test_db):
        test_db.update_raid_settings(1, {"enabled": True}, 1)
        assert test_db.get_raid_settings(2) is None


class TestRaidIncidents:
    """Tests for the append-only incident log."""

    def test_append_returns_row_id(self, test_db):
        row_id = test_db.append_raid_incident(1, "RAID_DETECTED", "SEVERE", "20 joins", "lockdown", [10, 11])
        assert row_id > 0

    def test_recent_incidents_newest_first(self, test_db):
        test_db.append_raid_incident(1, "RAID_DETECTED", "MODERATE", "first", "kick", [1], created_at=100.0)
        test_db.append_raid_incident(1, "SUSPICIOUS_MEMBER", None, "second", "kick", [2], created_at=200.0)
        test_db.append_raid_incident(1, "SIMILAR_USERNAMES", None, "third", "flagged", [3, 4], created_at=300.0)

        incidents = test_db.get_recent_raid_incidents(1, limit=2)

        assert [i["details"] for i in incidents] == ["third", "second"]
        assert incidents[0]["affected_users"] == [3, 4]
        assert incidents[1]["severity"] is None

    def test_recent_incidents_scoped_to_guild(self, test_db):
        test_db.append_raid_incident(1, "RAID_DETECTED", "LOW", "a", "kick", [])
        test_db.append_raid_incident(2, "RAID_DETECTED", "LOW", "b", "kick", [])
        assert [i["details"] for i in test_db.get_recent_raid_incidents(2)] == ["b"]


class TestJoinEvents:
    """Tests for join event storage."""

    def test_add_and_query_window(self, test_db):
        for offset in (0, 5, 10, 20):
            test_db.add_join_event(1, 100 + offset, 1000.0 + offset)

        rows = test_db.get_join_events(1, 1005.0, 1010.0)

        assert [r["user_id"] for r in rows] == [105, 110]

    def test_query_is_ascending(self, test_db):
        test_db.add_join_event(1, 2, 2000.0)
        test_db.add_join_event(1, 1, 1000.0)
        rows = test_db.get_join_events(1, 0, 3000.0)
        assert [r["joined_at"] for r in rows] == [1000.0, 2000.0]

    def test_duplicate_join_ignored(self, test_db):
        assert test_db.add_join_event(1, 5, 1000.0) is True
        assert test_db.add_join_event(1, 5, 1000.0) is False
        assert len(test_db.get_join_events(1, 0, 2000.0)) == 1

    def test_delete_before_cutoff(self, test_db):
        test_db.add_join_event(1, 1, 100.0)
        test_db.add_join_event(1, 2, 200.0)
        test_db.add_join_event(2, 3, 100.0)

        removed = test_db.delete_join_events_before(1, 150.0)

        assert removed == 1
        assert [r["user_id"] for r in test_db.get_join_events(1, 0, 1000.0)] == [2]
        assert len(test_db.get_join_events(2, 0, 1000.0)) == 1


class TestLockdownState:
    """Tests for lockdown state and overwrite snapshots."""

    def test_start_and_end_lockdown(self, test_db):
        assert test_db.is_locked(1) is False

        test_db.start_lockdown(1, locked_by=42, reason="raid", channel_count=3)
        state = test_db.get_lockdown_state(1)

        assert test_db.is_locked(1) is True
        assert state["locked_by"] == 42
        assert state["channel_count"] == 3

        test_db.end_lockdown(1)
        assert test_db.is_locked(1) is False
        assert test_db.get_lockdown_state(1) is None

    def test_snapshot_with_and_without_overwrite(self, test_db):
        test_db.save_channel_overwrite(1, 10, 2048, 64)
        test_db.save_channel_overwrite(1, 11, None, None)

        snapshots = {s["channel_id"]: s for s in test_db.get_channel_overwrites(1)}

        assert snapshots[10] == {"channel_id": 10, "has_overwrite": True, "allow_bits": 2048, "deny_bits": 64}
        assert snapshots[11]["has_overwrite"] is False
        assert snapshots[11]["allow_bits"] is None

    def test_end_lockdown_clears_snapshots(self, test_db):
        test_db.start_lockdown(1, locked_by=42)
        test_db.save_channel_overwrite(1, 10, 0, 2048)
        test_db.end_lockdown(1)
        assert test_db.get_channel_overwrites(1) == []


class TestPersistenceErrors:
    """sqlite3 failures surface as PersistenceError."""

    def test_closed_connection_reconnects(self, test_db):
        test_db.close()
        test_db.update_raid_settings(1, {"enabled": True}, 1)
        assert test_db.get_raid_settings(1)["data"] == {"enabled": True}

    def test_bad_query_wrapped(self, test_db):
        with pytest.raises(PersistenceError) as exc_info:
            test_db.execute("SELECT * FROM no_such_table")
        assert exc_info.value.operation == "SELECT"
        assert isinstance(exc_info.value.cause, sqlite3.Error)
