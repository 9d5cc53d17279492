"""
RaidGuard - Join Velocity Tests
===============================

Tests for the join tracker, interval statistics and severity classifier.
"""

from unittest.mock import MagicMock

from src.core.errors import PersistenceError
from src.services.raid_protection.models import JoinRecord, RaidProtectionSettings, Severity
from src.services.raid_protection.severity import classify_severity, join_rate, recent_joins_for
from src.services.raid_protection.velocity import JoinVelocityTracker, join_interval_stats


def _joins(count, start=0.0, step=1.0, guild_id=1):
    return [JoinRecord(guild_id, 100 + i, start + i * step) for i in range(count)]


# =============================================================================
# Tracker
# =============================================================================

class TestJoinVelocityTracker:
    """Tests for windowed join queries."""

    def test_recent_joins_inside_window(self, test_db, clock):
        tracker = JoinVelocityTracker(test_db, clock=clock)
        start = clock.now
        for i in range(5):
            tracker.record(1, 100 + i, start + i * 3)
        clock.now = start + 12

        recent = tracker.get_recent_joins(1, 10_000)

        assert [r.user_id for r in recent] == [101, 102, 103, 104]
        assert [r.joined_at for r in recent] == sorted(r.joined_at for r in recent)

    def test_window_boundary_is_inclusive(self, test_db, clock):
        tracker = JoinVelocityTracker(test_db, clock=clock)
        tracker.record(1, 1, clock.now - 10)
        assert [r.user_id for r in tracker.get_recent_joins(1, 10_000)] == [1]

    def test_record_defaults_to_clock(self, test_db, clock):
        tracker = JoinVelocityTracker(test_db, clock=clock)
        tracker.record(1, 7)
        assert tracker.get_recent_joins(1, 1_000)[0].joined_at == clock.now

    def test_guilds_are_independent(self, test_db, clock):
        tracker = JoinVelocityTracker(test_db, clock=clock)
        tracker.record(1, 1)
        tracker.record(2, 2)
        assert [r.user_id for r in tracker.get_recent_joins(2, 10_000)] == [2]

    def test_prune_removes_old_records(self, test_db, clock):
        tracker = JoinVelocityTracker(test_db, clock=clock)
        tracker.record(1, 1, clock.now - 2 * 86400)
        tracker.record(1, 2, clock.now - 60)

        assert tracker.prune(1) == 1
        assert [r.user_id for r in tracker.get_recent_joins(1, 3_600_000)] == [2]

    def test_store_failure_degrades(self, clock):
        db = MagicMock()
        db.add_join_event.side_effect = PersistenceError("INSERT", Exception("disk full"))
        db.get_join_events.side_effect = PersistenceError("SELECT", Exception("disk full"))
        db.delete_join_events_before.side_effect = PersistenceError("DELETE", Exception("disk full"))
        tracker = JoinVelocityTracker(db, clock=clock)

        tracker.record(1, 1)
        assert tracker.get_recent_joins(1, 10_000) == []
        assert tracker.prune(1) == 0


# =============================================================================
# Interval Statistics
# =============================================================================

class TestJoinIntervalStats:
    """Tests for join cadence analysis."""

    def test_too_few_joins(self):
        stats = join_interval_stats(_joins(1))
        assert stats.total == 1
        assert stats.is_unnatural is False

    def test_regular_cadence_is_unnatural(self):
        stats = join_interval_stats(_joins(8, step=0.5))
        assert stats.average_interval == 0.5
        assert stats.std_dev == 0.0
        assert stats.is_unnatural is True

    def test_irregular_cadence_is_natural(self):
        times = [0.0, 0.1, 5.0, 5.2, 12.0, 12.1, 30.0, 31.0]
        records = [JoinRecord(1, i, t) for i, t in enumerate(times)]
        assert join_interval_stats(records).is_unnatural is False

    def test_needs_more_than_five_intervals(self):
        assert join_interval_stats(_joins(6, step=1.0)).is_unnatural is False
        assert join_interval_stats(_joins(7, step=1.0)).is_unnatural is True


# =============================================================================
# Severity
# =============================================================================

class TestClassifySeverity:
    """Tests for the severity tiers."""

    SETTINGS = RaidProtectionSettings(join_threshold=5, join_time_window_ms=10_000)

    def test_below_threshold_is_low(self):
        assert classify_severity(_joins(4), self.SETTINGS) == Severity.LOW

    def test_at_threshold_is_moderate(self):
        assert classify_severity(_joins(5), self.SETTINGS) == Severity.MODERATE

    def test_double_threshold_is_severe(self):
        assert classify_severity(_joins(10), self.SETTINGS) == Severity.SEVERE

    def test_empty_is_low(self):
        assert classify_severity([], self.SETTINGS) == Severity.LOW

    def test_zero_window_is_low(self):
        settings = RaidProtectionSettings(join_threshold=5, join_time_window_ms=0)
        assert classify_severity(_joins(50), settings) == Severity.LOW

    def test_monotone_in_join_count(self):
        tiers = [classify_severity(_joins(n), self.SETTINGS) for n in range(0, 25)]
        assert tiers == sorted(tiers)

    def test_join_rate(self):
        assert join_rate(_joins(5), self.SETTINGS) == 0.5

    def test_recent_joins_for_uses_settings_window(self):
        tracker = MagicMock()
        tracker.get_recent_joins.return_value = []
        recent_joins_for(tracker, 1, self.SETTINGS)
        tracker.get_recent_joins.assert_called_once_with(1, 10_000)
