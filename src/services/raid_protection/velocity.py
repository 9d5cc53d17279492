"""
RaidGuard - Join Velocity Tracker
=================================

Records member joins and answers "how many joins in the last N ms".

DESIGN:
    Join records live in the database so a restart mid-raid keeps the
    window intact. Store failures are logged and never reach the caller:
    record() becomes a no-op and get_recent_joins() returns an empty list.
    Pruning is driven by the orchestrator's daily sweep, not per request.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import statistics
import time
from typing import Callable, List, Optional, Sequence

from src.core.constants import (
    JOIN_RETENTION_SECONDS,
    MS_PER_SECOND,
    UNNATURAL_MIN_INTERVALS,
    UNNATURAL_STD_RATIO,
)
from src.core.database import DatabaseManager
from src.core.errors import PersistenceError
from src.core.logger import logger
from src.services.raid_protection.models import JoinIntervalStats, JoinRecord


class JoinVelocityTracker:
    """Persistent join log with windowed queries."""

    def __init__(
        self,
        db: DatabaseManager,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self._clock = clock

    def record(self, guild_id: int, user_id: int, timestamp: Optional[float] = None) -> None:
        """Record a join. Duplicates are ignored."""
        joined_at = timestamp if timestamp is not None else self._clock()
        try:
            self.db.add_join_event(guild_id, user_id, joined_at)
        except PersistenceError as e:
            logger.warning("Join Record Failed", [
                ("Guild ID", str(guild_id)),
                ("User ID", str(user_id)),
                ("Error", str(e)),
            ])

    def get_recent_joins(self, guild_id: int, window_ms: int) -> List[JoinRecord]:
        """Joins in [now - window_ms, now], oldest first."""
        now = self._clock()
        since = now - window_ms / MS_PER_SECOND
        try:
            rows = self.db.get_join_events(guild_id, since, now)
        except PersistenceError as e:
            logger.warning("Join Window Query Failed", [
                ("Guild ID", str(guild_id)),
                ("Window", f"{window_ms}ms"),
                ("Error", str(e)),
            ])
            return []
        return [JoinRecord(r["guild_id"], r["user_id"], r["joined_at"]) for r in rows]

    def prune(self, guild_id: int) -> int:
        """Delete joins older than the retention window. Returns rows removed."""
        cutoff = self._clock() - JOIN_RETENTION_SECONDS
        try:
            removed = self.db.delete_join_events_before(guild_id, cutoff)
        except PersistenceError as e:
            logger.warning("Join Prune Failed", [
                ("Guild ID", str(guild_id)),
                ("Error", str(e)),
            ])
            return 0
        if removed:
            logger.debug("Join Records Pruned", [
                ("Guild ID", str(guild_id)),
                ("Removed", str(removed)),
            ])
        return removed


def join_interval_stats(records: Sequence[JoinRecord]) -> JoinIntervalStats:
    """
    Summarize the gaps between consecutive joins.

    Bots joining on a timer produce near-constant gaps, so a standard
    deviation well under the mean gap marks the cadence as unnatural.
    """
    times = sorted(r.joined_at for r in records)
    if len(times) < 2:
        return JoinIntervalStats(total=len(times), average_interval=0.0, std_dev=0.0, is_unnatural=False)

    intervals = [b - a for a, b in zip(times, times[1:])]
    average = statistics.fmean(intervals)
    std_dev = statistics.pstdev(intervals)

    return JoinIntervalStats(
        total=len(times),
        average_interval=average,
        std_dev=std_dev,
        is_unnatural=(
            len(intervals) > UNNATURAL_MIN_INTERVALS
            and std_dev < average * UNNATURAL_STD_RATIO
        ),
    )


__all__ = ["JoinVelocityTracker", "join_interval_stats"]
