"""
RaidGuard - Raid Severity Classifier
====================================

Maps a recent-join set to a severity tier.

DESIGN:
    The rate is always normalized by settings.join_time_window_ms. Callers
    must query the join window with that same value, which is why
    recent_joins_for() exists: it is the only place the orchestrator
    obtains the set it classifies.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import List, Sequence, TYPE_CHECKING

from src.services.raid_protection.models import JoinRecord, RaidProtectionSettings, Severity

if TYPE_CHECKING:
    from src.services.raid_protection.velocity import JoinVelocityTracker


def classify_severity(recent_joins: Sequence[JoinRecord], settings: RaidProtectionSettings) -> Severity:
    """
    Classify join velocity.

    SEVERE at twice the threshold rate, MODERATE at the threshold rate,
    LOW otherwise. A non-positive window or threshold is always LOW.
    """
    window_s = settings.join_time_window_seconds
    if window_s <= 0 or settings.join_threshold <= 0:
        return Severity.LOW

    rate = len(recent_joins) / window_s
    threshold_rate = settings.join_threshold / window_s

    if rate >= 2 * threshold_rate:
        return Severity.SEVERE
    if rate >= threshold_rate:
        return Severity.MODERATE
    return Severity.LOW


def recent_joins_for(
    tracker: "JoinVelocityTracker",
    guild_id: int,
    settings: RaidProtectionSettings,
) -> List[JoinRecord]:
    """Query the join window the classifier normalizes against."""
    return tracker.get_recent_joins(guild_id, settings.join_time_window_ms)


def join_rate(recent_joins: Sequence[JoinRecord], settings: RaidProtectionSettings) -> float:
    """Joins per second over the configured window."""
    window_s = settings.join_time_window_seconds
    return len(recent_joins) / window_s if window_s > 0 else 0.0


__all__ = ["classify_severity", "recent_joins_for", "join_rate"]
