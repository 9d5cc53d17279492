"""
RaidGuard - Raid Protection Package
===================================

Join velocity tracking, account and message heuristics, channel lockdown
and the orchestrating service.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from src.services.raid_protection.admin import (
    RaidSettingsService,
    build_incidents_embed,
    build_settings_embed,
)
from src.services.raid_protection.heuristics import (
    find_similar_usernames,
    is_exempt,
    is_suspicious_new_account,
    username_similarity,
)
from src.services.raid_protection.lockdown import LOCKED_PERMISSIONS, LockdownController
from src.services.raid_protection.models import (
    SETTINGS_VERSION,
    ActionType,
    ActiveRaid,
    BulkActionResult,
    IncidentType,
    JoinIntervalStats,
    JoinRecord,
    LockdownResult,
    RaidIncident,
    RaidProtectionSettings,
    RaidState,
    Severity,
)
from src.services.raid_protection.patterns import (
    MessagePatternTracker,
    MessageSummary,
    is_suspicious_pattern,
)
from src.services.raid_protection.service import RaidProtectionService
from src.services.raid_protection.severity import classify_severity, recent_joins_for
from src.services.raid_protection.velocity import JoinVelocityTracker, join_interval_stats

__all__ = [
    # Service
    "RaidProtectionService",
    "RaidSettingsService",
    "LockdownController",
    "JoinVelocityTracker",
    "MessagePatternTracker",

    # Pure functions
    "classify_severity",
    "recent_joins_for",
    "join_interval_stats",
    "is_exempt",
    "is_suspicious_new_account",
    "username_similarity",
    "find_similar_usernames",
    "is_suspicious_pattern",
    "build_settings_embed",
    "build_incidents_embed",

    # Models
    "SETTINGS_VERSION",
    "LOCKED_PERMISSIONS",
    "ActionType",
    "ActiveRaid",
    "BulkActionResult",
    "IncidentType",
    "JoinIntervalStats",
    "JoinRecord",
    "LockdownResult",
    "MessageSummary",
    "RaidIncident",
    "RaidProtectionSettings",
    "RaidState",
    "Severity",
]
