"""
RaidGuard - Raid Protection Models
==================================

Settings record, enums and result types shared by the raid engine.

DESIGN:
    RaidProtectionSettings is a versioned record with explicit fields.
    Stored blobs are merged with defaults exactly once, in from_dict(),
    so the rest of the engine never sees a partial settings object.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from src.core.constants import MS_PER_SECOND
from src.core.errors import ExternalActionFailure


# =============================================================================
# Constants
# =============================================================================

SETTINGS_VERSION = 1


# =============================================================================
# Enums
# =============================================================================

class ActionType(str, Enum):
    """Containment action applied when protection fires."""
    LOCKDOWN = "lockdown"
    BAN = "ban"
    KICK = "kick"


class Severity(IntEnum):
    """Raid severity tier. Ordered LOW < MODERATE < SEVERE."""
    LOW = 0
    MODERATE = 1
    SEVERE = 2


class IncidentType(str, Enum):
    RAID_DETECTED = "RAID_DETECTED"
    SUSPICIOUS_MEMBER = "SUSPICIOUS_MEMBER"
    SIMILAR_USERNAMES = "SIMILAR_USERNAMES"


class RaidState(str, Enum):
    IDLE = "IDLE"
    RAID_ACTIVE = "RAID_ACTIVE"


# =============================================================================
# Settings
# =============================================================================

# Keys written by older deployments
_LEGACY_KEYS = {
    "actionType": "action_type",
    "joinThreshold": "join_threshold",
    "joinTimeWindow": "join_time_window_ms",
    "joinTimeWindowMs": "join_time_window_ms",
    "accountAgeDaysMin": "account_age_days_min",
    "similarNameThreshold": "similar_name_threshold",
    "mentionThreshold": "mention_threshold",
    "exemptRoles": "exempt_roles",
    "exemptChannels": "exempt_channels",
    "alertChannelId": "alert_channel_id",
    "notifyRoleId": "notify_role_id",
    "lockdownDuration": "lockdown_duration_ms",
    "lockdownDurationMs": "lockdown_duration_ms",
    "autoModeDuration": "auto_mode_duration_ms",
    "autoModeDurationMs": "auto_mode_duration_ms",
}


def _to_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (bool, int)):
        return bool(value)
    raise TypeError(f"not a boolean: {value!r}")


def _to_id_set(values: Any) -> FrozenSet[int]:
    if not values:
        return frozenset()
    ids = (_to_id(v) for v in values)
    return frozenset(i for i in ids if i is not None)


@dataclass(frozen=True)
class RaidProtectionSettings:
    """
    Per-guild raid protection configuration.

    Immutable; administrative operations build a new record with
    dataclasses.replace() and persist it.
    """

    enabled: bool = False
    action_type: ActionType = ActionType.KICK
    join_threshold: int = 10
    join_time_window_ms: int = 10_000
    account_age_days_min: int = 7
    similar_name_threshold: float = 0.85
    mention_threshold: int = 10
    exempt_roles: FrozenSet[int] = frozenset()
    exempt_channels: FrozenSet[int] = frozenset()
    alert_channel_id: Optional[int] = None
    notify_role_id: Optional[int] = None
    lockdown_duration_ms: int = 300_000
    auto_mode_duration_ms: int = 600_000

    @property
    def join_time_window_seconds(self) -> float:
        return self.join_time_window_ms / MS_PER_SECOND

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RaidProtectionSettings":
        """
        Build settings from a stored blob, filling missing keys with defaults.

        Unknown keys are ignored. Values that fail to parse fall back to the
        default for that field.
        """
        if not data:
            return cls()

        normalized: Dict[str, Any] = {}
        for key, value in data.items():
            normalized[_LEGACY_KEYS.get(key, key)] = value

        defaults = cls()

        def pick(name: str, cast):
            if name not in normalized or normalized[name] is None:
                return getattr(defaults, name)
            try:
                return cast(normalized[name])
            except (TypeError, ValueError):
                return getattr(defaults, name)

        return cls(
            enabled=pick("enabled", _to_bool),
            action_type=pick("action_type", ActionType),
            join_threshold=pick("join_threshold", int),
            join_time_window_ms=pick("join_time_window_ms", int),
            account_age_days_min=pick("account_age_days_min", int),
            similar_name_threshold=pick("similar_name_threshold", float),
            mention_threshold=pick("mention_threshold", int),
            exempt_roles=_to_id_set(normalized.get("exempt_roles")),
            exempt_channels=_to_id_set(normalized.get("exempt_channels")),
            alert_channel_id=_to_id(normalized.get("alert_channel_id")),
            notify_role_id=_to_id(normalized.get("notify_role_id")),
            lockdown_duration_ms=pick("lockdown_duration_ms", int),
            auto_mode_duration_ms=pick("auto_mode_duration_ms", int),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "enabled": self.enabled,
            "action_type": self.action_type.value,
            "join_threshold": self.join_threshold,
            "join_time_window_ms": self.join_time_window_ms,
            "account_age_days_min": self.account_age_days_min,
            "similar_name_threshold": self.similar_name_threshold,
            "mention_threshold": self.mention_threshold,
            "exempt_roles": sorted(self.exempt_roles),
            "exempt_channels": sorted(self.exempt_channels),
            "alert_channel_id": self.alert_channel_id,
            "notify_role_id": self.notify_role_id,
            "lockdown_duration_ms": self.lockdown_duration_ms,
            "auto_mode_duration_ms": self.auto_mode_duration_ms,
        }


# =============================================================================
# Records
# =============================================================================

@dataclass(frozen=True)
class JoinRecord:
    guild_id: int
    user_id: int
    joined_at: float


@dataclass(frozen=True)
class JoinIntervalStats:
    """Cadence of consecutive joins inside a window."""
    total: int
    average_interval: float
    std_dev: float
    is_unnatural: bool


@dataclass(frozen=True)
class RaidIncident:
    """Immutable audit record for one detection."""
    guild_id: int
    incident_type: IncidentType
    severity: Optional[Severity]
    details: str
    action_taken: str
    affected_users: Tuple[int, ...]
    timestamp: float
    id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RaidIncident":
        severity = record.get("severity")
        return cls(
            id=record.get("id"),
            guild_id=record["guild_id"],
            incident_type=IncidentType(record["incident_type"]),
            severity=Severity[severity] if severity in Severity.__members__ else None,
            details=record.get("details") or "",
            action_taken=record.get("action_taken") or "",
            affected_users=tuple(record.get("affected_users") or ()),
            timestamp=record["created_at"],
        )


@dataclass
class ActiveRaid:
    """Marker for a raid response in progress in one guild."""
    raid_id: str
    severity: Severity
    started_at: float
    decay_task: Optional[asyncio.Task] = None


# =============================================================================
# Results
# =============================================================================

@dataclass
class BulkActionResult:
    """Per-target outcome of a best-effort batch ban/kick."""
    action: ActionType
    succeeded: List[int] = field(default_factory=list)
    failed: List[ExternalActionFailure] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed) + len(self.skipped)


@dataclass
class LockdownResult:
    """Outcome of a lockdown or unlock pass over a guild's channels."""
    success_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)


__all__ = [
    "SETTINGS_VERSION",
    "ActionType",
    "Severity",
    "IncidentType",
    "RaidState",
    "RaidProtectionSettings",
    "JoinRecord",
    "JoinIntervalStats",
    "RaidIncident",
    "ActiveRaid",
    "BulkActionResult",
    "LockdownResult",
]
