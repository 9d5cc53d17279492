"""
RaidGuard - Database Type Definitions
=====================================

TypedDict definitions for database records.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import List, Optional, TypedDict


class RaidSettingsRecord(TypedDict, total=False):
    """Type for stored raid protection settings."""
    guild_id: int
    version: int
    data: dict
    updated_at: float


class RaidIncidentRecord(TypedDict, total=False):
    """Type for raid incident audit records."""
    id: int
    guild_id: int
    incident_type: str
    severity: Optional[str]
    details: Optional[str]
    action_taken: Optional[str]
    affected_users: List[int]
    created_at: float


class JoinEventRecord(TypedDict, total=False):
    """Type for recorded member joins."""
    guild_id: int
    user_id: int
    joined_at: float


class LockdownStateRecord(TypedDict, total=False):
    """Type for active lockdown state."""
    guild_id: int
    locked_at: float
    locked_by: int
    reason: Optional[str]
    channel_count: int
    unlock_at: Optional[float]


class ChannelOverwriteRecord(TypedDict, total=False):
    """
    Type for a pre-lockdown @everyone overwrite snapshot.

    has_overwrite False means the channel had no explicit overwrite.
    """
    channel_id: int
    has_overwrite: bool
    allow_bits: Optional[int]
    deny_bits: Optional[int]


__all__ = [
    "RaidSettingsRecord",
    "RaidIncidentRecord",
    "JoinEventRecord",
    "LockdownStateRecord",
    "ChannelOverwriteRecord",
]
