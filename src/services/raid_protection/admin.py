"""
RaidGuard - Raid Settings Service
=================================

Administrative surface over per-guild raid protection settings.

DESIGN:
    Every mutation reads the current record, builds a new immutable one
    with dataclasses.replace() and persists it. Reads used by the engine
    degrade to defaults on a store failure; reads that precede a write do
    not, so a failed read can never overwrite stored settings with defaults.

    Invalid values raise ConfigurationError for the command layer to show.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import discord

from src.core.config import EmbedColors, NY_TZ
from src.core.constants import (
    ACCOUNT_AGE_DAYS_MAX,
    INCIDENT_LIST_DEFAULT,
    INCIDENT_LIST_MAX,
    JOIN_THRESHOLD_MAX,
    JOIN_THRESHOLD_MIN,
    JOIN_WINDOW_SECONDS_MAX,
    JOIN_WINDOW_SECONDS_MIN,
    MS_PER_SECOND,
)
from src.core.database import DatabaseManager
from src.core.errors import ConfigurationError, PersistenceError
from src.core.logger import logger
from src.services.raid_protection.alerts import (
    ACTION_LABELS,
    INCIDENT_TITLES,
    SEVERITY_EMOJI,
    format_duration_ms,
)
from src.services.raid_protection.models import (
    SETTINGS_VERSION,
    ActionType,
    RaidIncident,
    RaidProtectionSettings,
)
from src.utils.footer import set_footer


class RaidSettingsService:
    """Settings mutations and incident queries for one bot instance."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    # =========================================================================
    # Reads
    # =========================================================================

    def get_settings(self, guild_id: int, strict: bool = False) -> RaidProtectionSettings:
        """
        Get settings for a guild, defaulted when never saved.

        Args:
            strict: Re-raise PersistenceError instead of returning defaults.
        """
        try:
            record = self.db.get_raid_settings(guild_id)
        except PersistenceError as e:
            if strict:
                raise
            logger.warning("Raid Settings Read Failed - Using Defaults", [
                ("Guild ID", str(guild_id)),
                ("Error", str(e)),
            ])
            return RaidProtectionSettings()

        if record is None:
            return RaidProtectionSettings()
        return RaidProtectionSettings.from_dict(record["data"])

    def list_incidents(self, guild_id: int, limit: int = INCIDENT_LIST_DEFAULT) -> List[RaidIncident]:
        """Most recent incidents, newest first."""
        if not 1 <= limit <= INCIDENT_LIST_MAX:
            raise ConfigurationError(f"Limit must be between 1 and {INCIDENT_LIST_MAX}")
        records = self.db.get_recent_raid_incidents(guild_id, limit)
        return [RaidIncident.from_record(r) for r in records]

    # =========================================================================
    # Mutations
    # =========================================================================

    def _update(
        self,
        guild_id: int,
        build: Callable[[RaidProtectionSettings], Dict[str, Any]],
    ) -> RaidProtectionSettings:
        """Read, apply the changes returned by build(current), persist."""
        current = self.get_settings(guild_id, strict=True)
        changes = build(current)
        updated = replace(current, **changes)
        self.db.update_raid_settings(guild_id, updated.to_dict(), SETTINGS_VERSION)

        logger.tree("Raid Settings Updated", [
            ("Guild ID", str(guild_id)),
            *((name, str(getattr(updated, name))) for name in changes),
        ], emoji="⚙️")
        return updated

    def set_enabled(self, guild_id: int, enabled: bool) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"enabled": bool(enabled)})

    def set_action_type(self, guild_id: int, action: str) -> RaidProtectionSettings:
        try:
            action_type = ActionType(action)
        except ValueError:
            options = ", ".join(a.value for a in ActionType)
            raise ConfigurationError(f"Action must be one of: {options}") from None
        return self._update(guild_id, lambda s: {"action_type": action_type})

    def set_join_threshold(self, guild_id: int, joins: int, seconds: int) -> RaidProtectionSettings:
        """Set the raid threshold as `joins` within `seconds`."""
        if not JOIN_THRESHOLD_MIN <= joins <= JOIN_THRESHOLD_MAX:
            raise ConfigurationError(
                f"Join threshold must be between {JOIN_THRESHOLD_MIN} and {JOIN_THRESHOLD_MAX}"
            )
        if not JOIN_WINDOW_SECONDS_MIN <= seconds <= JOIN_WINDOW_SECONDS_MAX:
            raise ConfigurationError(
                f"Time window must be between {JOIN_WINDOW_SECONDS_MIN} and {JOIN_WINDOW_SECONDS_MAX} seconds"
            )
        return self._update(guild_id, lambda s: {
            "join_threshold": joins,
            "join_time_window_ms": seconds * MS_PER_SECOND,
        })

    def set_account_age(self, guild_id: int, days: int) -> RaidProtectionSettings:
        if not 0 <= days <= ACCOUNT_AGE_DAYS_MAX:
            raise ConfigurationError(f"Account age must be between 0 and {ACCOUNT_AGE_DAYS_MAX} days")
        return self._update(guild_id, lambda s: {"account_age_days_min": days})

    def add_exempt_role(self, guild_id: int, role_id: int) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"exempt_roles": s.exempt_roles | {role_id}})

    def remove_exempt_role(self, guild_id: int, role_id: int) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"exempt_roles": s.exempt_roles - {role_id}})

    def add_exempt_channel(self, guild_id: int, channel_id: int) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"exempt_channels": s.exempt_channels | {channel_id}})

    def remove_exempt_channel(self, guild_id: int, channel_id: int) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"exempt_channels": s.exempt_channels - {channel_id}})

    def set_alert_channel(self, guild_id: int, channel_id: Optional[int]) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"alert_channel_id": channel_id})

    def set_notify_role(self, guild_id: int, role_id: Optional[int]) -> RaidProtectionSettings:
        return self._update(guild_id, lambda s: {"notify_role_id": role_id})


# =============================================================================
# Embeds
# =============================================================================

def _id_list(ids, prefix: str) -> str:
    if not ids:
        return "None"
    return ", ".join(f"<{prefix}{i}>" for i in sorted(ids))


def build_settings_embed(settings: RaidProtectionSettings) -> discord.Embed:
    """Current configuration, as shown by the settings view command."""
    embed = discord.Embed(
        title="🛡️ Raid Protection Settings",
        color=EmbedColors.SUCCESS if settings.enabled else EmbedColors.RED,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Status", value="✅ Enabled" if settings.enabled else "❌ Disabled", inline=True)
    embed.add_field(name="Action", value=ACTION_LABELS[settings.action_type], inline=True)
    embed.add_field(
        name="Join Threshold",
        value=f"{settings.join_threshold} joins / {format_duration_ms(settings.join_time_window_ms)}",
        inline=True,
    )
    embed.add_field(name="Min Account Age", value=f"{settings.account_age_days_min} days", inline=True)
    embed.add_field(name="Name Similarity", value=f"{settings.similar_name_threshold:.0%}", inline=True)
    embed.add_field(name="Mention Limit", value=str(settings.mention_threshold), inline=True)
    embed.add_field(
        name="Alert Channel",
        value=f"<#{settings.alert_channel_id}>" if settings.alert_channel_id else "Not set",
        inline=True,
    )
    embed.add_field(
        name="Notify Role",
        value=f"<@&{settings.notify_role_id}>" if settings.notify_role_id else "Not set",
        inline=True,
    )
    embed.add_field(
        name="Lockdown Duration",
        value=format_duration_ms(settings.lockdown_duration_ms),
        inline=True,
    )
    embed.add_field(name="Exempt Roles", value=_id_list(settings.exempt_roles, "@&"), inline=False)
    embed.add_field(name="Exempt Channels", value=_id_list(settings.exempt_channels, "#"), inline=False)
    return set_footer(embed)


def build_incidents_embed(incidents: List[RaidIncident]) -> discord.Embed:
    embed = discord.Embed(
        title="📋 Recent Raid Incidents",
        color=EmbedColors.INFO,
        timestamp=datetime.now(NY_TZ),
    )
    if not incidents:
        embed.description = "No incidents recorded."
        return set_footer(embed)

    for incident in incidents:
        title = INCIDENT_TITLES[incident.incident_type]
        if incident.severity is not None:
            title = f"{title} {SEVERITY_EMOJI[incident.severity]}"
        embed.add_field(
            name=title,
            value=(
                f"<t:{int(incident.timestamp)}:R>\n"
                f"{incident.details[:200]}\n"
                f"Action: {incident.action_taken or 'None'} · {len(incident.affected_users)} account(s)"
            ),
            inline=False,
        )
    return set_footer(embed)


__all__ = [
    "RaidSettingsService",
    "build_settings_embed",
    "build_incidents_embed",
]
