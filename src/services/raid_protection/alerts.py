"""
RaidGuard - Raid Alerts
=======================

Embed rendering for raid incidents and delivery to the alert channel.

DESIGN:
    Delivery is best-effort. A missing, deleted or unreachable alert
    channel is logged and the alert is dropped; the protective action
    has already run by the time an alert is sent.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import Iterable, Optional

import discord

from src.core.config import EmbedColors, NY_TZ
from src.core.constants import EMBED_FIELD_MAX, MS_PER_SECOND, SECONDS_PER_MINUTE
from src.core.logger import logger
from src.services.raid_protection.models import (
    ActionType,
    BulkActionResult,
    IncidentType,
    JoinIntervalStats,
    RaidIncident,
    RaidProtectionSettings,
    Severity,
)
from src.utils.discord_rate_limit import log_http_error, send_message_with_retry
from src.utils.footer import set_footer


# =============================================================================
# Display Maps
# =============================================================================

SEVERITY_COLORS = {
    Severity.LOW: EmbedColors.SEVERITY_LOW,
    Severity.MODERATE: EmbedColors.SEVERITY_MODERATE,
    Severity.SEVERE: EmbedColors.SEVERITY_SEVERE,
}

SEVERITY_EMOJI = {
    Severity.LOW: "🟡",
    Severity.MODERATE: "🟠",
    Severity.SEVERE: "🔴",
}

ACTION_LABELS = {
    ActionType.LOCKDOWN: "🔒 Lockdown",
    ActionType.BAN: "🔨 Ban",
    ActionType.KICK: "👢 Kick",
}

INCIDENT_TITLES = {
    IncidentType.RAID_DETECTED: "🚨 Raid Detected",
    IncidentType.SUSPICIOUS_MEMBER: "⚠️ Suspicious Member",
    IncidentType.SIMILAR_USERNAMES: "👥 Similar Usernames",
}


# =============================================================================
# Formatting Helpers
# =============================================================================

def format_duration_ms(duration_ms: int) -> str:
    """Render milliseconds as e.g. '5m' or '45s'."""
    seconds = duration_ms // MS_PER_SECOND
    if seconds >= SECONDS_PER_MINUTE and seconds % SECONDS_PER_MINUTE == 0:
        return f"{seconds // SECONDS_PER_MINUTE}m"
    return f"{seconds}s"


def format_user_list(user_ids: Iterable[int], limit: int = EMBED_FIELD_MAX) -> str:
    """Mention list that fits in one embed field."""
    text = ""
    ids = list(user_ids)
    for index, user_id in enumerate(ids):
        piece = f"<@{user_id}>" if not text else f", <@{user_id}>"
        suffix = f" (+{len(ids) - index} more)"
        if len(text) + len(piece) + len(suffix) > limit:
            return text + suffix
        text += piece
    return text or "None"


def describe_bulk_result(result: BulkActionResult) -> str:
    verb = "banned" if result.action == ActionType.BAN else "kicked"
    text = f"{result.success_count}/{result.total} {verb}"
    if result.failed:
        text += f", {len(result.failed)} failed"
    if result.skipped:
        text += f", {len(result.skipped)} already gone"
    return text


# =============================================================================
# Embed Builders
# =============================================================================

def build_raid_embed(
    severity: Severity,
    join_count: int,
    settings: RaidProtectionSettings,
    stats: Optional[JoinIntervalStats],
    outcome: str,
) -> discord.Embed:
    """Alert for a raid-level detection."""
    window = format_duration_ms(settings.join_time_window_ms)
    embed = discord.Embed(
        title=INCIDENT_TITLES[IncidentType.RAID_DETECTED],
        description=f"**{join_count}** accounts joined in the last **{window}**.",
        color=SEVERITY_COLORS[severity],
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Severity", value=f"{SEVERITY_EMOJI[severity]} {severity.name}", inline=True)
    embed.add_field(name="Threshold", value=f"{settings.join_threshold} / {window}", inline=True)
    embed.add_field(name="Action", value=ACTION_LABELS[settings.action_type], inline=True)

    if stats is not None and stats.total > 1:
        cadence = f"avg {stats.average_interval:.2f}s, σ {stats.std_dev:.2f}s"
        if stats.is_unnatural:
            cadence += "\n⚠️ Machine-like join timing"
        embed.add_field(name="Join Cadence", value=cadence, inline=False)

    embed.add_field(name="Result", value=outcome[:EMBED_FIELD_MAX], inline=False)
    return set_footer(embed)


def build_incident_embed(incident: RaidIncident) -> discord.Embed:
    """Alert for a single-account or name-group incident."""
    embed = discord.Embed(
        title=INCIDENT_TITLES[incident.incident_type],
        description=incident.details[:EMBED_FIELD_MAX],
        color=EmbedColors.WARNING,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Action", value=incident.action_taken or "None", inline=True)
    embed.add_field(name="Accounts", value=format_user_list(incident.affected_users), inline=False)
    return set_footer(embed)


def build_lockdown_embed(
    channels: int,
    reason: str,
    auto_unlock_ms: Optional[int] = None,
) -> discord.Embed:
    embed = discord.Embed(
        title="🔒 Server Locked",
        description=reason[:EMBED_FIELD_MAX],
        color=EmbedColors.RED,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Channels", value=str(channels), inline=True)
    if auto_unlock_ms:
        unlock_at = int(datetime.now(NY_TZ).timestamp()) + auto_unlock_ms // MS_PER_SECOND
        embed.add_field(name="Auto-Unlock", value=f"<t:{unlock_at}:R>", inline=True)
    return set_footer(embed)


def build_unlock_embed(channels: int, automatic: bool) -> discord.Embed:
    embed = discord.Embed(
        title="🔓 Lockdown Lifted",
        description=(
            "The automatic lockdown has expired."
            if automatic else
            "The lockdown was ended manually."
        ),
        color=EmbedColors.SUCCESS,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Channels Restored", value=str(channels), inline=True)
    return set_footer(embed)


# =============================================================================
# Delivery
# =============================================================================

async def _resolve_alert_channel(
    guild: discord.Guild,
    channel_id: int,
) -> Optional[discord.abc.Messageable]:
    channel = guild.get_channel(channel_id)
    if channel is not None:
        return channel
    try:
        return await guild.fetch_channel(channel_id)
    except discord.NotFound:
        logger.warning("Alert Channel Not Found", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel ID", str(channel_id)),
        ])
    except discord.HTTPException as e:
        log_http_error(e, "Alert Channel Fetch", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel ID", str(channel_id)),
        ])
    return None


async def send_alert(
    guild: discord.Guild,
    settings: RaidProtectionSettings,
    embed: discord.Embed,
    ping: bool = False,
) -> Optional[discord.Message]:
    """
    Post an alert to the configured alert channel.

    Returns:
        The sent message, or None if no channel is configured or delivery failed.
    """
    if not settings.alert_channel_id:
        return None

    channel = await _resolve_alert_channel(guild, settings.alert_channel_id)
    if channel is None:
        return None

    content = None
    if ping and settings.notify_role_id:
        content = f"<@&{settings.notify_role_id}>"

    message = await send_message_with_retry(
        channel,
        content=content,
        embed=embed,
        allowed_mentions=discord.AllowedMentions(roles=True, users=False, everyone=False),
    )
    if message is None:
        logger.warning("Raid Alert Not Delivered", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel ID", str(settings.alert_channel_id)),
        ])
    return message


__all__ = [
    "SEVERITY_COLORS",
    "ACTION_LABELS",
    "INCIDENT_TITLES",
    "format_duration_ms",
    "format_user_list",
    "describe_bulk_result",
    "build_raid_embed",
    "build_incident_embed",
    "build_lockdown_embed",
    "build_unlock_embed",
    "send_alert",
]
