"""
RaidGuard - Moderation Primitives
=================================

Ban and kick calls that report per-member success instead of raising.

DESIGN:
    A batch never aborts on one rejected member. Each call returns
    (ok, error); bulk_moderate() collects them into a BulkActionResult.
    A member who already left (NotFound) is counted as skipped.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from typing import Iterable, Optional, Tuple

import discord

from src.core.constants import BAN_DELETE_MESSAGE_SECONDS, MAX_CONCURRENT_OPS
from src.core.errors import ExternalActionFailure
from src.core.logger import logger
from src.services.raid_protection.models import ActionType, BulkActionResult
from src.utils.discord_rate_limit import log_http_error


# Error text returned when the target no longer exists
MEMBER_GONE = "Member not found"


async def _run(
    action: ActionType,
    member: discord.abc.Snowflake,
    call,
) -> Tuple[bool, Optional[str]]:
    try:
        await call
        return True, None
    except discord.NotFound:
        logger.debug(f"{action.value.title()} Skipped - Member Gone", [
            ("User ID", str(member.id)),
        ])
        return False, MEMBER_GONE
    except discord.Forbidden as e:
        log_http_error(e, f"Raid {action.value.title()}", [("User ID", str(member.id))])
        return False, "Missing permissions"
    except discord.HTTPException as e:
        log_http_error(e, f"Raid {action.value.title()}", [("User ID", str(member.id))])
        return False, f"HTTP {e.status}"


async def ban_member(
    guild: discord.Guild,
    member: discord.abc.Snowflake,
    reason: str,
) -> Tuple[bool, Optional[str]]:
    """Ban a member and purge their last week of messages."""
    return await _run(
        ActionType.BAN,
        member,
        guild.ban(member, reason=reason, delete_message_seconds=BAN_DELETE_MESSAGE_SECONDS),
    )


async def kick_member(member: discord.Member, reason: str) -> Tuple[bool, Optional[str]]:
    return await _run(ActionType.KICK, member, member.kick(reason=reason))


async def moderate_member(
    guild: discord.Guild,
    member: discord.Member,
    action: ActionType,
    reason: str,
) -> Tuple[bool, Optional[str]]:
    """Apply a single-account action. LOCKDOWN has no per-account form."""
    if action == ActionType.BAN:
        return await ban_member(guild, member, reason)
    if action == ActionType.KICK:
        return await kick_member(member, reason)
    return False, None


async def bulk_moderate(
    guild: discord.Guild,
    members: Iterable[discord.Member],
    action: ActionType,
    reason: str,
) -> BulkActionResult:
    """
    Best-effort batch ban or kick.

    Members are processed concurrently, bounded by MAX_CONCURRENT_OPS.
    Every member ends up in exactly one of succeeded, failed or skipped.
    """
    result = BulkActionResult(action=action)
    members = list(members)
    if action == ActionType.LOCKDOWN or not members:
        return result

    semaphore = asyncio.Semaphore(MAX_CONCURRENT_OPS)

    async def one(member: discord.Member) -> None:
        async with semaphore:
            ok, error = await moderate_member(guild, member, action, reason)
        if ok:
            result.succeeded.append(member.id)
        elif error == MEMBER_GONE:
            result.skipped.append(member.id)
        else:
            result.failed.append(ExternalActionFailure(member.id, action.value, error or "Unknown"))

    await asyncio.gather(*(one(m) for m in members))

    logger.tree(f"Bulk {action.value.title()} Complete", [
        ("Guild", f"{guild.name} ({guild.id})"),
        ("Succeeded", str(len(result.succeeded))),
        ("Failed", str(len(result.failed))),
        ("Skipped", str(len(result.skipped))),
        ("Reason", reason),
    ], emoji="🔨" if action == ActionType.BAN else "👢")

    return result


__all__ = [
    "MEMBER_GONE",
    "ban_member",
    "kick_member",
    "moderate_member",
    "bulk_moderate",
]
