"""
RaidGuard - Lockdown Controller
===============================

Snapshots and mutates @everyone channel overwrites for a guild lockdown.

DESIGN:
    Before a channel is touched, its existing @everyone overwrite (the
    allow/deny bit pair, or "none") is persisted. Unlock restores that
    snapshot verbatim, so a channel that had no overwrite goes back to
    having none rather than an explicit False.

    Channel edits fan out concurrently behind a per-call semaphore. One
    failing channel is logged and counted, never aborting the rest.

    Auto-unlock is an asyncio.Task stored per guild. A manual unlock
    cancels it; the task removes itself from the map before it starts
    unlocking so it can never be cancelled halfway through.

    A lockdown whose edits all fail, or whose state cannot be saved, is
    discarded so it never blocks the next one. The auto-unlock deadline
    lives in lockdown_state and is re-armed after a restart.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import discord

from src.core.constants import LOG_TRUNCATE_SHORT, MAX_CONCURRENT_OPS, MS_PER_SECOND
from src.core.database import DatabaseManager
from src.core.errors import PersistenceError
from src.core.logger import logger
from src.services.raid_protection.models import LockdownResult, RaidProtectionSettings
from src.utils.async_utils import create_safe_task, gather_with_logging
from src.utils.discord_rate_limit import log_http_error


# =============================================================================
# Constants
# =============================================================================

# Permissions denied to @everyone while locked
LOCKED_PERMISSIONS: Tuple[str, ...] = (
    "send_messages",
    "add_reactions",
    "create_public_threads",
    "create_private_threads",
    "send_messages_in_threads",
)

AutoUnlockHook = Callable[[discord.Guild, int], Awaitable[None]]


# =============================================================================
# Helpers
# =============================================================================

def _is_lockable(channel: discord.abc.GuildChannel, settings: RaidProtectionSettings) -> bool:
    if isinstance(channel, discord.CategoryChannel):
        return False
    return channel.id not in settings.exempt_channels


def _carries_lock(overwrite: discord.PermissionOverwrite) -> bool:
    """True when every lockdown permission is explicitly denied."""
    return all(getattr(overwrite, name) is False for name in LOCKED_PERMISSIONS)


def _label(channel: discord.abc.GuildChannel) -> str:
    return f"#{channel.name} ({channel.id})"


async def _apply_overwrite(
    channel: discord.abc.GuildChannel,
    everyone: discord.Role,
    overwrite: Optional[discord.PermissionOverwrite],
    reason: str,
    operation: str,
) -> Tuple[bool, Optional[str]]:
    """
    Set (or remove, when overwrite is None) the @everyone overwrite.

    Returns:
        (success, error). A deleted channel returns (True, None) with
        nothing left to do.
    """
    try:
        await channel.set_permissions(everyone, overwrite=overwrite, reason=reason)
        return True, None

    except discord.NotFound:
        logger.debug(f"{operation} Skipped - Channel Gone", [
            ("Channel", _label(channel)),
        ])
        return True, None

    except discord.Forbidden:
        logger.warning(f"{operation} Failed", [
            ("Channel", _label(channel)),
            ("Error", "Forbidden - missing permissions"),
        ])
        return False, f"#{channel.name}: Missing permissions"

    except discord.HTTPException as e:
        log_http_error(e, operation, [("Channel", _label(channel))])
        text = e.text[:LOG_TRUNCATE_SHORT] if e.text else "HTTP error"
        return False, f"#{channel.name}: {text}"


def _tally(result: LockdownResult, outcomes: List) -> None:
    for outcome in outcomes:
        if isinstance(outcome, Exception):
            result.failed_count += 1
            result.errors.append(str(outcome)[:LOG_TRUNCATE_SHORT])
            continue
        success, error = outcome
        if success:
            result.success_count += 1
        else:
            result.failed_count += 1
            if error:
                result.errors.append(error)


# =============================================================================
# Lockdown Controller
# =============================================================================

class LockdownController:
    """Per-guild channel lockdown with persisted snapshots and auto-unlock."""

    def __init__(
        self,
        db: DatabaseManager,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self._clock = clock
        self.on_auto_unlock: Optional[AutoUnlockHook] = None

        self._unlock_tasks: Dict[int, asyncio.Task] = {}
        self._guild_locks: Dict[int, asyncio.Lock] = {}

    def _guild_lock(self, guild_id: int) -> asyncio.Lock:
        lock = self._guild_locks.get(guild_id)
        if lock is None:
            lock = asyncio.Lock()
            self._guild_locks[guild_id] = lock
        return lock

    # =========================================================================
    # State
    # =========================================================================

    def is_locked(self, guild_id: int) -> bool:
        try:
            return self.db.is_locked(guild_id)
        except PersistenceError as e:
            logger.warning("Lockdown State Read Failed", [
                ("Guild ID", str(guild_id)),
                ("Error", str(e)),
            ])
            return False

    def has_scheduled_unlock(self, guild_id: int) -> bool:
        task = self._unlock_tasks.get(guild_id)
        return task is not None and not task.done()

    # =========================================================================
    # Lock
    # =========================================================================

    async def lockdown(
        self,
        guild: discord.Guild,
        settings: RaidProtectionSettings,
        reason: str,
        locked_by: int = 0,
    ) -> int:
        """
        Lock every non-exempt channel where @everyone can currently talk.

        Returns:
            Number of channels locked. 0 when the guild was already locked.
        """
        async with self._guild_lock(guild.id):
            try:
                if self.db.is_locked(guild.id):
                    logger.debug("Lockdown Skipped - Already Locked", [
                        ("Guild", f"{guild.name} ({guild.id})"),
                    ])
                    return 0
            except PersistenceError as e:
                logger.error("Lockdown Aborted", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                    ("Error", str(e)),
                ])
                return 0

            everyone = guild.default_role
            targets: List[Tuple[discord.abc.GuildChannel, discord.PermissionOverwrite]] = []

            for channel in guild.channels:
                if not _is_lockable(channel, settings):
                    continue
                if not channel.permissions_for(everyone).send_messages:
                    continue

                current = channel.overwrites_for(everyone)
                if current.is_empty():
                    allow_bits, deny_bits = None, None
                else:
                    allow, deny = current.pair()
                    allow_bits, deny_bits = allow.value, deny.value

                try:
                    self.db.save_channel_overwrite(guild.id, channel.id, allow_bits, deny_bits)
                except PersistenceError as e:
                    logger.warning("Channel Snapshot Failed - Not Locking", [
                        ("Channel", _label(channel)),
                        ("Error", str(e)),
                    ])
                    continue

                for name in LOCKED_PERMISSIONS:
                    setattr(current, name, False)
                targets.append((channel, current))

            if not targets:
                logger.info("Lockdown Found No Channels To Lock", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                ])
                return 0

            try:
                self.db.start_lockdown(guild.id, locked_by, reason, len(targets))
            except PersistenceError as e:
                logger.error("Lockdown Aborted - State Not Saved", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                    ("Error", str(e)),
                ])
                self._discard_lockdown(guild)
                return 0

            result = await self._fan_out(
                [
                    (f"Lock {_label(channel)}", channel, overwrite)
                    for channel, overwrite in targets
                ],
                everyone,
                reason,
                "Channel Lock",
            )

            # Nothing changed, so no lock state may outlive this call
            if result.success_count == 0:
                logger.error("Lockdown Failed On Every Channel", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                    ("Failed", str(result.failed_count)),
                    ("First Error", result.errors[0] if result.errors else "unknown"),
                ])
                self._discard_lockdown(guild)
                return 0

        logger.tree("GUILD LOCKED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Locked", str(result.success_count)),
            ("Failed", str(result.failed_count)),
            ("Reason", reason[:LOG_TRUNCATE_SHORT]),
        ], emoji="🔒")

        return result.success_count

    def _discard_lockdown(self, guild: discord.Guild) -> None:
        """Drop the lock state and snapshots of a lockdown that never took hold."""
        try:
            self.db.end_lockdown(guild.id)
        except PersistenceError as e:
            logger.error("Lockdown State Clear Failed", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)),
            ])

    # =========================================================================
    # Unlock
    # =========================================================================

    async def unlock(
        self,
        guild: discord.Guild,
        settings: RaidProtectionSettings,
        reason: str = "Lockdown ended",
    ) -> int:
        """
        Restore every channel to its pre-lockdown @everyone overwrite.

        Returns:
            Number of channels restored. 0 when the guild was not locked.
        """
        current_task = asyncio.current_task()
        if self._unlock_tasks.get(guild.id) is not current_task:
            self.cancel_scheduled_unlock(guild.id)

        async with self._guild_lock(guild.id):
            try:
                if not self.db.is_locked(guild.id):
                    logger.debug("Unlock Skipped - Not Locked", [
                        ("Guild", f"{guild.name} ({guild.id})"),
                    ])
                    return 0
                snapshots = {
                    record["channel_id"]: record
                    for record in self.db.get_channel_overwrites(guild.id)
                }
            except PersistenceError as e:
                logger.error("Unlock Aborted", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                    ("Error", str(e)),
                ])
                return 0

            everyone = guild.default_role
            operations = []

            for channel in guild.channels:
                if isinstance(channel, discord.CategoryChannel):
                    continue

                snapshot = snapshots.get(channel.id)
                if snapshot is not None:
                    if snapshot["has_overwrite"]:
                        restored = discord.PermissionOverwrite.from_pair(
                            discord.Permissions(snapshot["allow_bits"]),
                            discord.Permissions(snapshot["deny_bits"]),
                        )
                    else:
                        restored = None
                    operations.append((f"Unlock {_label(channel)}", channel, restored))
                    continue

                if channel.id in settings.exempt_channels:
                    continue

                # No snapshot: only undo an overwrite that looks like ours
                current = channel.overwrites_for(everyone)
                if not _carries_lock(current):
                    continue
                for name in LOCKED_PERMISSIONS:
                    setattr(current, name, None)
                operations.append((
                    f"Unlock {_label(channel)}",
                    channel,
                    None if current.is_empty() else current,
                ))

            result = await self._fan_out(operations, everyone, reason, "Channel Unlock")

            try:
                self.db.end_lockdown(guild.id)
            except PersistenceError as e:
                logger.error("Lockdown State Clear Failed", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                    ("Error", str(e)),
                ])

        logger.tree("GUILD UNLOCKED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Restored", str(result.success_count)),
            ("Failed", str(result.failed_count)),
        ], emoji="🔓")

        return result.success_count

    async def _fan_out(
        self,
        operations: List[Tuple[str, discord.abc.GuildChannel, Optional[discord.PermissionOverwrite]]],
        everyone: discord.Role,
        reason: str,
        label: str,
    ) -> LockdownResult:
        result = LockdownResult()
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_OPS)

        async def bounded(channel, overwrite) -> Tuple[bool, Optional[str]]:
            async with semaphore:
                return await _apply_overwrite(channel, everyone, overwrite, reason, label)

        outcomes = await gather_with_logging(
            *((name, bounded(channel, overwrite)) for name, channel, overwrite in operations),
            context=label,
        )
        _tally(result, outcomes)
        return result

    # =========================================================================
    # Scheduled Unlock
    # =========================================================================

    def schedule_unlock(
        self,
        guild: discord.Guild,
        settings: RaidProtectionSettings,
        delay_ms: int,
    ) -> asyncio.Task:
        """
        Unlock after delay_ms. Replaces any pending scheduled unlock.

        The deadline is stored with the lockdown state so a restart can
        pick it up again through resume_scheduled_unlock().
        """
        self.cancel_scheduled_unlock(guild.id)
        try:
            self.db.set_unlock_at(guild.id, self._clock() + delay_ms / MS_PER_SECOND)
        except PersistenceError as e:
            logger.warning("Auto-Unlock Deadline Not Saved", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)),
            ])
        task = create_safe_task(
            self._scheduled_unlock(guild, settings, delay_ms),
            f"Auto-Unlock {guild.id}",
        )
        self._unlock_tasks[guild.id] = task

        logger.debug("Auto-Unlock Scheduled", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Delay", f"{delay_ms / MS_PER_SECOND:.0f}s"),
        ])
        return task

    def resume_scheduled_unlock(
        self,
        guild: discord.Guild,
        settings: RaidProtectionSettings,
    ) -> Optional[asyncio.Task]:
        """
        Re-arm the auto-unlock of a lockdown that outlived the process.

        Returns:
            The scheduled task, or None when the guild has no stored deadline.
        """
        try:
            state = self.db.get_lockdown_state(guild.id)
        except PersistenceError as e:
            logger.warning("Auto-Unlock Resume Failed", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)),
            ])
            return None

        if not state or state.get("unlock_at") is None:
            return None

        remaining = max(0.0, state["unlock_at"] - self._clock())
        logger.tree("Auto-Unlock Resumed", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Remaining", f"{remaining:.0f}s"),
        ], emoji="⏱️")
        return self.schedule_unlock(guild, settings, int(remaining * MS_PER_SECOND))

    async def _scheduled_unlock(
        self,
        guild: discord.Guild,
        settings: RaidProtectionSettings,
        delay_ms: int,
    ) -> None:
        await asyncio.sleep(delay_ms / MS_PER_SECOND)

        # Past this point a manual unlock must not cancel us mid-restore
        if self._unlock_tasks.get(guild.id) is asyncio.current_task():
            del self._unlock_tasks[guild.id]

        restored = await self.unlock(guild, settings, reason="Lockdown expired")
        if restored and self.on_auto_unlock:
            await self.on_auto_unlock(guild, restored)

    def cancel_scheduled_unlock(self, guild_id: int) -> bool:
        task = self._unlock_tasks.pop(guild_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("Auto-Unlock Cancelled", [("Guild ID", str(guild_id))])
        return True

    def shutdown(self) -> None:
        """Cancel every pending scheduled unlock."""
        for guild_id in list(self._unlock_tasks):
            self.cancel_scheduled_unlock(guild_id)


__all__ = ["LockdownController", "LOCKED_PERMISSIONS"]
