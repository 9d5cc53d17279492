"""
RaidGuard - Raid Protection Service
===================================

Orchestrates join and message events into raid detection and response.

DESIGN:
    Each guild is IDLE or RAID_ACTIVE. The active-raid marker is claimed
    by _claim_raid(), which contains no await, so two join events handled
    concurrently on the event loop can never both enter RAID_ACTIVE.
    The marker is released only by its decay task, never by an event.

    On entering RAID_ACTIVE the service records the incident, runs exactly
    one action for the configured action type, then alerts. Per-join
    account checks (new account, similar names) run regardless of the
    raid state.

    Exempt members are ignored entirely: their joins are not tracked and
    never count toward a raid. A similar-name group is reported once per
    join window.

    All state (markers, message windows, timers) is owned by this instance.

    Key responsibilities:
    - on_member_join / on_message entry points for the event cogs
    - manual trigger_lockdown / end_lockdown for the command layer
    - background join pruning and idle message-window sweeps

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Set

import discord

from src.core.config import get_config
from src.core.constants import (
    EMBED_FIELD_MAX,
    LOG_TRUNCATE_MEDIUM,
    MESSAGE_WINDOW_IDLE_SECONDS,
    MS_PER_SECOND,
    SIMILAR_GROUP_MIN_SIZE,
)
from src.core.database import DatabaseManager, get_db
from src.core.errors import PersistenceError
from src.core.logger import logger
from src.services.raid_protection.admin import RaidSettingsService
from src.services.raid_protection.alerts import (
    build_incident_embed,
    build_lockdown_embed,
    build_raid_embed,
    build_unlock_embed,
    describe_bulk_result,
    format_duration_ms,
    send_alert,
)
from src.services.raid_protection.heuristics import (
    find_similar_usernames,
    is_exempt,
    is_suspicious_new_account,
)
from src.services.raid_protection.lockdown import LockdownController
from src.services.raid_protection.models import (
    ActionType,
    ActiveRaid,
    IncidentType,
    JoinRecord,
    RaidIncident,
    RaidProtectionSettings,
    RaidState,
    Severity,
)
from src.services.raid_protection.moderation import bulk_moderate, moderate_member
from src.services.raid_protection.patterns import MessagePatternTracker, MessageSummary
from src.services.raid_protection.severity import classify_severity, join_rate, recent_joins_for
from src.services.raid_protection.velocity import JoinVelocityTracker, join_interval_stats
from src.utils.async_utils import create_safe_task

if TYPE_CHECKING:
    from src.bot import RaidGuardBot


# =============================================================================
# Raid Protection Service
# =============================================================================

class RaidProtectionService:
    """
    Raid response state machine.

    Attributes:
        bot: Main bot instance.
        db: Database manager.
        settings: Settings service (also used by the command layer).
        tracker: Persistent join log.
        patterns: Per-account message windows.
        lockdown: Channel lockdown controller.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(
        self,
        bot: "RaidGuardBot",
        db: Optional[DatabaseManager] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.bot = bot
        self.config = get_config()
        self.db = db or get_db()
        self._clock = clock

        self.settings = RaidSettingsService(self.db)
        self.tracker = JoinVelocityTracker(self.db, clock=clock)
        self.patterns = MessagePatternTracker(clock=clock)
        self.lockdown = LockdownController(self.db, clock=clock)
        self.lockdown.on_auto_unlock = self._on_auto_unlock

        self._active_raids: Dict[int, ActiveRaid] = {}
        self._name_flags: Dict[int, Dict[int, float]] = {}
        self._tasks: List[asyncio.Task] = []
        self.running: bool = False

        logger.tree("Raid Protection Service Loaded", [
            ("Join Prune Interval", f"{self.config.join_prune_interval}s"),
            ("Window Sweep Interval", f"{self.config.message_window_sweep_interval}s"),
        ], emoji="🛡️")

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        """Start the background maintenance loops and re-arm stored auto-unlocks."""
        if self.running:
            return
        self.running = True
        self._tasks = [
            create_safe_task(self._prune_loop(), "Join Prune Loop"),
            create_safe_task(self._sweep_loop(), "Message Window Sweep"),
        ]
        self.resume_scheduled_unlocks()

        logger.tree("Raid Protection Started", [
            ("Guilds", str(len(self.bot.guilds))),
            ("Status", "Running"),
        ], emoji="🛡️")

    def resume_scheduled_unlocks(self) -> int:
        """Re-arm auto-unlocks for lockdowns that survived a restart."""
        resumed = 0
        for guild in self.bot.guilds:
            if self._is_ignored(guild.id):
                continue
            settings = self.settings.get_settings(guild.id)
            if self.lockdown.resume_scheduled_unlock(guild, settings) is not None:
                resumed += 1
        return resumed

    async def shutdown(self) -> None:
        """Cancel loops, raid decay timers and scheduled unlocks."""
        self.running = False

        tasks = list(self._tasks)
        for raid in self._active_raids.values():
            if raid.decay_task is not None:
                tasks.append(raid.decay_task)
        self._active_raids.clear()
        self._name_flags.clear()
        self._tasks = []

        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.lockdown.shutdown()
        logger.info("Raid Protection Stopped")

    async def _prune_loop(self) -> None:
        while self.running:
            self.prune_joins()
            await asyncio.sleep(self.config.join_prune_interval)

    async def _sweep_loop(self) -> None:
        while self.running:
            await asyncio.sleep(self.config.message_window_sweep_interval)
            dropped = self.patterns.prune_idle(MESSAGE_WINDOW_IDLE_SECONDS)
            if dropped:
                logger.debug("Idle Message Windows Dropped", [("Count", str(dropped))])

    def prune_joins(self) -> int:
        """Prune stale join records for every guild the bot is in."""
        total = 0
        for guild in self.bot.guilds:
            total += self.tracker.prune(guild.id)
        if total:
            logger.tree("Join Records Pruned", [
                ("Guilds", str(len(self.bot.guilds))),
                ("Removed", str(total)),
            ], emoji="🧹")
        return total

    # =========================================================================
    # State
    # =========================================================================

    def get_state(self, guild_id: int) -> RaidState:
        if guild_id in self._active_raids:
            return RaidState.RAID_ACTIVE
        return RaidState.IDLE

    def _is_ignored(self, guild_id: int) -> bool:
        ignored = self.config.ignored_guild_ids
        return bool(ignored) and guild_id in ignored

    def _claim_raid(
        self,
        guild_id: int,
        severity: Severity,
        settings: RaidProtectionSettings,
    ) -> Optional[ActiveRaid]:
        """
        Atomically move a guild from IDLE to RAID_ACTIVE.

        Must stay free of awaits: the check and the set happen in one step
        of the event loop.

        Returns:
            The new marker, or None if a raid is already active.
        """
        if guild_id in self._active_raids:
            return None

        now = self._clock()
        raid = ActiveRaid(
            raid_id=f"{guild_id}-{int(now * MS_PER_SECOND)}",
            severity=severity,
            started_at=now,
        )
        self._active_raids[guild_id] = raid
        raid.decay_task = create_safe_task(
            self._decay_raid(guild_id, raid.raid_id, settings.auto_mode_duration_ms),
            f"Raid Decay {guild_id}",
        )
        return raid

    async def _decay_raid(self, guild_id: int, raid_id: str, duration_ms: int) -> None:
        await asyncio.sleep(duration_ms / MS_PER_SECOND)
        raid = self._active_raids.get(guild_id)
        if raid is not None and raid.raid_id == raid_id:
            del self._active_raids[guild_id]
            logger.tree("Raid Mode Ended", [
                ("Guild ID", str(guild_id)),
                ("Raid ID", raid_id),
                ("Duration", format_duration_ms(duration_ms)),
            ], emoji="✅")

    # =========================================================================
    # Incidents
    # =========================================================================

    def _record_incident(
        self,
        guild_id: int,
        incident_type: IncidentType,
        severity: Optional[Severity],
        details: str,
        action_taken: str,
        affected_users: Iterable[int],
    ) -> RaidIncident:
        """Persist an incident. A store failure is logged and never raised."""
        incident = RaidIncident(
            guild_id=guild_id,
            incident_type=incident_type,
            severity=severity,
            details=details,
            action_taken=action_taken,
            affected_users=tuple(affected_users),
            timestamp=self._clock(),
        )
        try:
            row_id = self.db.append_raid_incident(
                guild_id,
                incident_type.value,
                severity.name if severity is not None else None,
                details,
                action_taken,
                incident.affected_users,
                incident.timestamp,
            )
        except PersistenceError as e:
            logger.error("Raid Incident Not Recorded", [
                ("Guild ID", str(guild_id)),
                ("Type", incident_type.value),
                ("Error", str(e)),
            ])
            return incident

        return RaidIncident(
            id=row_id,
            guild_id=incident.guild_id,
            incident_type=incident.incident_type,
            severity=incident.severity,
            details=incident.details,
            action_taken=incident.action_taken,
            affected_users=incident.affected_users,
            timestamp=incident.timestamp,
        )

    # =========================================================================
    # Join Handling
    # =========================================================================

    async def on_member_join(self, member: discord.Member) -> None:
        """Track the join, respond to a raid, then check the account itself."""
        guild = member.guild
        if self._is_ignored(guild.id):
            return

        settings = self.settings.get_settings(guild.id)
        if not settings.enabled:
            return
        if is_exempt(member, settings):
            return

        self.tracker.record(guild.id, member.id, self._clock())
        recent = recent_joins_for(self.tracker, guild.id, settings)
        severity = classify_severity(recent, settings)

        actioned: Set[int] = set()

        if severity > Severity.LOW:
            raid = self._claim_raid(guild.id, severity, settings)
            if raid is not None:
                actioned |= await self._respond_to_raid(guild, raid, recent, settings)
            else:
                logger.debug("Raid Detection Suppressed - Raid Active", [
                    ("Guild ID", str(guild.id)),
                    ("Severity", severity.name),
                    ("Recent Joins", str(len(recent))),
                ])

        await self._check_new_account(member, settings, actioned)
        await self._check_similar_names(guild, recent, settings, actioned)

    async def _respond_to_raid(
        self,
        guild: discord.Guild,
        raid: ActiveRaid,
        recent: Sequence[JoinRecord],
        settings: RaidProtectionSettings,
    ) -> Set[int]:
        """
        Run the RAID_ACTIVE entry sequence: incident, action, alert.

        Returns:
            IDs of members a ban or kick was attempted on.
        """
        affected = list(dict.fromkeys(r.user_id for r in recent))
        window = format_duration_ms(settings.join_time_window_ms)
        rate = join_rate(recent, settings)
        stats = join_interval_stats(recent)

        logger.tree("RAID DETECTED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Raid ID", raid.raid_id),
            ("Severity", raid.severity.name),
            ("Joins", f"{len(recent)} in {window}"),
            ("Rate", f"{rate:.2f}/s"),
            ("Cadence", "unnatural" if stats.is_unnatural else "normal"),
            ("Action", settings.action_type.value),
        ], emoji="🚨")

        self._record_incident(
            guild.id,
            IncidentType.RAID_DETECTED,
            raid.severity,
            f"{len(recent)} joins in {window} ({rate:.2f}/s)",
            settings.action_type.value,
            affected,
        )

        attempted: Set[int] = set()

        if settings.action_type == ActionType.LOCKDOWN:
            reason = f"Raid protection: {len(recent)} joins in {window}"
            channels = await self.lockdown.lockdown(guild, settings, reason, self._bot_user_id())
            if channels:
                self.lockdown.schedule_unlock(guild, settings, settings.lockdown_duration_ms)
                outcome = (
                    f"Locked {channels} channel(s), auto-unlock in "
                    f"{format_duration_ms(settings.lockdown_duration_ms)}"
                )
            else:
                outcome = "No channels locked (already locked or nothing to lock)"
        else:
            targets = self._resolve_members(guild, affected, settings)
            attempted.update(m.id for m in targets)
            result = await bulk_moderate(
                guild,
                targets,
                settings.action_type,
                f"Raid protection: mass join ({raid.severity.name})",
            )
            outcome = describe_bulk_result(result)

        embed = build_raid_embed(raid.severity, len(recent), settings, stats, outcome)
        await send_alert(guild, settings, embed, ping=True)
        return attempted

    def _resolve_members(
        self,
        guild: discord.Guild,
        user_ids: Iterable[int],
        settings: RaidProtectionSettings,
    ) -> List[discord.Member]:
        """Members still in the guild, minus exempt ones."""
        members = []
        for user_id in dict.fromkeys(user_ids):
            member = guild.get_member(user_id)
            if member is None or is_exempt(member, settings):
                continue
            members.append(member)
        return members

    def _bot_user_id(self) -> int:
        user = getattr(self.bot, "user", None)
        return user.id if user is not None else 0

    async def _check_new_account(
        self,
        member: discord.Member,
        settings: RaidProtectionSettings,
        actioned: Set[int],
    ) -> None:
        if member.id in actioned or member.bot:
            return
        if not is_suspicious_new_account(member, settings):
            return

        created_at = member.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - created_at
        details = (
            f"{member} account is {age.days}d {age.seconds // 3600}h old "
            f"(minimum {settings.account_age_days_min}d)"
        )
        action_taken = await self._apply_single_action(
            member, settings, f"Raid protection: account younger than {settings.account_age_days_min} days",
        )
        actioned.add(member.id)

        incident = self._record_incident(
            member.guild.id,
            IncidentType.SUSPICIOUS_MEMBER,
            None,
            details,
            action_taken,
            [member.id],
        )
        logger.tree("Suspicious New Account", [
            ("User", f"{member} ({member.id})"),
            ("Guild", f"{member.guild.name} ({member.guild.id})"),
            ("Age", f"{age.days}d"),
            ("Action", action_taken),
        ], emoji="⚠️")
        await send_alert(member.guild, settings, build_incident_embed(incident))

    async def _check_similar_names(
        self,
        guild: discord.Guild,
        recent: Sequence[JoinRecord],
        settings: RaidProtectionSettings,
        actioned: Set[int],
    ) -> None:
        flagged = self._recent_name_flags(guild.id, settings)
        candidates = [
            m for m in self._resolve_members(guild, (r.user_id for r in recent), settings)
            if m.id not in actioned and m.id not in flagged
        ]
        if len(candidates) < SIMILAR_GROUP_MIN_SIZE:
            return

        groups = [
            group for group in find_similar_usernames(candidates, settings.similar_name_threshold)
            if len(group) >= SIMILAR_GROUP_MIN_SIZE
        ]

        for group in groups:
            user_ids = [m.id for m in group]
            names = ", ".join(m.name for m in group)

            if settings.action_type == ActionType.LOCKDOWN:
                action_taken = "flagged"
            else:
                result = await bulk_moderate(
                    guild, group, settings.action_type, "Raid protection: similar usernames",
                )
                action_taken = f"{settings.action_type.value}: {describe_bulk_result(result)}"
            actioned.update(user_ids)
            now = self._clock()
            flagged.update((user_id, now) for user_id in user_ids)

            incident = self._record_incident(
                guild.id,
                IncidentType.SIMILAR_USERNAMES,
                None,
                f"{len(group)} recent joiners with similar names: {names}"[:EMBED_FIELD_MAX],
                action_taken,
                user_ids,
            )
            logger.tree("Similar Usernames Detected", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Accounts", str(len(group))),
                ("Names", names[:LOG_TRUNCATE_MEDIUM]),
                ("Action", action_taken),
            ], emoji="👥")
            await send_alert(guild, settings, build_incident_embed(incident))

    def _recent_name_flags(
        self,
        guild_id: int,
        settings: RaidProtectionSettings,
    ) -> Dict[int, float]:
        """Members already reported for similar names within the join window."""
        cutoff = self._clock() - settings.join_time_window_seconds
        flags = {
            user_id: flagged_at
            for user_id, flagged_at in self._name_flags.get(guild_id, {}).items()
            if flagged_at > cutoff
        }
        self._name_flags[guild_id] = flags
        return flags

    async def _apply_single_action(
        self,
        member: discord.Member,
        settings: RaidProtectionSettings,
        reason: str,
    ) -> str:
        """Ban or kick one member. Returns the action text for the incident."""
        if settings.action_type == ActionType.LOCKDOWN:
            return "flagged"
        ok, error = await moderate_member(member.guild, member, settings.action_type, reason)
        if ok:
            return settings.action_type.value
        return f"{settings.action_type.value} failed: {error}"

    # =========================================================================
    # Message Handling
    # =========================================================================

    async def on_message(self, message: discord.Message) -> None:
        """Feed a message into its author's window and act on a flag."""
        if message.guild is None or message.author.bot:
            return
        guild = message.guild
        if self._is_ignored(guild.id):
            return

        settings = self.settings.get_settings(guild.id)
        if not settings.enabled:
            return

        author = message.author
        if not isinstance(author, discord.Member):
            author = guild.get_member(author.id)
            if author is None:
                return
        if is_exempt(author, settings):
            return

        summary = MessageSummary.from_message(message, timestamp=self._clock())
        if not self.patterns.check(guild.id, author.id, summary, settings):
            return

        reason = "Suspicious message pattern"
        action_taken = await self._apply_single_action(author, settings, f"Raid protection: {reason}")
        incident = self._record_incident(
            guild.id,
            IncidentType.SUSPICIOUS_MEMBER,
            None,
            reason,
            action_taken,
            [author.id],
        )
        logger.tree("Suspicious Message Pattern", [
            ("User", f"{author} ({author.id})"),
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel", f"#{getattr(message.channel, 'name', '?')}"),
            ("Action", action_taken),
        ], emoji="⚠️")
        await send_alert(guild, settings, build_incident_embed(incident))

    # =========================================================================
    # Manual Lockdown
    # =========================================================================

    async def trigger_lockdown(
        self,
        guild: discord.Guild,
        reason: str,
        auto_unlock: bool = False,
        locked_by: Optional[int] = None,
    ) -> int:
        """
        Lock the guild on request.

        Returns:
            Channels locked. 0 when already locked.
        """
        settings = self.settings.get_settings(guild.id)
        locker = locked_by if locked_by is not None else self._bot_user_id()
        channels = await self.lockdown.lockdown(guild, settings, reason, locker)
        if not channels:
            return 0

        if auto_unlock:
            self.lockdown.schedule_unlock(guild, settings, settings.lockdown_duration_ms)
        embed = build_lockdown_embed(
            channels,
            reason,
            settings.lockdown_duration_ms if auto_unlock else None,
        )
        await send_alert(guild, settings, embed)
        return channels

    async def end_lockdown(self, guild: discord.Guild) -> int:
        """
        End a lockdown. A no-op on an unlocked guild.

        Returns:
            Channels restored.
        """
        settings = self.settings.get_settings(guild.id)
        restored = await self.lockdown.unlock(guild, settings, reason="Lockdown ended manually")
        if restored:
            await send_alert(guild, settings, build_unlock_embed(restored, automatic=False))
        return restored

    async def _on_auto_unlock(self, guild: discord.Guild, restored: int) -> None:
        settings = self.settings.get_settings(guild.id)
        await send_alert(guild, settings, build_unlock_embed(restored, automatic=True))


__all__ = ["RaidProtectionService"]
