"""
RaidGuard - Main Bot Class
==========================

Discord client hosting the raid protection engine.

Features:
- Join velocity raid detection with lockdown, ban or kick response
- New-account and similar-username checks on every join
- Message pattern checks for spam, mass mentions and repeated links
- Auto-expiring channel lockdowns with permission snapshots

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands

from src.core.config import get_config, NY_TZ
from src.core.database import get_db
from src.core.logger import logger
from src.services.raid_protection import RaidProtectionService


# =============================================================================
# RaidGuardBot Class
# =============================================================================

class RaidGuardBot(commands.Bot):
    """
    Main Discord bot class.

    SERVICE INITIALIZATION ORDER:
    1. setup_hook (before on_ready):
       - Event cog loading

    2. on_ready:
       - Footer avatar cache
       - Raid Protection Service (starts prune and sweep loops)
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self) -> None:
        """Initialize the bot with member and message content intents."""
        self.config = get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.db = get_db()
        self.start_time: datetime = datetime.now(NY_TZ)
        self.raid_protection: Optional[RaidProtectionService] = None
        self._ready_initialized: bool = False
        self._shutdown_done: bool = False

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load event cogs before on_ready."""
        from src.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        """Initialize services when bot is ready."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        from src.utils.footer import init_footer
        init_footer(self)

        self.raid_protection = RaidProtectionService(self, self.db)
        await self.raid_protection.start()

        logger.tree("RAIDGUARD READY", [
            ("Raid Protection", "Running"),
            ("Error Webhook", "Enabled" if self.config.error_webhook_url else "Disabled"),
        ], emoji="🛡️")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup. Safe to call more than once."""
        if self._shutdown_done:
            return
        self._shutdown_done = True

        logger.info("Initiating Graceful Shutdown")

        if self.raid_protection:
            await self.raid_protection.shutdown()

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now(NY_TZ) - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        """Override close to ensure proper shutdown."""
        await self.shutdown()


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["RaidGuardBot"]
