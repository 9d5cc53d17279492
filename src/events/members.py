"""
RaidGuard - Member Events
=========================

Routes member joins into the raid protection service.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.logger import logger
from src.utils.error_handler import ErrorHandler

if TYPE_CHECKING:
    from src.bot import RaidGuardBot


class MemberEvents(commands.Cog):
    """Member event handlers."""

    def __init__(self, bot: "RaidGuardBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        """
        Hand every join to the raid engine.

        DESIGN: The service is created in on_ready; joins that arrive
        before then are ignored rather than queued.
        """
        service = self.bot.raid_protection
        if service is None:
            return

        logger.debug("Member Joined", [
            ("User", f"{member} ({member.id})"),
            ("Guild", f"{member.guild.name} ({member.guild.id})"),
        ])

        try:
            await service.on_member_join(member)
        except Exception as e:
            ErrorHandler.handle(e, location="MemberEvents.on_member_join", member=member)

    @commands.Cog.listener()
    async def on_resumed(self) -> None:
        """Event handler for bot resuming connection after disconnect."""
        logger.info("Bot Connection Resumed")


async def setup(bot: "RaidGuardBot") -> None:
    """Add the member events cog to the bot."""
    await bot.add_cog(MemberEvents(bot))
    logger.debug("Member Events Loaded")
