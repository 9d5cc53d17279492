"""
RaidGuard - Message Events
==========================

Routes guild messages into the raid protection service.

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


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "RaidGuardBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Feed non-bot guild messages into the pattern checks."""
        if message.author.bot or message.guild is None:
            return

        service = self.bot.raid_protection
        if service is None:
            return

        try:
            await service.on_message(message)
        except Exception as e:
            ErrorHandler.handle(e, location="MessageEvents.on_message", message=message)


async def setup(bot: "RaidGuardBot") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")
