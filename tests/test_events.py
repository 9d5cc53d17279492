"""
RaidGuard - Event Cog Tests
===========================

Tests that Discord events reach the raid protection service.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.events.members import MemberEvents
from src.events.messages import MessageEvents


@pytest.fixture
def bot_with_service():
    bot = MagicMock()
    bot.raid_protection = MagicMock()
    bot.raid_protection.on_member_join = AsyncMock()
    bot.raid_protection.on_message = AsyncMock()
    return bot


class TestMemberEvents:

    @pytest.mark.asyncio
    async def test_join_forwarded(self, bot_with_service):
        member = MagicMock()
        await MemberEvents(bot_with_service).on_member_join(member)
        bot_with_service.raid_protection.on_member_join.assert_awaited_once_with(member)

    @pytest.mark.asyncio
    async def test_join_before_ready_ignored(self):
        bot = MagicMock()
        bot.raid_protection = None
        await MemberEvents(bot).on_member_join(MagicMock())

    @pytest.mark.asyncio
    async def test_service_error_is_handled(self, bot_with_service):
        bot_with_service.raid_protection.on_member_join.side_effect = RuntimeError("boom")
        with patch("src.events.members.ErrorHandler.handle") as handle:
            await MemberEvents(bot_with_service).on_member_join(MagicMock())
        handle.assert_called_once()
        assert handle.call_args.kwargs["location"] == "MemberEvents.on_member_join"


class TestMessageEvents:

    @pytest.mark.asyncio
    async def test_guild_message_forwarded(self, bot_with_service):
        message = MagicMock()
        message.author.bot = False
        await MessageEvents(bot_with_service).on_message(message)
        bot_with_service.raid_protection.on_message.assert_awaited_once_with(message)

    @pytest.mark.asyncio
    async def test_dm_and_bot_messages_skipped(self, bot_with_service):
        dm = MagicMock()
        dm.author.bot = False
        dm.guild = None
        from_bot = MagicMock()
        from_bot.author.bot = True

        cog = MessageEvents(bot_with_service)
        await cog.on_message(dm)
        await cog.on_message(from_bot)

        bot_with_service.raid_protection.on_message.assert_not_called()
