"""
RaidGuard - Moderation Primitive Tests
======================================

Tests for single and bulk ban/kick calls.
"""

import discord
import pytest

from conftest import http_error

from src.services.raid_protection.moderation import (
    MEMBER_GONE,
    ban_member,
    bulk_moderate,
    kick_member,
    moderate_member,
)
from src.services.raid_protection.models import ActionType


class TestSingleActions:
    """Tests for ban_member and kick_member."""

    @pytest.mark.asyncio
    async def test_ban_purges_a_week_of_messages(self, mock_guild, add_member):
        member = add_member(1)
        ok, error = await ban_member(mock_guild, member, "raid")
        assert (ok, error) == (True, None)
        mock_guild.ban.assert_awaited_once_with(member, reason="raid", delete_message_seconds=604800)

    @pytest.mark.asyncio
    async def test_kick(self, add_member):
        member = add_member(1)
        assert await kick_member(member, "raid") == (True, None)
        member.kick.assert_awaited_once_with(reason="raid")

    @pytest.mark.asyncio
    async def test_kick_forbidden(self, add_member):
        member = add_member(1)
        member.kick.side_effect = http_error(discord.Forbidden, 403, "Missing Permissions")
        assert await kick_member(member, "raid") == (False, "Missing permissions")

    @pytest.mark.asyncio
    async def test_kick_member_gone(self, add_member):
        member = add_member(1)
        member.kick.side_effect = http_error(discord.NotFound, 404, "Unknown Member")
        assert await kick_member(member, "raid") == (False, MEMBER_GONE)

    @pytest.mark.asyncio
    async def test_ban_http_error(self, mock_guild, add_member):
        mock_guild.ban.side_effect = http_error(discord.HTTPException, 500, "Server Error")
        assert await ban_member(mock_guild, add_member(1), "raid") == (False, "HTTP 500")

    @pytest.mark.asyncio
    async def test_lockdown_has_no_member_form(self, mock_guild, add_member):
        member = add_member(1)
        assert await moderate_member(mock_guild, member, ActionType.LOCKDOWN, "raid") == (False, None)
        member.kick.assert_not_called()
        mock_guild.ban.assert_not_called()


class TestBulkModerate:
    """Tests for best-effort batches."""

    @pytest.mark.asyncio
    async def test_partial_failure_does_not_abort(self, mock_guild, add_member):
        members = [add_member(i) for i in range(1, 5)]
        members[1].kick.side_effect = http_error(discord.Forbidden, 403)
        members[2].kick.side_effect = http_error(discord.NotFound, 404)

        result = await bulk_moderate(mock_guild, members, ActionType.KICK, "raid")

        assert sorted(result.succeeded) == [1, 4]
        assert [(f.target_id, f.reason) for f in result.failed] == [(2, "Missing permissions")]
        assert result.failed[0].action == "kick"
        assert result.skipped == [3]
        assert result.total == 4
        for member in members:
            member.kick.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bulk_ban(self, mock_guild, add_member):
        members = [add_member(i) for i in range(1, 4)]
        result = await bulk_moderate(mock_guild, members, ActionType.BAN, "raid")
        assert result.success_count == 3
        assert mock_guild.ban.await_count == 3

    @pytest.mark.asyncio
    async def test_empty_batch(self, mock_guild):
        result = await bulk_moderate(mock_guild, [], ActionType.KICK, "raid")
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_lockdown_action_is_noop(self, mock_guild, add_member):
        member = add_member(1)
        result = await bulk_moderate(mock_guild, [member], ActionType.LOCKDOWN, "raid")
        assert result.total == 0
        member.kick.assert_not_called()
