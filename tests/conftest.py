"""
RaidGuard - Test Fixtures
=========================

Shared fixtures for all tests.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="raidguard-logs-"))

import discord  # noqa: E402

from src.services.raid_protection.models import ActionType, RaidProtectionSettings  # noqa: E402


GUILD_ID = 987654321
ALERT_CHANNEL_ID = 555000111


# =============================================================================
# Fake Discord Objects
# =============================================================================

class FakeChannel:
    """
    Text channel double that keeps real PermissionOverwrite objects.

    overwrites_for() returns a copy, like discord.py does, so callers must
    go through set_permissions() to change anything.
    """

    def __init__(self, channel_id, name, everyone, overwrite=None, fail_with=None):
        self.id = channel_id
        self.name = name
        self.everyone = everyone
        self.fail_with = fail_with
        self.overwrites = {}
        if overwrite is not None:
            self.overwrites[everyone] = overwrite
        self.set_permissions_calls = []

    def overwrites_for(self, target):
        current = self.overwrites.get(target)
        if current is None:
            return discord.PermissionOverwrite()
        allow, deny = current.pair()
        return discord.PermissionOverwrite.from_pair(allow, deny)

    def permissions_for(self, target):
        perms = MagicMock()
        perms.send_messages = self.overwrites_for(target).send_messages is not False
        return perms

    async def set_permissions(self, target, *, overwrite=None, reason=None):
        self.set_permissions_calls.append((target, overwrite, reason))
        if self.fail_with is not None:
            raise self.fail_with
        if overwrite is None:
            self.overwrites.pop(target, None)
        else:
            self.overwrites[target] = overwrite

    def has_overwrite(self, target) -> bool:
        return target in self.overwrites


def http_error(cls, status, text="error"):
    """Build a discord.py HTTP exception without a live response."""
    response = MagicMock()
    response.status = status
    response.reason = text
    return cls(response, text)


def make_member(
    user_id,
    name="user",
    guild=None,
    created_days_ago=365,
    admin=False,
    role_ids=(),
    bot=False,
):
    member = MagicMock()
    member.id = user_id
    member.name = name
    member.display_name = name
    member.bot = bot
    member.mention = f"<@{user_id}>"
    member.__str__.return_value = name
    member.created_at = datetime.now(timezone.utc) - timedelta(days=created_days_ago)
    member.guild_permissions.administrator = admin
    member.roles = [MagicMock(id=role_id) for role_id in role_ids]
    member.guild = guild
    member.kick = AsyncMock()
    return member


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path for testing."""
    return tmp_path / "test_raidguard.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Create a fresh test database instance."""
    from src.core.database import manager as manager_module

    manager_module.DatabaseManager._instance = None
    monkeypatch.setattr(manager_module, "DB_PATH", temp_db_path)
    monkeypatch.setattr(manager_module, "DATA_DIR", temp_db_path.parent)

    db = manager_module.DatabaseManager()

    yield db

    db.close()
    manager_module.DatabaseManager._instance = None


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Controllable time source in epoch seconds."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Guild
# =============================================================================

@pytest.fixture
def everyone_role():
    role = MagicMock()
    role.id = GUILD_ID
    role.name = "@everyone"
    return role


@pytest.fixture
def alert_channel():
    channel = MagicMock()
    channel.id = ALERT_CHANNEL_ID
    channel.name = "raid-alerts"
    channel.send = AsyncMock(return_value=MagicMock(id=111222333))
    return channel


@pytest.fixture
def mock_guild(everyone_role, alert_channel):
    """Guild with three open text channels and an alert channel."""
    guild = MagicMock()
    guild.id = GUILD_ID
    guild.name = "Test Server"
    guild.default_role = everyone_role
    guild.channels = [
        FakeChannel(1001, "general", everyone_role),
        FakeChannel(1002, "media", everyone_role),
        FakeChannel(1003, "memes", everyone_role),
    ]
    guild.members = {}
    guild.get_member = MagicMock(side_effect=lambda user_id: guild.members.get(user_id))
    guild.get_channel = MagicMock(
        side_effect=lambda channel_id: alert_channel if channel_id == ALERT_CHANNEL_ID else None
    )
    guild.fetch_channel = AsyncMock(side_effect=lambda channel_id: alert_channel)
    guild.ban = AsyncMock()
    return guild


@pytest.fixture
def add_member(mock_guild):
    """Factory that creates a member and registers it with mock_guild."""

    def factory(user_id, name="user", **kwargs):
        member = make_member(user_id, name=name, guild=mock_guild, **kwargs)
        mock_guild.members[user_id] = member
        return member

    return factory


@pytest.fixture
def mock_bot(mock_guild):
    bot = MagicMock()
    bot.guilds = [mock_guild]
    bot.user = MagicMock()
    bot.user.id = 999888777
    return bot


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def enabled_settings():
    return RaidProtectionSettings(
        enabled=True,
        action_type=ActionType.LOCKDOWN,
        join_threshold=5,
        join_time_window_ms=10_000,
        account_age_days_min=3,
        alert_channel_id=ALERT_CHANNEL_ID,
    )


def save_settings(db, guild_id, settings):
    from src.services.raid_protection.models import SETTINGS_VERSION
    db.update_raid_settings(guild_id, settings.to_dict(), SETTINGS_VERSION)
