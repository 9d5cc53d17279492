"""
RaidGuard - Configuration Tests
===============================

Tests for environment loading and validation.
"""

import pytest

from src.core.config import ConfigValidationError, load_config
from src.core.constants import JOIN_PRUNE_INTERVAL


class TestLoadConfig:

    def test_missing_token_raises(self, monkeypatch):
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        with pytest.raises(ConfigValidationError):
            load_config()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        for name in ("DEVELOPER_ID", "ERROR_WEBHOOK_URL", "JOIN_PRUNE_INTERVAL", "IGNORED_GUILD_IDS"):
            monkeypatch.delenv(name, raising=False)

        config = load_config()

        assert config.discord_token == "abc"
        assert config.developer_id is None
        assert config.error_webhook_url is None
        assert config.join_prune_interval == JOIN_PRUNE_INTERVAL
        assert config.ignored_guild_ids is None

    def test_optional_values_parsed(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("DEVELOPER_ID", "42")
        monkeypatch.setenv("ERROR_WEBHOOK_URL", "https://discord.com/api/webhooks/1/x")
        monkeypatch.setenv("IGNORED_GUILD_IDS", "1, 2,bad,3")

        config = load_config()

        assert config.developer_id == 42
        assert config.error_webhook_url.startswith("https://")
        assert config.ignored_guild_ids == {1, 2, 3}

    def test_invalid_values_ignored(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("DEVELOPER_ID", "not-a-number")
        monkeypatch.setenv("ERROR_WEBHOOK_URL", "ftp://nope")
        monkeypatch.setenv("JOIN_PRUNE_INTERVAL", "5")

        config = load_config()

        assert config.developer_id is None
        assert config.error_webhook_url is None
        assert config.join_prune_interval == 60
