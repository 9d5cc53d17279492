"""
RaidGuard - Raid Settings Service Tests
=======================================

Tests for settings mutations, validation and incident listing.
"""

from unittest.mock import MagicMock

import pytest

from src.core.errors import ConfigurationError, PersistenceError
from src.services.raid_protection.admin import (
    RaidSettingsService,
    build_incidents_embed,
    build_settings_embed,
)
from src.services.raid_protection.models import (
    ActionType,
    IncidentType,
    RaidIncident,
    RaidProtectionSettings,
    Severity,
)


@pytest.fixture
def admin(test_db):
    return RaidSettingsService(test_db)


class TestSettingsRecord:
    """Tests for defaults and stored-blob merging."""

    def test_defaults(self):
        settings = RaidProtectionSettings()
        assert settings.enabled is False
        assert settings.action_type == ActionType.KICK
        assert settings.join_threshold == 10
        assert settings.join_time_window_ms == 10_000
        assert settings.account_age_days_min == 7
        assert settings.similar_name_threshold == 0.85
        assert settings.mention_threshold == 10
        assert settings.lockdown_duration_ms == 300_000
        assert settings.auto_mode_duration_ms == 600_000

    def test_partial_blob_filled_with_defaults(self):
        settings = RaidProtectionSettings.from_dict({"enabled": True, "join_threshold": 4})
        assert settings.enabled is True
        assert settings.join_threshold == 4
        assert settings.account_age_days_min == 7

    def test_legacy_keys(self):
        settings = RaidProtectionSettings.from_dict({
            "actionType": "ban",
            "joinTimeWindow": 20000,
            "exemptRoles": ["5", "6"],
            "alertChannelId": "123",
        })
        assert settings.action_type == ActionType.BAN
        assert settings.join_time_window_ms == 20000
        assert settings.exempt_roles == frozenset({5, 6})
        assert settings.alert_channel_id == 123

    def test_bad_values_fall_back(self):
        settings = RaidProtectionSettings.from_dict({"action_type": "explode", "join_threshold": "many"})
        assert settings.action_type == ActionType.KICK
        assert settings.join_threshold == 10

    def test_enabled_parses_strings(self):
        assert RaidProtectionSettings.from_dict({"enabled": "false"}).enabled is False
        assert RaidProtectionSettings.from_dict({"enabled": "0"}).enabled is False
        assert RaidProtectionSettings.from_dict({"enabled": "True"}).enabled is True
        assert RaidProtectionSettings.from_dict({"enabled": 1}).enabled is True

    def test_unparseable_enabled_falls_back(self):
        assert RaidProtectionSettings.from_dict({"enabled": "maybe"}).enabled is False
        assert RaidProtectionSettings.from_dict({"enabled": [1]}).enabled is False

    def test_dict_round_trip(self):
        settings = RaidProtectionSettings(
            enabled=True, action_type=ActionType.LOCKDOWN, exempt_channels=frozenset({3, 1}),
        )
        assert RaidProtectionSettings.from_dict(settings.to_dict()) == settings


class TestReads:

    def test_unsaved_guild_gets_defaults(self, admin):
        assert admin.get_settings(1) == RaidProtectionSettings()

    def test_store_failure_degrades_to_defaults(self):
        db = MagicMock()
        db.get_raid_settings.side_effect = PersistenceError("SELECT", Exception("locked"))
        service = RaidSettingsService(db)

        assert service.get_settings(1) == RaidProtectionSettings()
        with pytest.raises(PersistenceError):
            service.get_settings(1, strict=True)

    def test_failed_read_never_overwrites(self):
        db = MagicMock()
        db.get_raid_settings.side_effect = PersistenceError("SELECT", Exception("locked"))
        service = RaidSettingsService(db)

        with pytest.raises(PersistenceError):
            service.set_enabled(1, True)
        db.update_raid_settings.assert_not_called()


class TestMutations:
    """Each mutation persists a full settings record."""

    def test_set_enabled(self, admin):
        admin.set_enabled(1, True)
        assert admin.get_settings(1).enabled is True

    def test_set_action_type(self, admin):
        admin.set_action_type(1, "lockdown")
        assert admin.get_settings(1).action_type == ActionType.LOCKDOWN

    def test_invalid_action_type(self, admin):
        with pytest.raises(ConfigurationError):
            admin.set_action_type(1, "timeout")

    def test_set_join_threshold_stores_milliseconds(self, admin):
        admin.set_join_threshold(1, 8, 15)
        settings = admin.get_settings(1)
        assert settings.join_threshold == 8
        assert settings.join_time_window_ms == 15_000

    @pytest.mark.parametrize("joins,seconds", [(2, 10), (51, 10), (5, 0), (5, 301)])
    def test_join_threshold_bounds(self, admin, joins, seconds):
        with pytest.raises(ConfigurationError):
            admin.set_join_threshold(1, joins, seconds)
        assert admin.get_settings(1) == RaidProtectionSettings()

    def test_account_age_bounds(self, admin):
        admin.set_account_age(1, 0)
        admin.set_account_age(1, 365)
        with pytest.raises(ConfigurationError):
            admin.set_account_age(1, 366)
        assert admin.get_settings(1).account_age_days_min == 365

    def test_exempt_roles(self, admin):
        admin.add_exempt_role(1, 10)
        admin.add_exempt_role(1, 11)
        admin.remove_exempt_role(1, 10)
        assert admin.get_settings(1).exempt_roles == frozenset({11})

    def test_exempt_channels(self, admin):
        admin.add_exempt_channel(1, 20)
        admin.remove_exempt_channel(1, 99)
        assert admin.get_settings(1).exempt_channels == frozenset({20})

    def test_alert_channel_and_notify_role(self, admin):
        admin.set_alert_channel(1, 555)
        admin.set_notify_role(1, 777)
        settings = admin.get_settings(1)
        assert settings.alert_channel_id == 555
        assert settings.notify_role_id == 777

        admin.set_alert_channel(1, None)
        assert admin.get_settings(1).alert_channel_id is None

    def test_mutations_preserve_other_fields(self, admin):
        admin.set_enabled(1, True)
        admin.set_action_type(1, "ban")
        admin.set_account_age(1, 14)
        settings = admin.get_settings(1)
        assert (settings.enabled, settings.action_type, settings.account_age_days_min) == (
            True, ActionType.BAN, 14,
        )


class TestIncidents:

    def test_list_incidents(self, admin, test_db):
        for i in range(3):
            test_db.append_raid_incident(1, "RAID_DETECTED", "SEVERE", f"raid {i}", "ban", [i], created_at=100.0 + i)

        incidents = admin.list_incidents(1, limit=2)

        assert [i.details for i in incidents] == ["raid 2", "raid 1"]
        assert incidents[0].severity == Severity.SEVERE
        assert incidents[0].incident_type == IncidentType.RAID_DETECTED
        assert incidents[0].affected_users == (2,)

    @pytest.mark.parametrize("limit", [0, 26])
    def test_limit_bounds(self, admin, limit):
        with pytest.raises(ConfigurationError):
            admin.list_incidents(1, limit=limit)


class TestEmbeds:

    def test_settings_embed(self):
        embed = build_settings_embed(RaidProtectionSettings(enabled=True, exempt_roles=frozenset({5})))
        fields = {f.name: f.value for f in embed.fields}
        assert fields["Status"] == "✅ Enabled"
        assert fields["Join Threshold"] == "10 joins / 10s"
        assert fields["Exempt Roles"] == "<@&5>"
        assert fields["Alert Channel"] == "Not set"

    def test_incidents_embed_empty(self):
        assert build_incidents_embed([]).description == "No incidents recorded."

    def test_incidents_embed_lists_each(self):
        incidents = [
            RaidIncident(1, IncidentType.RAID_DETECTED, Severity.SEVERE, "20 joins", "lockdown", (1, 2), 100.0),
            RaidIncident(1, IncidentType.SUSPICIOUS_MEMBER, None, "young", "kick", (3,), 90.0),
        ]
        embed = build_incidents_embed(incidents)
        assert len(embed.fields) == 2
        assert "Action: lockdown" in embed.fields[0].value
