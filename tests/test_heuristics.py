"""
RaidGuard - Account Heuristics Tests
====================================

Tests for exemptions, new-account detection and username clustering.
"""

from datetime import datetime, timedelta, timezone

from conftest import make_member

from src.services.raid_protection.heuristics import (
    find_similar_usernames,
    is_exempt,
    is_suspicious_new_account,
    username_similarity,
)
from src.services.raid_protection.models import RaidProtectionSettings


class TestIsExempt:
    """Tests for member exemption."""

    def test_regular_member_not_exempt(self):
        assert is_exempt(make_member(1), RaidProtectionSettings()) is False

    def test_administrator_exempt(self):
        assert is_exempt(make_member(1, admin=True), RaidProtectionSettings()) is True

    def test_exempt_role(self):
        settings = RaidProtectionSettings(exempt_roles=frozenset({77}))
        assert is_exempt(make_member(1, role_ids=(5, 77)), settings) is True
        assert is_exempt(make_member(2, role_ids=(5,)), settings) is False


class TestSuspiciousNewAccount:
    """Tests for account age checks."""

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def _member(self, age):
        member = make_member(1)
        member.created_at = self.NOW - age
        return member

    def test_two_hour_old_account_is_suspicious(self):
        settings = RaidProtectionSettings(account_age_days_min=3)
        assert is_suspicious_new_account(self._member(timedelta(hours=2)), settings, now=self.NOW) is True

    def test_old_account_is_not_suspicious(self):
        settings = RaidProtectionSettings(account_age_days_min=3)
        assert is_suspicious_new_account(self._member(timedelta(days=30)), settings, now=self.NOW) is False

    def test_exactly_minimum_age_is_not_suspicious(self):
        settings = RaidProtectionSettings(account_age_days_min=3)
        assert is_suspicious_new_account(self._member(timedelta(days=3)), settings, now=self.NOW) is False

    def test_zero_minimum_disables_check(self):
        settings = RaidProtectionSettings(account_age_days_min=0)
        assert is_suspicious_new_account(self._member(timedelta(seconds=5)), settings, now=self.NOW) is False

    def test_naive_created_at_treated_as_utc(self):
        member = make_member(1)
        member.created_at = (self.NOW - timedelta(hours=1)).replace(tzinfo=None)
        settings = RaidProtectionSettings(account_age_days_min=1)
        assert is_suspicious_new_account(member, settings, now=self.NOW) is True


class TestUsernameSimilarity:
    """Tests for name similarity scoring and grouping."""

    def test_identical_names(self):
        assert username_similarity("raider", "raider") == 1.0

    def test_case_insensitive(self):
        assert username_similarity("RAIDER", "raider") == 1.0

    def test_different_names_score_low(self):
        assert username_similarity("john123", "totally_different") < 0.5

    def test_groups_similar_names(self):
        groups = find_similar_usernames(["john123", "john124", "totally_different"], 0.8)
        assert groups == [["john123", "john124"]]

    def test_no_groups_below_threshold(self):
        assert find_similar_usernames(["alice", "bob", "carol"], 0.8) == []

    def test_grouping_is_seeded_not_transitive(self):
        # "aaaa" ~ "aaab" and "aaab" ~ "aabb", but "aaaa" !~ "aabb" at 0.75
        groups = find_similar_usernames(["aaaa", "aaab", "aabb"], 0.75)
        assert groups == [["aaaa", "aaab"]]

    def test_groups_members_by_name(self):
        members = [make_member(i, name=name) for i, name in enumerate(["spam_bot1", "spam_bot2", "spam_bot3", "alice"])]
        groups = find_similar_usernames(members, 0.85)
        assert len(groups) == 1
        assert [m.id for m in groups[0]] == [0, 1, 2]
