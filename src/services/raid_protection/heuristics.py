"""
RaidGuard - Suspicious Account Heuristics
=========================================

Exemption checks, new-account detection and username clustering.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime, timedelta, timezone
from difflib import SequenceMatcher
from typing import Any, Callable, List, Optional, Sequence, TypeVar

import discord

from src.services.raid_protection.models import RaidProtectionSettings

T = TypeVar("T")


# =============================================================================
# Exemptions
# =============================================================================

def is_exempt(member: discord.Member, settings: RaidProtectionSettings) -> bool:
    """Administrators and holders of an exempt role are never actioned."""
    perms = getattr(member, "guild_permissions", None)
    if perms is not None and perms.administrator:
        return True
    if not settings.exempt_roles:
        return False
    return any(role.id in settings.exempt_roles for role in getattr(member, "roles", ()))


# =============================================================================
# Account Age
# =============================================================================

def is_suspicious_new_account(
    member: discord.abc.User,
    settings: RaidProtectionSettings,
    now: Optional[datetime] = None,
) -> bool:
    """True when the account is younger than account_age_days_min."""
    created_at = getattr(member, "created_at", None)
    if created_at is None:
        return False
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return now - created_at < timedelta(days=settings.account_age_days_min)


# =============================================================================
# Username Similarity
# =============================================================================

def username_similarity(a: str, b: str) -> float:
    """Case-insensitive similarity ratio in [0, 1]."""
    return SequenceMatcher(None, a.lower(), b.lower()).ratio()


def _name_of(item: Any) -> str:
    if isinstance(item, str):
        return item
    return getattr(item, "name", None) or str(item)


def find_similar_usernames(
    accounts: Sequence[T],
    threshold: float,
    key: Callable[[T], str] = _name_of,
) -> List[List[T]]:
    """
    Cluster accounts by name similarity.

    Greedy single-seed grouping: each unprocessed account seeds a group of
    every other unprocessed account whose name scores >= threshold against
    the seed. Grouping is not transitive. Only groups with at least two
    members are returned, seed first.
    """
    names = [key(a) for a in accounts]
    processed = [False] * len(accounts)
    groups: List[List[T]] = []

    for i, seed in enumerate(accounts):
        if processed[i]:
            continue
        processed[i] = True

        group = [seed]
        for j in range(i + 1, len(accounts)):
            if processed[j]:
                continue
            if username_similarity(names[i], names[j]) >= threshold:
                group.append(accounts[j])
                processed[j] = True

        if len(group) > 1:
            groups.append(group)

    return groups


__all__ = [
    "is_exempt",
    "is_suspicious_new_account",
    "username_similarity",
    "find_similar_usernames",
]
