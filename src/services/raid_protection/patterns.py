"""
RaidGuard - Message Pattern Heuristics
======================================

Short-term per-account message windows for spam, mention and link abuse.

DESIGN:
    Windows are keyed by (guild_id, user_id) so the same account in two
    guilds is tracked independently. Each window is a bounded deque and is
    cleared as soon as a pattern fires, so one burst produces one flag.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import re
import time
from collections import Counter, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional, Pattern, Sequence, Tuple

import discord

from src.core.constants import (
    DUPLICATE_CONTENT_LIMIT,
    MESSAGE_WINDOW_SIZE,
    PATTERN_MIN_MESSAGES,
    REPEATED_LINK_LIMIT,
)
from src.services.raid_protection.models import RaidProtectionSettings


# =============================================================================
# Compiled Regex Patterns
# =============================================================================

LINK_PATTERN: Pattern = re.compile(r'https?://[^\s<>"{}|\\^`\[\]]+')


# =============================================================================
# Message Summary
# =============================================================================

@dataclass(frozen=True)
class MessageSummary:
    """What the pattern checks need to know about one message."""
    content: str
    mention_count: int
    urls: Tuple[str, ...]
    timestamp: float

    @classmethod
    def from_message(cls, message: discord.Message, timestamp: Optional[float] = None) -> "MessageSummary":
        content = message.content or ""
        return cls(
            content=content,
            mention_count=len(message.mentions) + len(message.role_mentions),
            urls=extract_urls(content),
            timestamp=timestamp if timestamp is not None else time.time(),
        )


def extract_urls(content: str) -> Tuple[str, ...]:
    """All http(s) URLs in the content, in order."""
    return tuple(LINK_PATTERN.findall(content))


# =============================================================================
# Pattern Check
# =============================================================================

def is_suspicious_pattern(window: Sequence[MessageSummary], settings: RaidProtectionSettings) -> bool:
    """
    Flag a window that shows any of:
    - DUPLICATE_CONTENT_LIMIT messages with identical non-empty content
    - cumulative user and role mentions reaching settings.mention_threshold
    - REPEATED_LINK_LIMIT messages carrying the same URL
    """
    if len(window) < PATTERN_MIN_MESSAGES:
        return False

    contents = Counter(m.content for m in window if m.content)
    if contents and max(contents.values()) >= DUPLICATE_CONTENT_LIMIT:
        return True

    if sum(m.mention_count for m in window) >= settings.mention_threshold:
        return True

    # Count messages per URL, not occurrences
    links = Counter(url for m in window for url in set(m.urls))
    if links and max(links.values()) >= REPEATED_LINK_LIMIT:
        return True

    return False


# =============================================================================
# Tracker
# =============================================================================

class MessagePatternTracker:
    """In-memory message windows owned by the orchestrator."""

    def __init__(
        self,
        max_size: int = MESSAGE_WINDOW_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_size = max_size
        self._clock = clock
        self._windows: Dict[Tuple[int, int], Deque[MessageSummary]] = {}

    def add(self, guild_id: int, user_id: int, summary: MessageSummary) -> Tuple[MessageSummary, ...]:
        """Append a message and return a snapshot of the window."""
        key = (guild_id, user_id)
        window = self._windows.get(key)
        if window is None:
            window = deque(maxlen=self.max_size)
            self._windows[key] = window
        window.append(summary)
        return tuple(window)

    def check(
        self,
        guild_id: int,
        user_id: int,
        summary: MessageSummary,
        settings: RaidProtectionSettings,
    ) -> bool:
        """Add a message; on a positive flag clear the window and return True."""
        window = self.add(guild_id, user_id, summary)
        if is_suspicious_pattern(window, settings):
            self.clear(guild_id, user_id)
            return True
        return False

    def get_window(self, guild_id: int, user_id: int) -> Tuple[MessageSummary, ...]:
        return tuple(self._windows.get((guild_id, user_id), ()))

    def clear(self, guild_id: int, user_id: int) -> None:
        self._windows.pop((guild_id, user_id), None)

    def prune_idle(self, max_idle_seconds: float) -> int:
        """Drop windows whose newest message is older than max_idle_seconds."""
        cutoff = self._clock() - max_idle_seconds
        stale = [
            key for key, window in self._windows.items()
            if not window or window[-1].timestamp < cutoff
        ]
        for key in stale:
            del self._windows[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._windows)


__all__ = [
    "MessageSummary",
    "MessagePatternTracker",
    "extract_urls",
    "is_suspicious_pattern",
]
