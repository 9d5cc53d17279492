"""
RaidGuard - Embed Footer Utility
================================

Centralized footer for alert and admin embeds.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import Optional

import discord

from src.core.logger import logger


# =============================================================================
# Constants
# =============================================================================

FOOTER_TEXT = "RaidGuard"
"""Footer text displayed on every embed."""


# =============================================================================
# Module State
# =============================================================================

_cached_avatar_url: Optional[str] = None
"""Bot avatar URL, cached once the bot is ready."""


# =============================================================================
# Initialization
# =============================================================================

def init_footer(bot: discord.Client) -> None:
    """
    Cache the bot avatar for embed footers.

    DESIGN:
        Called once from on_ready, when bot.user is available.
    """
    global _cached_avatar_url
    if bot.user is None:
        logger.warning("Footer Init Skipped: Bot user not ready")
        return

    _cached_avatar_url = bot.user.display_avatar.url
    logger.tree("Footer Initialized", [
        ("Text", FOOTER_TEXT),
        ("Avatar Cached", "Yes"),
    ], emoji="📝")


# =============================================================================
# Footer Setter
# =============================================================================

def set_footer(embed: discord.Embed, avatar_url: Optional[str] = None) -> discord.Embed:
    """Set the standard footer on an embed and return it."""
    url = avatar_url if avatar_url is not None else _cached_avatar_url
    embed.set_footer(text=FOOTER_TEXT, icon_url=url)
    return embed


__all__ = [
    "FOOTER_TEXT",
    "init_footer",
    "set_footer",
]
