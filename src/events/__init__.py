"""
RaidGuard - Events Package
==========================

Event handler Cogs that feed Discord events into the raid engine.

DESIGN:
    Each event file contains a Cog class with @commands.Cog.listener decorators.
    Cogs are loaded dynamically by the bot using load_extension().

    Event routing:
    - members.py: Member join -> RaidProtectionService.on_member_join
    - messages.py: Message create -> RaidProtectionService.on_message

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "src.events.members",
    "src.events.messages",
]
"""
List of event cog module paths for dynamic loading.

DESIGN:
    Bot iterates this list and calls load_extension() for each.
"""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "EVENT_COGS",
]
