"""
RaidGuard - Services Package
============================

DESIGN:
    Services are classes that own runtime state and talk to Discord.
    They should:
    - Be async-compatible for non-blocking I/O
    - Handle their own error cases gracefully
    - Degrade rather than crash when the database is unavailable

Available Services:
    RaidProtectionService: Join/message raid detection and response
    RaidSettingsService: Per-guild raid protection settings

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

# =============================================================================
# Service Imports
# =============================================================================

from .raid_protection import RaidProtectionService, RaidSettingsService


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "RaidProtectionService",
    "RaidSettingsService",
]
