"""
RaidGuard - Error Types
=======================

Exception hierarchy shared by the raid protection engine.

DESIGN:
    ConfigurationError is surfaced to whoever asked for the change.
    PersistenceError is raised by the SQLite layer and handled by the
    engine by logging and degrading. ExternalActionFailure describes one
    rejected Discord call; batch operations keep these as data instead of
    raising them.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import Optional


class RaidGuardError(Exception):
    """Base class for all RaidGuard errors."""


class ConfigurationError(RaidGuardError):
    """Invalid or missing configuration. Never retried."""


class PersistenceError(RaidGuardError):
    """A store read or write failed."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ExternalActionFailure(RaidGuardError):
    """A single ban, kick or channel edit was rejected by Discord."""

    def __init__(self, target_id: int, action: str, reason: str) -> None:
        self.target_id = target_id
        self.action = action
        self.reason = reason
        super().__init__(f"{action} on {target_id} failed: {reason}")


__all__ = [
    "RaidGuardError",
    "ConfigurationError",
    "PersistenceError",
    "ExternalActionFailure",
]
