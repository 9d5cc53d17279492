"""
RaidGuard - Error Handler
=========================

Error categorization and context capture for event and startup failures.

Features:
- Error categorization (Discord, config, persistence, network)
- Recovery suggestions in the log line
- Discord-specific context capture
- Critical error file logging

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import discord

from src.core.errors import ConfigurationError, PersistenceError
from src.core.logger import logger, LOGS_DIR


class ErrorContext:
    """Captures and formats detailed error context"""

    @staticmethod
    def get_full_context(e: Exception, location: str, **kwargs) -> Dict[str, Any]:
        """
        Get comprehensive error context.

        Args:
            e: The exception
            location: Where the error occurred
            **kwargs: Additional context (member, message, etc.)
        """
        context = {
            "timestamp": datetime.now().isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "python_version": sys.version,
            "additional_context": {k: str(v) for k, v in kwargs.items()},
        }

        message = kwargs.get("message")
        if isinstance(message, discord.Message):
            context["discord_context"] = {
                "guild": message.guild.name if message.guild else "DM",
                "channel": getattr(message.channel, "name", str(message.channel)),
                "author": str(message.author),
                "author_id": message.author.id,
            }

        member = kwargs.get("member")
        if isinstance(member, discord.Member):
            context["member_context"] = {
                "name": str(member),
                "id": member.id,
                "guild": member.guild.name,
            }

        return context


class ErrorHandler:
    """Error handling with context and recovery hints"""

    ERROR_CATEGORIES = {
        "discord": (discord.Forbidden, discord.NotFound, discord.HTTPException),
        "config": (ConfigurationError,),
        "persistence": (PersistenceError,),
        "network": (ConnectionError, TimeoutError, OSError),
    }

    RECOVERY_SUGGESTIONS = {
        "discord": "Check the bot's role position and channel permissions",
        "config": "Check the .env file and the guild's raid settings",
        "persistence": "Check the database file and disk space",
        "network": "Network issue - discord.py will reconnect automatically",
    }

    @classmethod
    def categorize_error(cls, e: Exception) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return "general"

    @classmethod
    def get_recovery_suggestion(cls, category: str) -> str:
        return cls.RECOVERY_SUGGESTIONS.get(category, "Unexpected error - check logs for details")

    @classmethod
    def handle(cls, e: Exception, location: str, critical: bool = False, **context) -> None:
        """
        Log an error with full context.

        Args:
            e: The exception
            location: Where the error occurred
            critical: Whether this error stops the process
            **context: Additional context
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(category)
        full_context = ErrorContext.get_full_context(e, location, **context)

        details = [
            ("Location", location),
            ("Category", category),
            ("Type", full_context["error_type"]),
            ("Error", full_context["error_message"][:200]),
            ("Recovery", suggestion),
        ]
        if "discord_context" in full_context:
            dc = full_context["discord_context"]
            details.append(("Guild", dc["guild"]))
            details.append(("User", f"{dc['author']} ({dc['author_id']})"))
        if "member_context" in full_context:
            mc = full_context["member_context"]
            details.append(("Member", f"{mc['name']} ({mc['id']})"))

        if critical:
            logger.critical("Critical Error", details)
            cls._store_critical_error(full_context)
        else:
            logger.error("Unhandled Error", details)

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        """Write the full context of a critical error to logs/errors/."""
        try:
            error_dir = LOGS_DIR / "errors"
            error_dir.mkdir(exist_ok=True, parents=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            error_file = error_dir / f"error_{timestamp}.json"

            with open(error_file, "w") as f:
                json.dump(context, f, indent=2, default=str)

            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.warning(f"Failed to save error details: {save_error}")


__all__ = ["ErrorContext", "ErrorHandler"]
