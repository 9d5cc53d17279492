#!/usr/bin/env python3
"""
RaidGuard - Entry Point
=======================

Raid detection and lockdown bot for Discord communities.

Features:
- Join velocity raid detection
- New-account, similar-username and message pattern checks
- Channel lockdown with automatic restore
- Single instance enforcement
- Graceful error handling

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
import fcntl
import os
import sys
from typing import IO, Optional

from dotenv import load_dotenv

from src.core.logger import logger
from src.utils.error_handler import ErrorHandler


PID_FILE = os.getenv("RAIDGUARD_PID_FILE", "/tmp/raidguard.pid")

# Held open for the life of the process so the flock stays in place
_lock_handle: Optional[IO[str]] = None


def check_running_instance() -> bool:
    """
    Take an exclusive lock on the PID file.

    Returns:
        True if lock acquired successfully, False if another instance is running
    """
    global _lock_handle
    current_pid = os.getpid()

    try:
        fp = open(PID_FILE, "a+")
        fcntl.flock(fp.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        logger.error("Another RaidGuard Instance Is Running", [
            ("Lock File", PID_FILE),
        ])
        return False
    except OSError as e:
        logger.error("Failed to Acquire Lock File", [
            ("Lock File", PID_FILE),
            ("Error", str(e)),
        ])
        return False

    fp.seek(0)
    fp.truncate()
    fp.write(str(current_pid))
    fp.flush()
    _lock_handle = fp

    logger.info("Instance Lock Acquired", [
        ("PID", str(current_pid)),
        ("Lock File", PID_FILE),
    ])
    return True


async def main() -> None:
    """
    Main entry point.

    1. Loads .env into the environment
    2. Validates configuration (exits on missing DISCORD_TOKEN)
    3. Builds the bot and connects to Discord
    """
    load_dotenv()

    from src.core.config import ConfigValidationError, validate_and_log_config

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Startup Aborted - Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    logger.tree("RAIDGUARD STARTING", [
        ("Server", "discord.gg/syria"),
        ("Ignored Guilds", str(len(config.ignored_guild_ids or ()))),
    ], emoji="🛡️")

    from src.bot import RaidGuardBot

    bot = RaidGuardBot()
    try:
        async with bot:
            await bot.start(config.discord_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)


if __name__ == "__main__":
    if not check_running_instance():
        logger.error("Startup Aborted - Another Instance Is Already Running")
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot Stopped By User (Ctrl+C)")
