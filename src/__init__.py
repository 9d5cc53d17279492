"""
RaidGuard - Source Package
==========================

Raid detection and lockdown engine for Discord guilds.

Package Structure:
- bot.py: Main Discord bot class
- core/: Configuration, logging, errors and the database layer
- events/: Discord event listeners (member joins, messages)
- services/: The raid protection engine
- utils/: Async, rate-limit and embed helpers

Author: حَـــــنَّـــــا
Server: discord.gg/syria
Version: v1.0.0
"""
