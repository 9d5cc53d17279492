"""
RaidGuard - Utils Package
=========================

Helper modules shared by the services.

DESIGN:
    Utils are stateless helper functions that can be used anywhere in
    the codebase. They should not depend on bot state.

Available Utilities:
    Async: gather_with_logging, create_safe_task
    Rate Limits: log_http_error, send_message_with_retry
    Footer: Standardized embed footer with cached avatar

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

# =============================================================================
# Utility Imports
# =============================================================================

from .async_utils import create_safe_task, gather_with_logging
from .discord_rate_limit import log_http_error, send_message_with_retry
from .footer import FOOTER_TEXT, init_footer, set_footer


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "create_safe_task",
    "gather_with_logging",
    "log_http_error",
    "send_message_with_retry",
    "FOOTER_TEXT",
    "init_footer",
    "set_footer",
]
