"""
RaidGuard - Discord Rate Limit Utilities
========================================

HTTP error logging and rate-limit aware message sending for raid alerts.

Usage:
    from src.utils.discord_rate_limit import log_http_error, send_message_with_retry

    msg = await send_message_with_retry(alert_channel, embed=embed)

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from typing import Any, List, Optional, Tuple

import discord

from src.core.logger import logger


# =============================================================================
# Configuration
# =============================================================================

class RateLimitConfig:
    """Retry policy for alert delivery."""
    MAX_RETRIES: int = 3
    BASE_DELAY: float = 1.0  # seconds, doubled per attempt
    MAX_DELAY: float = 30.0  # longer retry_after values are not waited out


# Statuses the raid engine expects during a raid and logs as warnings
RECOVERABLE_STATUSES = {
    403: ("🚫", "Forbidden"),
    404: ("❓", "Not Found"),
    429: ("🚦", "Rate Limited"),
}


# =============================================================================
# Logging Helper
# =============================================================================

def log_http_error(
    e: discord.HTTPException,
    operation: str,
    context: Optional[List[Tuple[str, str]]] = None,
) -> None:
    """
    Log a Discord HTTPException at a level matching its status.

    Missing permissions, vanished targets and rate limits are routine while
    locking a large guild; anything else is logged as an error.
    """
    items = [("Status", str(e.status)), ("Error", e.text or str(e))]
    retry_after = getattr(e, "retry_after", None)
    if isinstance(retry_after, (int, float)) and retry_after:
        items.append(("Retry After", f"{retry_after:.1f}s"))
    items.extend(context or [])

    recoverable = RECOVERABLE_STATUSES.get(e.status)
    if recoverable:
        emoji, label = recoverable
        logger.warning(f"{emoji} {operation} {label}", items)
    else:
        logger.error(f"❌ {operation} Failed", items)


# =============================================================================
# Message Sending
# =============================================================================

async def send_message_with_retry(
    channel: discord.abc.Messageable,
    content: Optional[str] = None,
    embed: Optional[discord.Embed] = None,
    max_retries: int = RateLimitConfig.MAX_RETRIES,
    **kwargs: Any,
) -> Optional[discord.Message]:
    """
    Send a message with automatic rate limit retry.

    Returns:
        The sent message or None on failure.
    """
    channel_id = str(getattr(channel, "id", "?"))

    for attempt in range(max_retries):
        try:
            return await channel.send(content=content, embed=embed, **kwargs)
        except discord.RateLimited as e:
            logger.warning("Rate Limited on Message Send", [
                ("Channel", channel_id),
                ("Attempt", f"{attempt + 1}/{max_retries}"),
                ("Retry After", f"{e.retry_after:.1f}s"),
            ])
            if attempt < max_retries - 1 and e.retry_after < RateLimitConfig.MAX_DELAY:
                await asyncio.sleep(e.retry_after + 0.5)
                continue
            return None
        except discord.HTTPException as e:
            if e.status == 429 and attempt < max_retries - 1:
                await asyncio.sleep(RateLimitConfig.BASE_DELAY * (2 ** attempt))
                continue
            log_http_error(e, "Message Send", [("Channel", channel_id)])
            return None

    return None


__all__ = [
    "RateLimitConfig",
    "log_http_error",
    "send_message_with_retry",
]
