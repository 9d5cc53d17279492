"""
RaidGuard - Async Utilities
===========================

Concurrent fan-out and background tasks that never fail silently.

Usage:
    from src.utils.async_utils import gather_with_logging

    results = await gather_with_logging(
        ("Lock #general", lock(general)),
        ("Lock #media", lock(media)),
        context="Channel Lock",
    )

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from typing import Any, Coroutine, List, Optional, Tuple

from src.core.constants import LOG_TRUNCATE_MEDIUM
from src.core.logger import logger


async def gather_with_logging(
    *operations: Tuple[str, Coroutine[Any, Any, Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run named coroutines concurrently and log every one that raised.

    Args:
        *operations: (name, coroutine) pairs.
        context: Prefix for the log entry, e.g. "Channel Lock".

    Returns:
        Results in input order. Exceptions are returned, not raised.
    """
    if not operations:
        return []

    names, coros = zip(*operations)
    results = await asyncio.gather(*coros, return_exceptions=True)

    for name, result in zip(names, results):
        if not isinstance(result, Exception):
            continue
        details = [("Context", context)] if context else []
        details += [
            ("Operation", name),
            ("Error Type", type(result).__name__),
            ("Error", str(result)[:LOG_TRUNCATE_MEDIUM]),
        ]
        logger.warning("Async Operation Failed", details)

    return list(results)


# =============================================================================
# Safe Background Tasks
# =============================================================================

def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Schedule a coroutine whose failure is logged instead of lost.

    Cancellation ends the task quietly.
    The returned task is the one the coroutine runs in, so
    asyncio.current_task() inside it identifies the task.
    """
    async def runner() -> None:
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:LOG_TRUNCATE_MEDIUM]),
            ])

    return asyncio.create_task(runner(), name=name)


__all__ = [
    "gather_with_logging",
    "create_safe_task",
]
