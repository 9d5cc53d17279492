"""
RaidGuard - Logger Module
=========================

Tree-style logging with Eastern timestamps and daily rotation.

DESIGN:
    Raid handling produces bursts of related facts (guild, joins, action,
    result). Tree formatting keeps each burst grouped under one title so a
    raid can be read back from the log in one glance.

    Key features:
    - Tree-style formatting for structured entries
    - Level methods accept optional (key, value) detail lists
    - Daily log folders with retention cleanup
    - Separate error log
    - Optional Discord webhook for errors that carry details

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("LOG_DIR", "logs"))
"""Root directory for log folders (one per day)."""

LOG_RETENTION_DAYS = 7
"""Days to keep dated log folders."""

NY_TZ = ZoneInfo("America/New_York")

Details = Optional[List[Tuple[str, str]]]


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Logger with tree-style detail output.

    Attributes:
        run_id: Short identifier for this process run.
        log_file: Main log file for today.
        error_file: Error-only log file for today.
    """

    def __init__(self, name: str = "RaidGuard") -> None:
        self.run_id: str = str(uuid.uuid4())[:8]
        self.name = name
        self._webhook_url: Optional[str] = None

        today = datetime.now(NY_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"{name}-{today}.log"
        self.error_file = self.log_dir / f"{name}-Errors-{today}.log"

        self._cleanup_old_logs()
        self._append(
            self.log_file,
            f"\n{'=' * 60}\nNEW SESSION - RUN ID: {self.run_id}\n"
            f"[{datetime.now(NY_TZ).strftime('%I:%M:%S %p %Z')}]\n{'=' * 60}\n",
        )

    def set_webhook(self, url: Optional[str]) -> None:
        """Set the webhook URL used for error notifications."""
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    def _cleanup_old_logs(self) -> None:
        """Remove dated log folders older than the retention window."""
        if not LOGS_DIR.exists():
            return

        now = datetime.now()
        for item in LOGS_DIR.iterdir():
            if not item.is_dir():
                continue
            try:
                dir_date = datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue  # not a dated folder
            if (now - dir_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()

    @staticmethod
    def _append(path: Path, text: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)

    def _write(
        self,
        message: str,
        emoji: str = "",
        include_timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        """Write one line to console, main log and (for errors) error log."""
        line = f"{emoji} {message}" if emoji else message
        if include_timestamp:
            line = f"{datetime.now(NY_TZ).strftime('[%I:%M:%S %p %Z]')} {line}"

        print(line)
        self._append(self.log_file, f"{line}\n")
        if is_error:
            self._append(self.error_file, f"{line}\n")

    def _write_items(self, items: List[Tuple[str, str]], is_error: bool = False) -> None:
        for i, (key, value) in enumerate(items):
            prefix = "└─" if i == len(items) - 1 else "├─"
            self._write(f"  {prefix} {key}: {value}", include_timestamp=False, is_error=is_error)

    def _log(self, msg: str, emoji: str, details: Details, is_error: bool = False) -> None:
        self._write(msg, emoji, is_error=is_error)
        if details:
            self._write_items(details, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, str]],
        emoji: str = "📦",
    ) -> None:
        """
        Log a titled block of key/value items.

        Example output:
            [02:30:45 PM EST] 🚨 RAID DETECTED
              ├─ Guild: Test (123)
              ├─ Severity: SEVERE
              └─ Action: lockdown
        """
        self._append(self.log_file, "\n")
        self._write(title, emoji=emoji)
        self._write_items(items)
        self._append(self.log_file, "\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Log debug output (only when DEBUG is set)."""
        if os.getenv("DEBUG"):
            self._log(msg, "🔍", details)

    def info(self, msg: str, details: Details = None) -> None:
        self._log(msg, "ℹ️", details)

    def success(self, msg: str, details: Details = None) -> None:
        self._log(msg, "✅", details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._log(msg, "⚠️", details)

    def error(self, msg: str, details: Details = None) -> None:
        """
        Log an error, optionally with details.

        Errors with details are also posted to the webhook when one is set
        and an event loop is running.
        """
        self._log(msg, "❌", details, is_error=True)

        if details and self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            loop.create_task(self._send_webhook_error(msg, details))

    def critical(self, msg: str, details: Details = None) -> None:
        self._log(msg, "🚨", details, is_error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    async def _send_webhook_error(
        self,
        title: str,
        details: List[Tuple[str, str]],
    ) -> None:
        """Post an error embed to the configured webhook."""
        if not self._webhook_url:
            return

        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{k}:** {v}" for k, v in details),
                "color": 0xFF0000,
                "timestamp": datetime.now(NY_TZ).isoformat(),
                "footer": {"text": f"Run ID: {self.run_id}"},
            }]
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status != 204:
                        print(f"Webhook error: {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"Failed to send webhook: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()
"""Process-wide logger; every module imports this instance."""


__all__ = [
    "logger",
    "TreeLogger",
]
