"""
RaidGuard - Configuration Module
================================

Process-level configuration loaded from environment variables.

DESIGN:
    Only deployment concerns live here (token, database path, webhook,
    background intervals). Everything an administrator tunes per guild
    lives in RaidProtectionSettings and the settings store.

    Key patterns:
    - Singleton via get_config()
    - Validation happens once at load time
    - Optional values fall back to defaults with a logged warning

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import os
from dataclasses import dataclass
from typing import Optional, Set
from zoneinfo import ZoneInfo

from src.core.constants import JOIN_PRUNE_INTERVAL, MESSAGE_WINDOW_SWEEP_INTERVAL
from src.core.errors import ConfigurationError


# =============================================================================
# Timezone
# =============================================================================

NY_TZ = ZoneInfo("America/New_York")
"""Eastern timezone used for embed timestamps and logs."""


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Deployment configuration.

    Attributes:
        discord_token: Bot authentication token.
        developer_id: Optional user ID pinged on critical failures.
        error_webhook_url: Optional webhook for logger error alerts.
        database_path: SQLite file location (None = default under data/).
        join_prune_interval: Seconds between join-data prune sweeps.
        message_window_sweep_interval: Seconds between idle message-window sweeps.
        ignored_guild_ids: Guilds the engine never acts in.
    """

    # -------------------------------------------------------------------------
    # Required
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional
    # -------------------------------------------------------------------------

    developer_id: Optional[int] = None
    error_webhook_url: Optional[str] = None
    database_path: Optional[str] = None
    join_prune_interval: int = JOIN_PRUNE_INTERVAL
    message_window_sweep_interval: int = MESSAGE_WINDOW_SWEEP_INTERVAL
    ignored_guild_ids: Set[int] = None


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for alert embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    BLUE = 0x3498DB
    ORANGE = 0xFF9800

    SUCCESS = GREEN
    WARNING = GOLD
    INFO = BLUE

    SEVERITY_LOW = GOLD
    SEVERITY_MODERATE = ORANGE
    SEVERITY_SEVERE = RED


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(ConfigurationError):
    """Raised when required environment configuration is missing or invalid."""


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    """Parse an optional integer, returning None when missing or invalid."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_set(value: Optional[str]) -> Set[int]:
    """Parse a comma-separated list of integers, skipping invalid entries."""
    if not value:
        return set()
    result = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            result.add(int(part))
        except ValueError:
            pass
    return result


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse an optional integer with a default and range clamp.

    Returns:
        Parsed integer clamped to [min_val, max_val], or default.
    """
    if not value:
        return default

    from src.core.logger import logger

    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default

    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return the URL if it looks like http(s), otherwise None."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from src.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigValidationError: If a required variable is missing.
    """
    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        raise ConfigValidationError("Missing required environment variables: DISCORD_TOKEN")

    ignored_guild_ids = _parse_int_set(os.getenv("IGNORED_GUILD_IDS"))

    return Config(
        discord_token=discord_token,
        developer_id=_parse_int_optional(os.getenv("DEVELOPER_ID")),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
        database_path=os.getenv("DATABASE_PATH") or None,
        join_prune_interval=_parse_int_with_default(
            os.getenv("JOIN_PRUNE_INTERVAL"), JOIN_PRUNE_INTERVAL, "JOIN_PRUNE_INTERVAL",
            min_val=60, max_val=7 * JOIN_PRUNE_INTERVAL,
        ),
        message_window_sweep_interval=_parse_int_with_default(
            os.getenv("MESSAGE_WINDOW_SWEEP_INTERVAL"), MESSAGE_WINDOW_SWEEP_INTERVAL,
            "MESSAGE_WINDOW_SWEEP_INTERVAL", min_val=10, max_val=3600,
        ),
        ignored_guild_ids=ignored_guild_ids if ignored_guild_ids else None,
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading it on first use.

    Raises:
        ConfigValidationError: On first call if the environment is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """Load the config (raising on errors) and log a startup summary."""
    from src.core.logger import logger

    config = get_config()
    if config.error_webhook_url:
        logger.set_webhook(config.error_webhook_url)

    logger.tree("Configuration Validated", [
        ("Required", "✅ All required variables set"),
        ("Database", config.database_path or "default"),
        ("Error Webhook", "Enabled" if config.error_webhook_url else "Disabled"),
        ("Join Prune Interval", f"{config.join_prune_interval}s"),
        ("Ignored Guilds", str(len(config.ignored_guild_ids or ()))),
    ], emoji="⚙️")
    return config


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    "load_config",
    "validate_and_log_config",
]
