"""
RaidGuard - Centralized Constants
=================================

Magic numbers for the raid protection engine live here.
Import from this module instead of hardcoding values.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

# =============================================================================
# Time Constants
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800

MS_PER_SECOND = 1000
MS_PER_DAY = SECONDS_PER_DAY * MS_PER_SECOND

# =============================================================================
# Database Constants
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0          # sqlite3.connect timeout (seconds)
SQLITE_BUSY_TIMEOUT = 5000            # PRAGMA busy_timeout (ms)

# =============================================================================
# Join Tracking
# =============================================================================

JOIN_RETENTION_SECONDS = SECONDS_PER_DAY  # Join records older than this are pruned
JOIN_PRUNE_INTERVAL = SECONDS_PER_DAY     # How often the prune sweep runs

# Join cadence: gaps tighter than this are machine-like
UNNATURAL_STD_RATIO = 0.5
UNNATURAL_MIN_INTERVALS = 5

# =============================================================================
# Heuristics
# =============================================================================

SIMILAR_GROUP_MIN_SIZE = 3            # Accounts needed before a name group is acted on

MESSAGE_WINDOW_SIZE = 10              # Messages kept per account
PATTERN_MIN_MESSAGES = 3              # Window size before any pattern can fire
DUPLICATE_CONTENT_LIMIT = 3           # Identical messages to flag
REPEATED_LINK_LIMIT = 3               # Messages carrying the same URL to flag
MESSAGE_WINDOW_IDLE_SECONDS = 600     # Idle windows are dropped after this
MESSAGE_WINDOW_SWEEP_INTERVAL = 300   # How often idle windows are swept

# =============================================================================
# Moderation
# =============================================================================

BAN_DELETE_MESSAGE_SECONDS = SECONDS_PER_WEEK  # History purged on raid bans
MAX_CONCURRENT_OPS = 10               # Concurrent channel/member operations per call

# =============================================================================
# Admin Limits
# =============================================================================

JOIN_THRESHOLD_MIN = 3
JOIN_THRESHOLD_MAX = 50
JOIN_WINDOW_SECONDS_MIN = 1
JOIN_WINDOW_SECONDS_MAX = 300
ACCOUNT_AGE_DAYS_MAX = 365
INCIDENT_LIST_DEFAULT = 10
INCIDENT_LIST_MAX = 25

# =============================================================================
# Display
# =============================================================================

LOG_TRUNCATE_SHORT = 50
LOG_TRUNCATE_MEDIUM = 100
EMBED_FIELD_MAX = 1024
