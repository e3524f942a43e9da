"""Application-wide constants for Amanuensis.

Log format constants, sentinels, and the fixed values used by the
aggregator and the rank model.
"""

from __future__ import annotations

# =============================================================================
# Log Files
# =============================================================================

LOG_FILE_PREFIX = "CL Log "
"""File name prefix written by the game client."""

LOG_FILE_SUFFIX = ".txt"
"""File name suffix written by the game client."""

SKIPPED_DIRECTORIES = ("CL_Movies",)
"""Directories inside a log root that never hold character logs."""

UNKNOWN_CHARACTER = "Unknown"
"""Name used when neither a banner nor a hint identifies the character."""

CHARACTER_NAME_MAX_LENGTH = 100
"""Longest character name the store accepts."""

# =============================================================================
# Encoding
# =============================================================================

YEN_BYTE = 0xA5
"""Legacy single-byte value of the Mac client's system-message sentinel."""

SENTINEL_MAC = "¥"
"""System/trainer message prefix written by the Mac client (¥)."""

SENTINEL_WINDOWS = "•"
"""System/trainer message prefix written by the Windows client (•)."""

SENTINELS = (SENTINEL_MAC, SENTINEL_WINDOWS)

# =============================================================================
# Dates
# =============================================================================

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
"""Storage format of every date column."""

TIMESTAMP_CENTURY = 2000
"""Two-digit log years are offset from this century."""

COREDATA_EPOCH_OFFSET = 978_307_200.0
"""Seconds between the Unix epoch and 2001-01-01, the Core Data epoch."""

# =============================================================================
# Ranks
# =============================================================================

APPLY_LEARNING_FULL_RANKS = 10
"""Ranks granted by a fully specified apply-learning confirmation."""

APPLY_LEARNING_PARTIAL_MIN = 1
"""Smallest rank grant implied by a partial apply-learning message."""

APPLY_LEARNING_PARTIAL_MAX = 9
"""Largest rank grant implied by a partial apply-learning message."""

DEFAULT_MULTIPLIER = 1.0
"""Effective-rank multiplier of ordinary trainers."""

# =============================================================================
# Search
# =============================================================================

SEARCH_DEFAULT_LIMIT = 100
"""Default number of full-text search hits."""

LOG_LINE_BATCH_SIZE = 1000
"""Rows per executemany batch when indexing log lines."""


__all__ = [
    "LOG_FILE_PREFIX",
    "LOG_FILE_SUFFIX",
    "SKIPPED_DIRECTORIES",
    "UNKNOWN_CHARACTER",
    "CHARACTER_NAME_MAX_LENGTH",
    "YEN_BYTE",
    "SENTINEL_MAC",
    "SENTINEL_WINDOWS",
    "SENTINELS",
    "DATE_FORMAT",
    "TIMESTAMP_CENTURY",
    "COREDATA_EPOCH_OFFSET",
    "APPLY_LEARNING_FULL_RANKS",
    "APPLY_LEARNING_PARTIAL_MIN",
    "APPLY_LEARNING_PARTIAL_MAX",
    "DEFAULT_MULTIPLIER",
    "SEARCH_DEFAULT_LIMIT",
    "LOG_LINE_BATCH_SIZE",
]
