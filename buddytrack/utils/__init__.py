# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for BuddyTrack.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
- percentages: Rounded completion percentages
"""

from buddytrack.utils.datetime import (
    DAYS_PER_WEEK,
    days_from,
    ensure_utc,
    utc_now,
    weeks_after,
)
from buddytrack.utils.logging import bind_actor, get_logger, setup_logging, unbind_actor
from buddytrack.utils.percentages import completion_percentage

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_actor",
    "unbind_actor",
    # Datetime
    "DAYS_PER_WEEK",
    "utc_now",
    "ensure_utc",
    "days_from",
    "weeks_after",
    # Progress arithmetic
    "completion_percentage",
]
