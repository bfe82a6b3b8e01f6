# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for BuddyTrack.

All timestamps are stored as timezone-aware UTC. Some stores (SQLite) hand
naive datetimes back, so anything read from a row goes through ensure_utc()
before date arithmetic.

Usage:
------
    from buddytrack.utils.datetime import utc_now, weeks_after

    enrolled_at = utc_now()
    due = weeks_after(enrolled_at, week_number)
"""

from datetime import datetime, timedelta, timezone

DAYS_PER_WEEK = 7


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def days_from(start: datetime, days: int) -> datetime:
    """Get the datetime N days after start, normalised to UTC.

    Args:
        start: Reference datetime (naive values are treated as UTC).
        days: Number of days to add.

    Returns:
        Timezone-aware UTC datetime.
    """
    return ensure_utc(start) + timedelta(days=days)


def weeks_after(start: datetime, weeks: int) -> datetime:
    """Get the datetime ``weeks * 7`` days after start.

    Used for task due dates (week number) and enrollment target
    completion dates (curriculum length).

    Args:
        start: Reference datetime, usually the enrollment timestamp.
        weeks: Number of weeks to add.

    Returns:
        Timezone-aware UTC datetime.
    """
    return days_from(start, weeks * DAYS_PER_WEEK)

