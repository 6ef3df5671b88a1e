"""
Practice-day arithmetic.

A practice day does not start at midnight: it rolls over at a fixed local
cutover hour (4 AM by default), so a learner finishing a session at 1 AM
still counts towards the previous day.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

DEFAULT_CUTOVER_HOUR = 4


def resolve_timezone(name: str | None) -> tzinfo:
    """Return the tzinfo for an IANA name, UTC when empty."""
    if not name or name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


def utc_now() -> datetime:
    return datetime.now(UTC)


def practice_date(timestamp: datetime, cutover_hour: int = DEFAULT_CUTOVER_HOUR) -> date:
    """
    Map a wall-clock timestamp to the practice day it belongs to.

    Args:
        timestamp: Moment in the learner's local timezone
        cutover_hour: Local hour (0-23) at which a new practice day starts

    Returns:
        Calendar date of the practice day
    """
    if not 0 <= cutover_hour <= 23:
        raise ValueError(f"cutover_hour must be within 0-23, got {cutover_hour}")
    return (timestamp - timedelta(hours=cutover_hour)).date()


def day_difference(earlier: date, later: date) -> int:
    """Whole calendar days from `earlier` to `later` (negative if reversed)."""
    return (later - earlier).days


def expiry_for(batch_date: date, tz: tzinfo = UTC, cutover_hour: int = DEFAULT_CUTOVER_HOUR) -> datetime:
    """
    Missions for a practice date expire when the next practice day starts.

    That is midnight of the following day pushed to the cutover hour, so a
    batch built at 1 AM (still the previous practice day) stays playable
    until the cutover.
    """
    if not 0 <= cutover_hour <= 23:
        raise ValueError(f"cutover_hour must be within 0-23, got {cutover_hour}")
    return datetime.combine(batch_date + timedelta(days=1), time(hour=cutover_hour), tzinfo=tz)
