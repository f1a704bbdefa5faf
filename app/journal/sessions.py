"""
Trading session classification.

A trade's session bucket is derived from the UTC hour of its entry instant.
Overlapping windows are resolved in priority order, most liquid first.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import TARGET_TIMEZONE

SYDNEY = "Sydney"
TOKYO = "Tokyo"
LONDON = "London"
LONDON_NY_OVERLAP = "London-NY Overlap"
NEW_YORK = "New York"
OFF_HOURS = "Off-Hours"

# (session, start UTC hour inclusive, end UTC hour exclusive), checked in order
SESSION_WINDOWS = [
    (LONDON_NY_OVERLAP, 12, 16),
    (NEW_YORK, 12, 21),
    (LONDON, 7, 16),
    (TOKYO, 0, 9),
    (SYDNEY, 21, 24),
]


def session_for_utc_hour(hour: int) -> str:
    for name, start, end in SESSION_WINDOWS:
        if start <= hour < end:
            return name
    return OFF_HOURS


def classify_session(
    entry_date: Optional[date],
    entry_time: Optional[time],
    timezone_name: str = TARGET_TIMEZONE,
) -> str:
    """
    Classify a trade into a session bucket.

    Args:
        entry_date: Wall-clock entry date in ``timezone_name``
        entry_time: Wall-clock entry time in ``timezone_name``
        timezone_name: Zone the wall-clock values are expressed in

    Returns:
        Session name; ``Off-Hours`` when the entry time is unknown
    """
    if entry_date is None or entry_time is None:
        return OFF_HOURS

    local = datetime.combine(entry_date, entry_time).replace(tzinfo=ZoneInfo(timezone_name))
    return session_for_utc_hour(local.astimezone(timezone.utc).hour)
