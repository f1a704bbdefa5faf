"""
Broker date parsing and timezone normalization.

Broker reports record wall-clock digits only. Each value is read as wall-clock
time in the broker's declared zone, turned into a true instant, then
re-expressed as New York wall-clock time. Both steps use the IANA database
through zoneinfo, so DST is honored for the exact date involved.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from openpyxl.utils.datetime import from_excel

from app.config import TARGET_TIMEZONE
from app.imports.models import DataSource

logger = logging.getLogger(__name__)

# Broker/server timezones offered to the user
BROKER_TIMEZONES = {
    "Europe/Helsinki": "Helsinki (EET/EEST, most MetaTrader servers)",
    "Etc/UTC": "UTC",
    "Europe/London": "London (GMT/BST)",
    "America/New_York": "New York (EST/EDT)",
    "Asia/Tokyo": "Tokyo (JST)",
    "America/Sao_Paulo": "São Paulo (BRT)",
}

# Native string formats per data source, tried in order
NATIVE_FORMATS = {
    DataSource.METATRADER: [
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
        "%d-%m-%Y %H:%M:%S",
        "%d-%m-%Y %H:%M",
        "%Y-%m-%d",
    ],
    DataSource.NINJATRADER: [
        "%d/%m/%Y %H:%M:%S",
        "%m/%d/%Y %I:%M:%S %p",
        "%m/%d/%Y %I:%M %p",
        "%d/%m/%Y %H:%M",
    ],
    DataSource.TRADOVATE: [
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y %I:%M:%S %p",
        "%m/%d/%Y %H:%M",
    ],
}

# Excel serials outside this range are not dates (1900-01-01 .. 9999-12-31)
_MIN_SERIAL = 1
_MAX_SERIAL = 2958465


def validate_timezone(name: str) -> ZoneInfo:
    """
    Resolve an IANA zone name.

    Raises:
        ValueError: Unknown or malformed zone name
    """
    if not name:
        raise ValueError("Timezone name is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def excel_serial_to_datetime(serial: float) -> Optional[datetime]:
    """Decode an Excel (1900 system) serial date, rounding the time of day to the second."""
    if not (_MIN_SERIAL <= serial <= _MAX_SERIAL):
        return None
    try:
        value = from_excel(serial)
    except (OverflowError, ValueError):
        return None
    if not isinstance(value, datetime):
        return None
    return (value + timedelta(microseconds=500_000)).replace(microsecond=0)


def _normalize_metatrader(text: str) -> str:
    # 2025.12.05 / 2025/12/05 -> 2025-12-05
    return text.replace(".", "-").replace("/", "-")


def _parse_iso(text: str) -> Optional[datetime]:
    candidate = text.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def parse_broker_date(raw: Any, data_source: Optional[DataSource]) -> Optional[datetime]:
    """
    Parse a broker date/time cell.

    Order: datetime passthrough, Excel serial numbers, the data source's native
    formats, then ISO 8601. Seconds default to 0 when absent.

    Returns:
        Naive wall-clock datetime, an aware datetime when the value carried an
        explicit offset, or None when nothing matched. Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, datetime.min.time())
    if isinstance(raw, (int, float)):
        return excel_serial_to_datetime(float(raw))

    text = " ".join(str(raw).split())
    if not text:
        return None

    source = data_source or DataSource.METATRADER
    candidate = _normalize_metatrader(text) if source is DataSource.METATRADER else text
    for fmt in NATIVE_FORMATS[source]:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue

    parsed = _parse_iso(text)
    if parsed is None:
        logger.debug(f"Unparseable {source.value} date: {text!r}")
    return parsed


def convert_wall_clock(wall_clock: datetime, source_tz: str, target_tz: str = TARGET_TIMEZONE) -> datetime:
    """
    Re-express a naive wall-clock reading from one zone as wall-clock time in another.

    Ambiguous or skipped local times (DST transitions) resolve with fold=0,
    the earlier of the two offsets.
    """
    source_zone = validate_timezone(source_tz)
    target_zone = validate_timezone(target_tz)
    instant = wall_clock.replace(tzinfo=source_zone).astimezone(timezone.utc)
    return instant.astimezone(target_zone).replace(tzinfo=None)


def to_target_timezone(value: datetime, source_tz: str, target_tz: str = TARGET_TIMEZONE) -> datetime:
    """
    Convert a parsed broker datetime to naive target-zone wall-clock time.

    Naive values are interpreted in ``source_tz``; aware values already name
    their instant and are only re-projected.
    """
    if value.tzinfo is not None:
        return value.astimezone(validate_timezone(target_tz)).replace(tzinfo=None)
    return convert_wall_clock(value, source_tz, target_tz)
