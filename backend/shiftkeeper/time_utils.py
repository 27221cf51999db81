from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# -- Store-local time --
#
# Everything persisted is UTC-naive. Schedules, clock windows and business
# dates are wall-clock values in the store's own zone, so the helpers below
# convert at the edges only.


def store_zone(tz_name: Optional[str], default: str = "America/Chicago") -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or default)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(default)


def to_local(dt_utc: datetime, tz: ZoneInfo) -> datetime:
    """UTC-naive -> aware local datetime."""
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(tz)


def local_to_utc(dt_local: datetime, tz: ZoneInfo) -> datetime:
    """Local wall-clock (naive or aware) -> UTC-naive."""
    if dt_local.tzinfo is None:
        dt_local = dt_local.replace(tzinfo=tz)
    return dt_local.astimezone(timezone.utc).replace(tzinfo=None)


def parse_entered_datetime(value: Optional[str], tz: ZoneInfo) -> Optional[datetime]:
    """
    Parse an employee-entered timestamp into UTC-naive.

    A naive value is a wall-clock time typed at the store kiosk, so it is
    interpreted in the store's zone. "Z" or an explicit offset is honoured.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    return local_to_utc(dt, tz)


def day_of_week(dt_local: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (dt_local.weekday() + 1) % 7


def minute_of_day(dt_local: datetime) -> int:
    return dt_local.hour * 60 + dt_local.minute


def round_to_30_minutes(dt: datetime) -> datetime:
    """
    Payroll rounding: :00-:14 -> :00, :15-:44 -> :30, :45-:59 -> next hour.
    Seconds are dropped before rounding.
    """
    base = dt.replace(second=0, microsecond=0)
    if base.minute < 15:
        return base.replace(minute=0)
    if base.minute < 45:
        return base.replace(minute=30)
    return base.replace(minute=0) + timedelta(hours=1)


def parse_hhmm(value: str) -> int:
    """'HH:MM' or 'HH:MM:SS' -> minutes after midnight."""
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    minutes = minutes % (24 * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_business_date(value) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return date.fromisoformat(str(value).strip())


def local_datetime(business_date: date, minutes: int, tz: ZoneInfo) -> datetime:
    """Aware local datetime for a business date plus minutes after midnight.

    minutes may exceed 24h for an overnight end.
    """
    naive = datetime.combine(business_date, datetime.min.time()) + timedelta(minutes=minutes)
    return naive.replace(tzinfo=tz)
