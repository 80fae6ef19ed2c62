"""Display formatting for invoices and share messages (vi-VN conventions).

Timestamps are stored as naive UTC.  Everything shown to the station,
and every calendar day used for filtering, is in ``settings.timezone``.
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from app.config import settings


def station_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def to_local(value: datetime) -> datetime:
    """Naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(station_tz())


def local_date(value: datetime) -> date:
    return to_local(value).date()


def local_day_start(day: date) -> datetime:
    """Local midnight of ``day`` as a naive UTC datetime, for column filters."""
    start = datetime.combine(day, time.min, tzinfo=station_tz())
    return start.astimezone(timezone.utc).replace(tzinfo=None)


def epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def format_vnd(amount: float) -> str:
    """1260000 → '1.260.000 ₫' (no decimals, '.' thousands separator)."""
    rounded = int(round(amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}{abs(rounded):,}".replace(",", ".") + " ₫"


def format_weight(kg: float) -> str:
    return f"{kg:.1f} kg"


def format_date(value: datetime) -> str:
    return to_local(value).strftime("%d/%m/%Y")


def format_datetime(value: datetime) -> str:
    return to_local(value).strftime("%d/%m/%Y %H:%M")


def parse_keypad_weight(digits: str) -> float | None:
    """Turn three keypad digits into a weight with one implied decimal.

    '505' → 50.5.  Anything that is not exactly three digits, or that
    falls outside (0, 100] kg, returns None.
    """
    digits = (digits or "").strip()
    if len(digits) != 3 or not (digits.isascii() and digits.isdigit()):
        return None
    value = int(digits) / 10
    if 0 < value <= 100:
        return value
    return None
