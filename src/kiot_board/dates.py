"""Date helpers for the board's text-based date columns.

The board stores dates as ``MM/DD/YYYY`` text, but the receive-date column is
displayed day-first, so reading it back can produce either order. Return dates
are free text typed by staff ("tối 7/3", "quá 7/3") and only carry a day and a
month.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

SHEET_DATE_FORMAT = "%m/%d/%Y"
SHEET_DATETIME_FORMAT = "%m/%d/%Y %H:%M"
MESSAGE_DATE_FORMAT = "%d/%m/%Y"

DAY_MONTH_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})")
_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
# KiotViet sends up to 7 fractional digits; fromisoformat wants at most 6.
_FRACTION = re.compile(r"(\.\d{6})\d+")


@dataclass(frozen=True)
class DayMonth:
    """A day/month pair pulled out of free text (year assumed current)."""

    day: int
    month: int
    text: str

    def is_same_day(self, today: date) -> bool:
        return self.day == today.day and self.month == today.month

    def is_before(self, today: date) -> bool:
        if self.month < today.month:
            return True
        return self.month == today.month and self.day < today.day


def format_for_sheet(value: datetime | date | None, with_time: bool = False) -> str:
    """Format a date as ``MM/DD/YYYY`` or, with ``with_time``, ``MM/DD/YYYY HH:mm``."""
    if value is None:
        return ""
    if with_time and isinstance(value, datetime):
        return value.strftime(SHEET_DATETIME_FORMAT)
    return value.strftime(SHEET_DATE_FORMAT)


def format_for_message(value: date) -> str:
    """Format a date the way Vietnamese readers expect (``DD/MM/YYYY``)."""
    return value.strftime(MESSAGE_DATE_FORMAT)


def _leading_int(text: str) -> int | None:
    match = _LEADING_INT.match(text)
    return int(match.group()) if match else None


def reconcile_ambiguous_date(text: str) -> str:
    """Bring a slash-separated date read from the sheet into ``MM/DD/YYYY`` order.

    The first two components are swapped only when the first one cannot be a
    month (greater than 12). Anything else, including ``03/05/2025`` written
    day-first, is returned unchanged.
    """
    if not text or "/" not in text:
        return text
    parts = text.split("/")
    if len(parts) != 3:
        return text
    first = _leading_int(parts[0])
    if first is not None and first > 12:
        return f"{parts[1]}/{parts[0]}/{parts[2]}"
    return text


def receive_date_key(cell: str) -> str:
    """Return the date-only part of a receive-date cell, month first."""
    date_part = cell.split(" ")[0] if cell else ""
    return reconcile_ambiguous_date(date_part)


def extract_day_month(text: str | None) -> DayMonth | None:
    """Find the first ``d/m`` pair in free text such as ``"tối 7/3"``."""
    if not text or text == "0" or not text.strip():
        return None
    match = DAY_MONTH_PATTERN.search(text)
    if not match:
        return None
    return DayMonth(day=int(match.group(1)), month=int(match.group(2)), text=match.group(0))


def parse_kiotviet_timestamp(value: str | None, tz: ZoneInfo | None = None) -> datetime | None:
    """Parse a KiotViet ISO timestamp into local wall-clock time.

    Naive timestamps are already local shop time. Aware ones are converted to
    ``tz`` when given. Unparseable values give ``None``.
    """
    if not value:
        return None
    cleaned = _FRACTION.sub(r"\1", value.strip())
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is not None and tz is not None:
        parsed = parsed.astimezone(tz).replace(tzinfo=None)
    return parsed


def today_in(tz: ZoneInfo) -> date:
    return datetime.now(tz).date()


def yesterday_of(day: date) -> date:
    return day - timedelta(days=1)
