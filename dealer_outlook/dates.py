"""
Temporal Parser Module
Converts the date representations found in the record streams into naive
local datetimes and provides the month-bucket helpers used by the outlook.

Supported inputs:
- epoch seconds or milliseconds (int, float or an all-digit string)
- ISO 8601 strings
- dd/mm/yyyy and dd/mm/yy (day first, 2-digit years are 20xx)
- anything dateutil can parse, read day first
- datetime / date / pandas Timestamp values

Nothing here raises on bad input; unparseable values come back as None.
"""

import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Numbers below this are epoch seconds, at or above it epoch milliseconds.
# 1e11 seconds is the year 5138; 1e11 milliseconds is March 1973.
EPOCH_MILLIS_THRESHOLD = 100_000_000_000

_DAY_FIRST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_ALL_DIGITS = re.compile(r"^\d{9,}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_EMPTY_TOKENS = {"", "-"}

# Fills date parts missing from free-form input instead of the wall clock
PARTIAL_DATE_DEFAULT = datetime(2000, 1, 1)


@dataclass(frozen=True)
class MonthBucket:
    """A calendar month window [start, end)."""
    start: datetime
    end: datetime

    @property
    def label(self) -> str:
        return self.start.strftime("%b %Y")  # "Feb 2026"

    def contains(self, value: datetime) -> bool:
        return self.start <= value < self.end


# =============================================================================
# PARSING
# =============================================================================

def _to_naive_local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _from_epoch(number: float) -> Optional[datetime]:
    if number != number:  # NaN
        return None
    millis = number * 1000 if abs(number) < EPOCH_MILLIS_THRESHOLD else number
    try:
        return datetime.fromtimestamp(millis / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def parse_date(value) -> Optional[datetime]:
    """
    Parse a loosely formatted date into a naive local datetime.

    Order of attempts:
    1. numeric epoch (seconds below EPOCH_MILLIS_THRESHOLD, else milliseconds)
    2. ISO 8601 (yyyy-mm-dd...)
    3. dd/mm/yyyy with 2-4 digit year, day first
    4. dateutil's generic parser, day first; missing parts come from
       PARTIAL_DATE_DEFAULT ("2026" is 1 Jan 2026)

    Returns None when nothing matches, including "" and "-".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        # pandas.NaT is a datetime subclass that compares unequal to itself
        if value != value:
            return None
        return _to_naive_local(value.to_pydatetime() if hasattr(value, "to_pydatetime") else value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, numbers.Real):
        return _from_epoch(float(value))

    raw = str(value).strip()
    if raw in _EMPTY_TOKENS:
        return None

    if _ALL_DIGITS.match(raw):
        return _from_epoch(float(raw))

    if _ISO_DATE.match(raw):
        try:
            return _to_naive_local(date_parser.isoparse(raw))
        except (ValueError, OverflowError):
            pass

    match = _DAY_FIRST.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if len(match.group(3)) == 2:
            year += 2000
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    try:
        return _to_naive_local(date_parser.parse(raw, dayfirst=True, default=PARTIAL_DATE_DEFAULT))
    except (ValueError, OverflowError, TypeError):
        return None


def first_date(record, fields: Iterable[str]) -> Optional[datetime]:
    """First parseable date among ``fields`` of a record mapping."""
    if not isinstance(record, dict):
        return None
    for name in fields:
        parsed = parse_date(record.get(name))
        if parsed is not None:
            return parsed
    return None


# =============================================================================
# TRANSFORMS
# =============================================================================

def add_days(value: datetime, count: int) -> datetime:
    return value + timedelta(days=count)


def add_months(value: datetime, count: int) -> datetime:
    """Calendar month arithmetic; month-end days are clamped (Jan 31 + 1 = Feb 28)."""
    return value + relativedelta(months=count)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def parse_year_month(value) -> Optional[datetime]:
    """'2026-01' / '01/2026' / datetime -> first day of that month."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        parsed = parse_date(value)
        return start_of_month(parsed) if parsed else None
    raw = str(value).strip()
    match = re.match(r"^(\d{4})-(\d{1,2})$", raw) or re.match(r"^(\d{1,2})/(\d{4})$", raw)
    if match:
        first, second = (int(part) for part in match.groups())
        year, month = (first, second) if first > 12 else (second, first)
        try:
            return datetime(year, month, 1)
        except ValueError:
            return None
    parsed = parse_date(raw)
    return start_of_month(parsed) if parsed else None


# =============================================================================
# MONTH BUCKETS
# =============================================================================

def month_buckets(anchor: datetime, count: int, offset_months: int = 0) -> List[MonthBucket]:
    """
    ``count`` consecutive month buckets, the first starting at the month
    ``offset_months`` after ``anchor``.
    """
    first = start_of_month(add_months(start_of_month(anchor), offset_months))
    buckets = []
    for i in range(max(0, count)):
        start = add_months(first, i)
        buckets.append(MonthBucket(start=start, end=add_months(start, 1)))
    return buckets


def bucket_index(value: Optional[datetime], buckets: List[MonthBucket]) -> Optional[int]:
    """Index of the first bucket containing ``value``; None when outside all."""
    if value is None:
        return None
    for i, bucket in enumerate(buckets):
        if bucket.contains(value):
            return i
    return None
