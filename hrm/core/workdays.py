"""
Calendar and time arithmetic shared by the attendance and leave engines.

All functions are pure: holidays are passed in as a set of dates rather than
looked up, so callers decide which holidays apply.
"""

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Set, Tuple

SATURDAY = 5
SUNDAY = 6


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in [start, end], inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def count_weekdays(start: date, end: date) -> int:
    return sum(1 for d in iter_dates(start, end) if not is_weekend(d))


def working_days_in_month(year: int, month: int) -> int:
    """Weekdays in the month. Public holidays are not excluded here."""
    start, end = month_bounds(year, month)
    return count_weekdays(start, end)


def count_requested_days(
    start: date,
    end: date,
    holidays: Optional[Iterable[date]] = None,
    include_weekends: bool = False,
) -> Decimal:
    """
    Leave days in [start, end]. A day counts when it is not a weekend (unless
    include_weekends) and not a holiday. Holidays are excluded even when
    weekends are included.
    """
    if start > end:
        return Decimal("0")
    holiday_set: Set[date] = set(holidays or ())
    days = 0
    for d in iter_dates(start, end):
        if not include_weekends and is_weekend(d):
            continue
        if d in holiday_set:
            continue
        days += 1
    return Decimal(days)


def date_ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive overlap test."""
    return not (a_end < b_start or a_start > b_end)


def clip_range(start: date, end: date, lower: date, upper: date) -> Optional[Tuple[date, date]]:
    """Intersection of [start, end] with [lower, upper], or None."""
    s = max(start, lower)
    e = min(end, upper)
    if s > e:
        return None
    return s, e


def whole_minutes(delta: timedelta) -> int:
    """Minutes in delta, truncated toward zero."""
    return int(delta.total_seconds() / 60)


def shift_window(work_date: date, start_time: time, end_time: time, is_night_shift: bool = False) -> Tuple[datetime, datetime]:
    """Expected start/end datetimes of a shift worked on work_date. Night shifts end the next day."""
    expected_start = datetime.combine(work_date, start_time)
    expected_end = datetime.combine(work_date, end_time)
    if is_night_shift or end_time <= start_time:
        expected_end += timedelta(days=1)
    return expected_start, expected_end


def late_minutes(check_in: datetime, expected_start: datetime, flexible_minutes: Optional[int]) -> int:
    """max(0, check_in - (expected_start + flexible))."""
    allowed_start = expected_start + timedelta(minutes=flexible_minutes or 0)
    if check_in > allowed_start:
        return whole_minutes(check_in - allowed_start)
    return 0


def early_leave_minutes(check_out: datetime, expected_end: datetime, flexible_minutes: Optional[int]) -> int:
    """max(0, (expected_end - flexible) - check_out)."""
    allowed_end = expected_end - timedelta(minutes=flexible_minutes or 0)
    if check_out < allowed_end:
        return whole_minutes(allowed_end - check_out)
    return 0


def overtime_minutes(check_out: datetime, expected_end: datetime) -> int:
    """Minutes past the unshifted shift end."""
    if check_out > expected_end:
        return whole_minutes(check_out - expected_end)
    return 0


def tenure_months_for_year(hire_date: date, year: int) -> int:
    """Tenure counted toward a leave year: (year - hire.year) * 12 + (12 - hire.month + 1)."""
    return (year - hire_date.year) * 12 + (12 - hire_date.month + 1)


def tenure_months_on(hire_date: date, on: date) -> int:
    """Whole calendar months between hire_date and on."""
    return (on.year - hire_date.year) * 12 + (on.month - hire_date.month)
