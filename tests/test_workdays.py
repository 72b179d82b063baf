"""Unit tests for the calendar and minute arithmetic helpers."""

from datetime import date, datetime, time
from decimal import Decimal

from hrm.core.workdays import (
    clip_range,
    count_requested_days,
    count_weekdays,
    date_ranges_overlap,
    early_leave_minutes,
    late_minutes,
    overtime_minutes,
    shift_window,
    tenure_months_for_year,
    tenure_months_on,
    working_days_in_month,
)


def test_requested_days_skip_weekend_and_holiday() -> None:
    """Mon 2025-03-10 .. Fri 2025-03-14 with Wednesday off counts 4 days."""
    days = count_requested_days(date(2025, 3, 10), date(2025, 3, 14), {date(2025, 3, 12)})
    assert days == Decimal("4")


def test_requested_days_over_weekend() -> None:
    assert count_requested_days(date(2025, 3, 7), date(2025, 3, 10)) == Decimal("2")
    assert count_requested_days(date(2025, 3, 7), date(2025, 3, 10), include_weekends=True) == Decimal("4")


def test_requested_days_holiday_excluded_with_weekends() -> None:
    days = count_requested_days(
        date(2025, 3, 8), date(2025, 3, 9), {date(2025, 3, 9)}, include_weekends=True
    )
    assert days == Decimal("1")


def test_requested_days_reversed_range_is_zero() -> None:
    assert count_requested_days(date(2025, 3, 14), date(2025, 3, 10)) == Decimal("0")


def test_weekday_counts() -> None:
    assert count_weekdays(date(2025, 3, 1), date(2025, 3, 2)) == 0
    # March 2025 starts on a Saturday: 21 weekdays
    assert working_days_in_month(2025, 3) == 21
    assert working_days_in_month(2024, 2) == 21


def test_ranges_overlap_inclusive() -> None:
    assert date_ranges_overlap(date(2025, 3, 10), date(2025, 3, 12), date(2025, 3, 12), date(2025, 3, 14))
    assert not date_ranges_overlap(date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12), date(2025, 3, 14))


def test_clip_range() -> None:
    assert clip_range(date(2025, 2, 25), date(2025, 3, 4), date(2025, 3, 1), date(2025, 3, 31)) == (
        date(2025, 3, 1),
        date(2025, 3, 4),
    )
    assert clip_range(date(2025, 2, 1), date(2025, 2, 5), date(2025, 3, 1), date(2025, 3, 31)) is None


def test_late_minutes_respects_flex() -> None:
    start = datetime(2025, 3, 3, 9, 0)
    assert late_minutes(datetime(2025, 3, 3, 9, 8), start, 10) == 0
    assert late_minutes(datetime(2025, 3, 3, 9, 25), start, 10) == 15
    assert late_minutes(datetime(2025, 3, 3, 9, 25), start, None) == 25


def test_early_and_overtime_minutes() -> None:
    end = datetime(2025, 3, 3, 18, 0)
    assert early_leave_minutes(datetime(2025, 3, 3, 17, 30), end, 10) == 20
    assert early_leave_minutes(datetime(2025, 3, 3, 17, 55), end, 10) == 0
    assert overtime_minutes(datetime(2025, 3, 3, 18, 30), end) == 30
    assert overtime_minutes(datetime(2025, 3, 3, 17, 59), end) == 0


def test_night_shift_window_ends_next_day() -> None:
    start, end = shift_window(date(2025, 3, 3), time(22, 0), time(6, 0), is_night_shift=True)
    assert start == datetime(2025, 3, 3, 22, 0)
    assert end == datetime(2025, 3, 4, 6, 0)


def test_tenure_months() -> None:
    assert tenure_months_for_year(date(2024, 3, 10), 2025) == 22
    assert tenure_months_for_year(date(2025, 12, 1), 2025) == 1
    assert tenure_months_on(date(2024, 3, 10), date(2025, 3, 1)) == 12
