from __future__ import annotations

from datetime import date, timedelta

# Single source for the booking lead time; Settings.min_lead_days defaults here.
MIN_LEAD_DAYS = 2

MIN_TOTAL_DAYS = 1
MAX_TOTAL_DAYS = 365


def compute_end_date(start_date: date, total_days: int) -> date:
    """Return the campaign end date: ``start_date`` plus ``total_days`` days.

    ``total_days`` is expected to be a positive integer; callers validate it
    before getting here.
    """
    return start_date + timedelta(days=total_days)


def compute_min_start_date(today: date, lead_days: int = MIN_LEAD_DAYS) -> date:
    return today + timedelta(days=lead_days)


def is_valid_start_date(
    start_date: date, today: date, lead_days: int = MIN_LEAD_DAYS
) -> bool:
    return start_date >= compute_min_start_date(today, lead_days)


def is_valid_total_days(total_days: object) -> bool:
    # bool is an int subclass; a checkbox value is never a duration.
    return (
        isinstance(total_days, int)
        and not isinstance(total_days, bool)
        and MIN_TOTAL_DAYS <= total_days <= MAX_TOTAL_DAYS
    )
