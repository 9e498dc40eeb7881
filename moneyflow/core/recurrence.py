"""Next-occurrence arithmetic shared by subscriptions, recurring incomes and invoices."""

from __future__ import annotations

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from moneyflow.core.exceptions import RecurrenceError

FREQUENCIES = ("daily", "weekly", "bi_weekly", "monthly", "quarterly", "yearly")


def _check_day(frequency: str, day: int | None) -> None:
    if day is None:
        return
    if frequency in ("weekly", "bi_weekly"):
        if not 0 <= day <= 6:
            raise RecurrenceError(f"Weekday for {frequency} recurrence must be 0-6, got {day}")
    elif not 1 <= day <= 31:
        raise RecurrenceError(f"Day of month must be 1-31, got {day}")


def _next_weekly(from_date: date, weeks: int, weekday: int | None) -> date:
    nxt = from_date + timedelta(weeks=weeks)
    if weekday is not None:
        # weekday 0 is Monday
        nxt = nxt - timedelta(days=nxt.weekday()) + timedelta(days=weekday)
        if nxt <= from_date:
            nxt += timedelta(weeks=weeks)
    return nxt


def _next_monthly(from_date: date, day: int | None) -> date:
    nxt = from_date + relativedelta(months=1)
    if day is not None:
        nxt += relativedelta(day=day)  # relativedelta clamps to month end
        if nxt <= from_date:
            nxt += relativedelta(months=1, day=day)
    return nxt


def next_occurrence(
    frequency: str,
    from_date: date,
    day: int | None = None,
    month: int | None = None,
) -> date:
    """
    Date of the occurrence following ``from_date``.

    ``day`` is a weekday (0-6) for weekly cycles and a day of month otherwise;
    days past the end of a month clamp to its last day. ``month`` only applies
    to yearly cycles.
    """
    if frequency not in FREQUENCIES:
        raise RecurrenceError(f"Unknown recurrence frequency: {frequency!r}")
    _check_day(frequency, day)
    if month is not None and not 1 <= month <= 12:
        raise RecurrenceError(f"Month must be 1-12, got {month}")

    if frequency == "daily":
        return from_date + timedelta(days=1)
    if frequency == "weekly":
        return _next_weekly(from_date, 1, day)
    if frequency == "bi_weekly":
        return _next_weekly(from_date, 2, day)
    if frequency == "monthly":
        return _next_monthly(from_date, day)
    if frequency == "quarterly":
        nxt = from_date + relativedelta(months=3)
        return nxt + relativedelta(day=day) if day is not None else nxt

    nxt = from_date + relativedelta(years=1)
    if month is not None:
        nxt += relativedelta(month=month)
    if day is not None:
        nxt += relativedelta(day=day)
    return nxt


def first_occurrence(
    frequency: str,
    start_date: date,
    today: date,
    day: int | None = None,
    month: int | None = None,
) -> date:
    """First due date for a newly created schedule: the start date unless it already passed."""
    if start_date >= today:
        return start_date
    return next_occurrence(frequency, start_date, day, month)
