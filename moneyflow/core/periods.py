"""Budget period windows and health classification.

Everything here is a pure function of its arguments. The reference date is
always passed in explicitly, never read from the clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta

from moneyflow.core.exceptions import PeriodComputationError
from moneyflow.models.budget import BudgetPeriod

_PERIOD_MONTHS = {
    BudgetPeriod.MONTHLY: 1,
    BudgetPeriod.QUARTERLY: 3,
    BudgetPeriod.YEARLY: 12,
}

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive date range of one budget period"""

    start: date
    end: date

    @property
    def length_in_days(self) -> int:
        return (self.end - self.start).days

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def period_months(period: BudgetPeriod | str) -> int:
    """Number of calendar months in one period."""
    try:
        return _PERIOD_MONTHS[BudgetPeriod(period)]
    except (ValueError, KeyError):
        raise PeriodComputationError(f"Unknown budget period: {period!r}")


def window_at(period: BudgetPeriod | str, anchor: date, index: int) -> PeriodWindow:
    """
    Window number ``index`` counted from the anchor date.

    Starts are computed from the anchor each time (not chained) so that an
    anchor on the 31st keeps landing on month-end instead of drifting to the
    28th after February.
    """
    if anchor is None:
        raise PeriodComputationError("Budget has no start date to anchor its periods")
    if index < 0:
        raise PeriodComputationError(f"Period index must be >= 0, got {index}")

    months = period_months(period)
    start = anchor + relativedelta(months=index * months)
    next_start = anchor + relativedelta(months=(index + 1) * months)
    return PeriodWindow(start=start, end=next_start - timedelta(days=1))


def window_index(period: BudgetPeriod | str, anchor: date, reference: date) -> int:
    """Index of the window containing ``reference`` (0 when the anchor is in the future)."""
    if anchor is None:
        raise PeriodComputationError("Budget has no start date to anchor its periods")
    if reference <= anchor:
        return 0

    months = period_months(period)
    elapsed_months = (reference.year - anchor.year) * 12 + (reference.month - anchor.month)
    index = max(0, elapsed_months // months)

    # Month arithmetic is approximate around month-end anchors, settle exactly
    while index > 0 and window_at(period, anchor, index).start > reference:
        index -= 1
    while window_at(period, anchor, index + 1).start <= reference:
        index += 1
    return index


def period_window(period: BudgetPeriod | str, anchor: date, reference: date) -> PeriodWindow:
    """
    Window aligned to ``anchor`` that contains ``reference``.

    When the anchor lies in the future the first window (starting at the
    anchor) is returned.
    """
    return window_at(period, anchor, window_index(period, anchor, reference))


def previous_window(
    period: BudgetPeriod | str, anchor: date, current: PeriodWindow
) -> PeriodWindow | None:
    """Window immediately before ``current``, or None if current is the first."""
    index = window_index(period, anchor, current.start)
    if index == 0:
        return None
    return window_at(period, anchor, index - 1)


class BudgetHealth(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    DANGER = "danger"
    EXCEEDED = "exceeded"


HEALTH_COLORS = {
    BudgetHealth.EXCEEDED: "red",
    BudgetHealth.DANGER: "orange",
    BudgetHealth.WARNING: "yellow",
    BudgetHealth.HEALTHY: "green",
}


def spent_percentage(spent: Decimal, effective_budget: Decimal) -> Decimal:
    if effective_budget <= 0:
        return Decimal("0")
    return spent * HUNDRED / effective_budget


def days_elapsed(window: PeriodWindow, today: date) -> int:
    return max(1, (today - window.start).days)


def days_left(window: PeriodWindow, today: date) -> int:
    return max(0, (window.end - today).days)


def projected_spending(spent: Decimal, window: PeriodWindow, today: date) -> Decimal:
    """Extrapolate the daily average spend so far over the whole window."""
    total_days = max(1, window.length_in_days)
    return spent * total_days / days_elapsed(window, today)


def classify_health(
    spent: Decimal,
    effective_budget: Decimal,
    alert_threshold: int,
    window: PeriodWindow | None,
    today: date,
) -> BudgetHealth:
    """
    Classify spend against the effective budget.

    exceeded: at or above 100%
    warning:  at or above the alert threshold
    danger:   below the threshold but the daily-average projection overshoots
    healthy:  everything else

    The boundaries hold on every day of the window, not only the last.
    """
    percentage = spent_percentage(spent, effective_budget)
    if effective_budget > 0 and percentage >= HUNDRED:
        return BudgetHealth.EXCEEDED
    if percentage >= alert_threshold:
        return BudgetHealth.WARNING
    if window is not None and projected_spending(spent, window, today) > effective_budget:
        return BudgetHealth.DANGER
    return BudgetHealth.HEALTHY


@dataclass(frozen=True)
class HealthReport:
    status: BudgetHealth
    color: str
    percentage: Decimal
    spent: Decimal
    remaining: Decimal
    effective_budget: Decimal
    daily_avg_spent: Decimal
    daily_avg_remaining: Decimal
    projected_spending: Decimal
    will_exceed: bool
    days_left: int


def health_report(
    spent: Decimal,
    effective_budget: Decimal,
    alert_threshold: int,
    window: PeriodWindow,
    today: date,
) -> HealthReport:
    """Display metrics for one budget period. No side effects."""
    status = classify_health(spent, effective_budget, alert_threshold, window, today)
    remaining = effective_budget - spent
    left = days_left(window, today)
    projected = projected_spending(spent, window, today)
    avg_remaining = remaining / left if left > 0 and remaining > 0 else Decimal("0")

    return HealthReport(
        status=status,
        color=HEALTH_COLORS[status],
        percentage=spent_percentage(spent, effective_budget).quantize(Decimal("0.1")),
        spent=spent,
        remaining=remaining.quantize(CENT),
        effective_budget=effective_budget.quantize(CENT),
        daily_avg_spent=(spent / days_elapsed(window, today)).quantize(CENT),
        daily_avg_remaining=avg_remaining.quantize(CENT),
        projected_spending=projected.quantize(CENT),
        will_exceed=projected > effective_budget,
        days_left=left,
    )
