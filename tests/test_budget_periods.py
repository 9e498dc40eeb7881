import pytest
from datetime import date
from decimal import Decimal

from moneyflow.core.exceptions import PeriodComputationError
from moneyflow.core.periods import (
    BudgetHealth,
    PeriodWindow,
    classify_health,
    health_report,
    period_window,
    previous_window,
)
from moneyflow.models.budget import BudgetPeriod


class TestPeriodWindow:
    def test_monthly_window_runs_to_day_before_next_anchor(self):
        window = period_window(BudgetPeriod.MONTHLY, date(2025, 1, 15), date(2025, 3, 20))

        assert window == PeriodWindow(date(2025, 3, 15), date(2025, 4, 14))

    def test_reference_on_boundaries(self):
        anchor = date(2025, 1, 15)

        assert period_window("monthly", anchor, date(2025, 3, 15)).start == date(2025, 3, 15)
        assert period_window("monthly", anchor, date(2025, 3, 14)).end == date(2025, 3, 14)

    def test_quarterly(self):
        window = period_window(BudgetPeriod.QUARTERLY, date(2025, 1, 1), date(2025, 5, 10))

        assert window == PeriodWindow(date(2025, 4, 1), date(2025, 6, 30))

    def test_yearly_from_leap_day(self):
        window = period_window(BudgetPeriod.YEARLY, date(2024, 2, 29), date(2025, 3, 1))

        assert window == PeriodWindow(date(2025, 2, 28), date(2026, 2, 27))

    def test_month_end_anchor_does_not_drift(self):
        anchor = date(2025, 1, 31)

        february = period_window("monthly", anchor, date(2025, 3, 1))
        april = period_window("monthly", anchor, date(2025, 4, 15))

        assert february == PeriodWindow(date(2025, 2, 28), date(2025, 3, 30))
        assert april == PeriodWindow(date(2025, 3, 31), date(2025, 4, 29))

    def test_future_anchor_gives_first_window(self):
        window = period_window("monthly", date(2025, 6, 1), date(2025, 1, 1))

        assert window == PeriodWindow(date(2025, 6, 1), date(2025, 6, 30))

    @pytest.mark.parametrize(
        "reference",
        [date(2025, 1, 31), date(2025, 2, 28), date(2025, 12, 31), date(2028, 2, 29)],
    )
    def test_window_contains_reference(self, reference):
        for period in BudgetPeriod:
            window = period_window(period, date(2025, 1, 31), reference)
            assert window.contains(reference)

    def test_unknown_period(self):
        with pytest.raises(PeriodComputationError):
            period_window("weekly", date(2025, 1, 1), date(2025, 2, 1))

    def test_missing_anchor(self):
        with pytest.raises(PeriodComputationError):
            period_window("monthly", None, date(2025, 2, 1))

    def test_previous_window(self):
        anchor = date(2025, 1, 15)
        current = period_window("monthly", anchor, date(2025, 3, 20))

        assert previous_window("monthly", anchor, current) == PeriodWindow(
            date(2025, 2, 15), date(2025, 3, 14)
        )

    def test_first_window_has_no_previous(self):
        anchor = date(2025, 1, 15)
        current = period_window("monthly", anchor, date(2025, 1, 20))

        assert previous_window("monthly", anchor, current) is None


class TestHealthClassification:
    MARCH = PeriodWindow(date(2025, 3, 1), date(2025, 3, 31))

    def classify(self, spent: str, today: date, budget: str = "500.00", threshold: int = 80):
        return classify_health(Decimal(spent), Decimal(budget), threshold, self.MARCH, today)

    def test_exactly_threshold_is_warning(self):
        assert self.classify("400.00", date(2025, 3, 31)) == BudgetHealth.WARNING

    def test_exactly_threshold_is_warning_mid_period(self):
        # 400 after 19 of 30 days projects past 500, the threshold still wins
        assert self.classify("400.00", date(2025, 3, 20)) == BudgetHealth.WARNING

    def test_just_below_threshold_with_overshoot_is_danger(self):
        assert self.classify("399.99", date(2025, 3, 20)) == BudgetHealth.DANGER

    def test_just_below_threshold_is_healthy(self):
        assert self.classify("399.99", date(2025, 3, 31)) == BudgetHealth.HEALTHY

    def test_exactly_full_is_exceeded(self):
        assert self.classify("500.00", date(2025, 3, 31)) == BudgetHealth.EXCEEDED

    def test_over_budget_is_exceeded_early_in_period(self):
        assert self.classify("650.00", date(2025, 3, 2)) == BudgetHealth.EXCEEDED

    def test_projection_overshoot_is_danger(self):
        # 300 after 10 of 30 days projects to 900
        assert self.classify("300.00", date(2025, 3, 11)) == BudgetHealth.DANGER

    def test_rollover_raises_effective_budget(self):
        assert self.classify("400.00", date(2025, 3, 31), budget="700.00") == BudgetHealth.HEALTHY


def test_health_report_at_period_end():
    window = PeriodWindow(date(2025, 3, 1), date(2025, 3, 31))

    report = health_report(Decimal("400.00"), Decimal("500.00"), 80, window, date(2025, 3, 31))

    assert report.status == BudgetHealth.WARNING
    assert report.color == "yellow"
    assert report.percentage == Decimal("80.0")
    assert report.remaining == Decimal("100.00")
    assert report.projected_spending == Decimal("400.00")
    assert report.will_exceed is False
    assert report.days_left == 0
    assert report.daily_avg_remaining == Decimal("0.00")


def test_health_report_mid_period():
    window = PeriodWindow(date(2025, 3, 1), date(2025, 3, 31))

    report = health_report(Decimal("150.00"), Decimal("600.00"), 80, window, date(2025, 3, 16))

    assert report.status == BudgetHealth.HEALTHY
    assert report.daily_avg_spent == Decimal("10.00")
    assert report.projected_spending == Decimal("300.00")
    assert report.days_left == 15
    assert report.daily_avg_remaining == Decimal("30.00")
