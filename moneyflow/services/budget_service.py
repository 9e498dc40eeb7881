"""
Budget period tracking.

The period cursor (current_period_start/end) and current_period_spent are
cached projections of the ledger. Spend is always recomputed from expense
transactions, and rollover is the only transition that moves the cursor
forward.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import NotFoundException, PeriodComputationError, ValidationException
from moneyflow.core.periods import (
    CENT,
    HUNDRED,
    BudgetHealth,
    HealthReport,
    PeriodWindow,
    classify_health,
    health_report,
    period_window,
    previous_window,
    spent_percentage,
)
from moneyflow.database import unit_of_work
from moneyflow.models.budget import Budget
from moneyflow.models.user import User
from moneyflow.repositories.budget_repository import BudgetRepository
from moneyflow.repositories.transaction_repository import TransactionRepository
from moneyflow.schemas.budget_schemas import BudgetCreate, BudgetUpdate

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Columns that must keep a value once set
_REQUIRED_FIELDS = ("name", "amount", "period", "start_date", "rollover_unused", "alert_threshold")


class BudgetService:
    """Service for budget business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BudgetRepository(db)
        self.transaction_repo = TransactionRepository(db)

    # ------------------------------------------------------------------
    # Windows and spend
    # ------------------------------------------------------------------

    @staticmethod
    def current_window(budget: Budget) -> Optional[PeriodWindow]:
        """The stored period cursor, or None if it was never established."""
        if budget.current_period_start is None or budget.current_period_end is None:
            return None
        return PeriodWindow(budget.current_period_start, budget.current_period_end)

    def _window_for(self, budget: Budget, today: date) -> PeriodWindow:
        return self.current_window(budget) or period_window(budget.period, budget.start_date, today)

    def calculate_spending(self, budget: Budget, window: Optional[PeriodWindow] = None) -> Decimal:
        """
        Sum of the owner's expenses inside the window (current cursor by default).

        Read-only. A budget without a category counts every expense.
        """
        window = window or self.current_window(budget)
        if window is None:
            return ZERO
        return self.transaction_repo.sum_expenses(
            budget.user_id, window.start, window.end, budget.category_id
        )

    def _reset_window(self, budget: Budget, today: date) -> None:
        """Point the cursor at the window containing today and recompute spend."""
        window = period_window(budget.period, budget.start_date, today)
        budget.current_period_start = window.start
        budget.current_period_end = window.end
        budget.current_period_spent = self.calculate_spending(budget, window)
        budget.alert_sent = False

    def update_current_period_spending(self, budget: Budget) -> Budget:
        """Recompute the cached spend for the current window and persist it."""
        with unit_of_work(self.db):
            budget.current_period_spent = self.calculate_spending(budget)
        return budget

    # ------------------------------------------------------------------
    # Rollover
    # ------------------------------------------------------------------

    @staticmethod
    def needs_rollover(budget: Budget, today: date) -> bool:
        if not budget.is_active:
            return False
        return budget.current_period_end is None or budget.current_period_end < today

    def rollover_period(self, budget: Budget, today: Optional[date] = None) -> Budget:
        """
        Move the cursor to the window containing today.

        With rollover_unused the carried amount is what was left of the base
        amount in the window that just ended; it does not compound. A budget
        past its end_date is deactivated instead. No-op while the current
        window is still open.
        """
        today = today or date.today()
        if not self.needs_rollover(budget, today):
            return budget

        with unit_of_work(self.db):
            if budget.end_date is not None and budget.end_date < today:
                budget.is_active = False
                logger.info("Budget %s ended on %s, deactivated", budget.id, budget.end_date)
                return budget

            ended = self.current_window(budget)
            if budget.rollover_unused and ended is not None:
                spent = self.calculate_spending(budget, ended)
                budget.rollover_amount = max(ZERO, budget.amount - spent).quantize(CENT)
            else:
                budget.rollover_amount = ZERO

            self._reset_window(budget, today)

        logger.info(
            "Budget %s rolled over to %s..%s (carried %s)",
            budget.id,
            budget.current_period_start,
            budget.current_period_end,
            budget.rollover_amount,
        )
        return budget

    def check_and_process_rollovers(self, today: Optional[date] = None) -> tuple[int, int]:
        """
        Sweep every active budget whose window has ended.

        Returns:
            Tuple of (rolled_over, deactivated)
        """
        today = today or date.today()
        rolled_over = deactivated = 0

        for budget in self.repo.get_due_for_rollover(today):
            try:
                self.rollover_period(budget, today)
            except PeriodComputationError:
                logger.exception("Could not roll over budget %s", budget.id)
                continue
            if budget.is_active:
                rolled_over += 1
            else:
                deactivated += 1

        logger.info("Budget rollover sweep: %d rolled over, %d deactivated", rolled_over, deactivated)
        return rolled_over, deactivated

    def refresh_all_spending(self, today: Optional[date] = None) -> int:
        """Recompute cached spend for every active budget and raise pending alerts."""
        today = today or date.today()
        budgets = self.repo.get_all_active()
        for budget in budgets:
            self.update_current_period_spending(budget)
            self.check_alert(budget, today)
        logger.info("Refreshed spending for %d budgets", len(budgets))
        return len(budgets)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def should_alert(self, budget: Budget, today: Optional[date] = None) -> bool:
        """True when spend crossed the alert threshold and no alert went out this period."""
        if budget.alert_sent or not budget.is_active:
            return False
        spent = self.calculate_spending(budget, self._window_for(budget, today or date.today()))
        return spent_percentage(spent, budget.effective_amount) >= budget.alert_threshold

    def check_alert(self, budget: Budget, today: Optional[date] = None) -> bool:
        """Flag the alert as sent when it is due. Returns whether it fired."""
        if not self.should_alert(budget, today):
            return False
        with unit_of_work(self.db):
            budget.alert_sent = True
        logger.info("Budget %s reached its %d%% alert threshold", budget.id, budget.alert_threshold)
        return True

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_budget(self, data: BudgetCreate, user: User, today: Optional[date] = None) -> Budget:
        """Create a budget with its first window and spend already computed"""
        today = today or date.today()
        budget = Budget(
            user_id=user.id,
            name=data.name,
            description=data.description,
            category_id=data.category_id,
            amount=data.amount,
            currency=data.currency or settings.DEFAULT_CURRENCY,
            period=data.period,
            start_date=data.start_date,
            end_date=data.end_date,
            rollover_unused=data.rollover_unused,
            rollover_amount=ZERO,
            alert_threshold=data.alert_threshold or settings.DEFAULT_ALERT_THRESHOLD,
            is_active=True,
        )

        with unit_of_work(self.db):
            self._reset_window(budget, today)
            self.repo.add_no_commit(budget)

        self.db.refresh(budget)
        logger.info("Created %s budget %s for user %s", budget.period.value, budget.id, user.id)
        return budget

    def get_user_budgets(self, user: User, active_only: bool = False) -> list[Budget]:
        return self.repo.get_by_user(user.id, active_only=active_only)

    def get_budget(self, budget_id: int, user: User) -> Budget:
        """
        Raises:
            NotFoundException: If budget not found or belongs to another user
        """
        budget = self.repo.get_by_id_and_user(budget_id, user.id)
        if not budget:
            raise NotFoundException("Budget not found")
        return budget

    def update_budget(
        self, budget_id: int, data: BudgetUpdate, user: User, today: Optional[date] = None
    ) -> Budget:
        """
        Update only the fields provided.

        Changing period or start_date re-anchors the cursor (and resets the
        alert); changing the category recomputes spend.
        """
        today = today or date.today()
        budget = self.get_budget(budget_id, user)
        changes = data.model_dump(exclude_unset=True)

        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationException(f"{field} cannot be cleared")

        start = changes.get("start_date", budget.start_date)
        end = changes.get("end_date", budget.end_date)
        if end is not None and end < start:
            raise ValidationException("end_date must not be before start_date")

        with unit_of_work(self.db):
            for field, value in changes.items():
                setattr(budget, field, value)

            if "period" in changes or "start_date" in changes:
                self._reset_window(budget, today)
            elif "category_id" in changes:
                budget.current_period_spent = self.calculate_spending(budget)

        self.db.refresh(budget)
        return budget

    def toggle_budget(self, budget_id: int, user: User, today: Optional[date] = None) -> Budget:
        """Pause or resume. Resuming starts clean in the window containing today."""
        budget = self.get_budget(budget_id, user)
        with unit_of_work(self.db):
            budget.is_active = not budget.is_active
            if budget.is_active:
                budget.rollover_amount = ZERO
                self._reset_window(budget, today or date.today())
        self.db.refresh(budget)
        return budget

    def delete_budget(self, budget_id: int, user: User) -> None:
        budget = self.get_budget(budget_id, user)
        self.repo.delete(budget)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def calculate_budget_health(self, budget: Budget, today: Optional[date] = None) -> HealthReport:
        today = today or date.today()
        window = self._window_for(budget, today)
        spent = self.calculate_spending(budget, window)
        return health_report(spent, budget.effective_amount, budget.alert_threshold, window, today)

    def get_budget_comparison(self, budget: Budget, today: Optional[date] = None) -> dict[str, Any]:
        """Current window spend against the window before it."""
        window = self._window_for(budget, today or date.today())
        current = self.calculate_spending(budget, window)

        previous = previous_window(budget.period, budget.start_date, window)
        if previous is None:
            return {"has_previous": False, "current_spending": current}

        previous_spent = self.calculate_spending(budget, previous)
        difference = current - previous_spent
        change = Decimal("0")
        if previous_spent > 0:
            change = (difference * HUNDRED / previous_spent).quantize(Decimal("0.1"))

        if difference > 0:
            trend = "up"
        elif difference < 0:
            trend = "down"
        else:
            trend = "stable"

        return {
            "has_previous": True,
            "previous_period_start": previous.start,
            "previous_period_end": previous.end,
            "previous_spending": previous_spent,
            "current_spending": current,
            "difference": difference,
            "percentage_change": change,
            "trend": trend,
        }

    def get_spending_breakdown(self, budget: Budget, today: Optional[date] = None) -> list[dict[str, Any]]:
        """
        Current window spend grouped by category, or by merchant when the
        budget already targets one category. Largest first.
        """
        window = self._window_for(budget, today or date.today())
        expenses = self.transaction_repo.expenses_in_range(
            budget.user_id, window.start, window.end, budget.category_id
        )

        totals: dict[Optional[int], Decimal] = defaultdict(lambda: ZERO)
        counts: dict[Optional[int], int] = defaultdict(int)
        for expense in expenses:
            key = expense.merchant_id if budget.category_id else expense.category_id
            totals[key] += expense.amount
            counts[key] += 1

        items = [{"id": key, "amount": totals[key], "count": counts[key]} for key in totals]
        return sorted(items, key=lambda item: item["amount"], reverse=True)

    def get_user_budget_stats(self, user: User, today: Optional[date] = None) -> dict[str, Any]:
        """Totals and status counts over the user's active budgets (cached spend)."""
        today = today or date.today()
        budgets = self.repo.get_by_user(user.id, active_only=True)

        total_budgeted = total_spent = ZERO
        over_budget = warning = 0
        for budget in budgets:
            effective = budget.effective_amount
            total_budgeted += effective
            total_spent += budget.current_period_spent
            status = classify_health(
                budget.current_period_spent,
                effective,
                budget.alert_threshold,
                self.current_window(budget),
                today,
            )
            if status == BudgetHealth.EXCEEDED:
                over_budget += 1
            elif status in (BudgetHealth.WARNING, BudgetHealth.DANGER):
                warning += 1

        return {
            "active_count": len(budgets),
            "total_budgeted": total_budgeted,
            "total_spent": total_spent,
            "total_remaining": total_budgeted - total_spent,
            "over_budget_count": over_budget,
            "warning_count": warning,
            "overall_percentage": spent_percentage(total_spent, total_budgeted).quantize(Decimal("0.1")),
        }

    def check_transaction_impact(
        self, budget: Budget, amount: Decimal, today: Optional[date] = None
    ) -> dict[str, Any]:
        """Preview what an extra expense would do to the current window. Nothing is written."""
        window = self._window_for(budget, today or date.today())
        current = self.calculate_spending(budget, window)
        effective = budget.effective_amount
        projected = current + amount

        return {
            "current_spent": current,
            "transaction_amount": amount,
            "projected_spent": projected,
            "projected_remaining": effective - projected,
            "projected_percentage": spent_percentage(projected, effective).quantize(Decimal("0.1")),
            "effective_budget": effective,
            "currently_over_budget": current > effective,
            "will_be_over_budget": projected > effective,
            "exceeds_by": max(ZERO, projected - effective),
        }
