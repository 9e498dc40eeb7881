from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from moneyflow.core.periods import BudgetHealth
from moneyflow.models.budget import BudgetPeriod
from moneyflow.schemas.common import Money


class BudgetCreate(BaseModel):
    """Schema for creating a budget"""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: Optional[int] = Field(None, gt=0, description="Omit to budget all expenses")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    period: BudgetPeriod
    start_date: date
    end_date: Optional[date] = None
    rollover_unused: bool = False
    alert_threshold: Optional[int] = Field(None, ge=1, le=100)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BudgetUpdate(BaseModel):
    """Schema for updating a budget (only provided fields change)"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: Optional[int] = Field(None, gt=0)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rollover_unused: Optional[bool] = None
    alert_threshold: Optional[int] = Field(None, ge=1, le=100)


class BudgetResponse(BaseModel):
    """Schema for budget response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    name: str
    description: Optional[str]
    category_id: Optional[int]
    amount: Money
    currency: str
    period: BudgetPeriod
    start_date: date
    end_date: Optional[date]
    current_period_start: Optional[date]
    current_period_end: Optional[date]
    current_period_spent: Money
    rollover_unused: bool
    rollover_amount: Money
    effective_amount: Money
    remaining_amount: Money
    alert_threshold: int
    alert_sent: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class BudgetListResponse(BaseModel):
    budgets: list[BudgetResponse]
    total: int


class BudgetHealthResponse(BaseModel):
    status: BudgetHealth
    color: str
    percentage: Money
    spent: Money
    remaining: Money
    effective_budget: Money
    daily_avg_spent: Money
    daily_avg_remaining: Money
    projected_spending: Money
    will_exceed: bool
    days_left: int


class BudgetComparisonResponse(BaseModel):
    has_previous: bool
    previous_period_start: Optional[date] = None
    previous_period_end: Optional[date] = None
    previous_spending: Money = Decimal("0")
    current_spending: Money
    difference: Money = Decimal("0")
    percentage_change: Money = Decimal("0")
    trend: Optional[str] = None


class SpendingBreakdownItem(BaseModel):
    """Spend grouped by category (overall budgets) or merchant (category budgets)"""

    id: Optional[int]
    amount: Money
    count: int


class BudgetStatsResponse(BaseModel):
    active_count: int
    total_budgeted: Money
    total_spent: Money
    total_remaining: Money
    over_budget_count: int
    warning_count: int
    overall_percentage: Money


class TransactionImpactRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class TransactionImpactResponse(BaseModel):
    current_spent: Money
    transaction_amount: Money
    projected_spent: Money
    projected_remaining: Money
    projected_percentage: Money
    effective_budget: Money
    currently_over_budget: bool
    will_be_over_budget: bool
    exceeds_by: Money
