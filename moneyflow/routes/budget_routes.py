from dataclasses import asdict
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from moneyflow.database import get_db
from moneyflow.dependencies import get_current_user
from moneyflow.models.user import User
from moneyflow.services.budget_service import BudgetService
from moneyflow.schemas.budget_schemas import (
    BudgetCreate,
    BudgetUpdate,
    BudgetResponse,
    BudgetListResponse,
    BudgetHealthResponse,
    BudgetComparisonResponse,
    BudgetStatsResponse,
    SpendingBreakdownItem,
    TransactionImpactRequest,
    TransactionImpactResponse,
)

router = APIRouter()


@router.post("/", response_model=BudgetResponse, status_code=status.HTTP_201_CREATED)
def create_budget(data: BudgetCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Create a budget; its current period and spend are computed immediately"""
    service = BudgetService(db)
    return service.create_budget(data, user)


@router.get("/", response_model=BudgetListResponse)
def list_budgets(
    active_only: bool = Query(False, description="Only active budgets"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = BudgetService(db)
    budgets = service.get_user_budgets(user, active_only=active_only)
    return BudgetListResponse(budgets=budgets, total=len(budgets))


@router.get("/stats", response_model=BudgetStatsResponse)
def budget_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Totals over the user's active budgets"""
    service = BudgetService(db)
    return service.get_user_budget_stats(user)


@router.get("/{budget_id}", response_model=BudgetResponse)
def get_budget(budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = BudgetService(db)
    return service.get_budget(budget_id, user)


@router.patch("/{budget_id}", response_model=BudgetResponse)
def update_budget(
    budget_id: int,
    data: BudgetUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = BudgetService(db)
    return service.update_budget(budget_id, data, user)


@router.post("/{budget_id}/toggle", response_model=BudgetResponse)
def toggle_budget(budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Pause or resume a budget"""
    service = BudgetService(db)
    return service.toggle_budget(budget_id, user)


@router.post("/{budget_id}/refresh", response_model=BudgetResponse)
def refresh_budget(budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Roll the period over if it ended, then recompute the cached spend"""
    service = BudgetService(db)
    budget = service.get_budget(budget_id, user)
    service.rollover_period(budget)
    service.update_current_period_spending(budget)
    service.check_alert(budget)
    return budget


@router.get("/{budget_id}/health", response_model=BudgetHealthResponse)
def budget_health(budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = BudgetService(db)
    report = service.calculate_budget_health(service.get_budget(budget_id, user))
    return BudgetHealthResponse(**asdict(report))


@router.get("/{budget_id}/comparison", response_model=BudgetComparisonResponse)
def budget_comparison(
    budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Current period spend against the previous period"""
    service = BudgetService(db)
    return service.get_budget_comparison(service.get_budget(budget_id, user))


@router.get("/{budget_id}/breakdown", response_model=list[SpendingBreakdownItem])
def budget_breakdown(
    budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = BudgetService(db)
    return service.get_spending_breakdown(service.get_budget(budget_id, user))


@router.post("/{budget_id}/impact", response_model=TransactionImpactResponse)
def transaction_impact(
    budget_id: int,
    data: TransactionImpactRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Preview the effect of an extra expense; nothing is stored"""
    service = BudgetService(db)
    return service.check_transaction_impact(service.get_budget(budget_id, user), data.amount)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(budget_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = BudgetService(db)
    service.delete_budget(budget_id, user)
    return None
