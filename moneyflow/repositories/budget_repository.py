from datetime import date
from sqlalchemy import or_
from sqlalchemy.orm import Session
from moneyflow.models.budget import Budget


class BudgetRepository:
    """Repository for Budget data access"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int, active_only: bool = False) -> list[Budget]:
        query = self.db.query(Budget).filter(Budget.user_id == user_id)
        if active_only:
            query = query.filter(Budget.is_active.is_(True))
        return query.order_by(Budget.name, Budget.id).all()

    def get_by_id_and_user(self, budget_id: int, user_id: int) -> Budget | None:
        """Returns None if budget doesn't exist or belongs to another user."""
        return (
            self.db.query(Budget)
            .filter(Budget.id == budget_id, Budget.user_id == user_id)
            .first()
        )

    def get_due_for_rollover(self, today: date) -> list[Budget]:
        """Active budgets whose current window ended before today (or was never set)"""
        return (
            self.db.query(Budget)
            .filter(
                Budget.is_active.is_(True),
                or_(Budget.current_period_end.is_(None), Budget.current_period_end < today),
            )
            .order_by(Budget.id)
            .all()
        )

    def get_all_active(self) -> list[Budget]:
        return self.db.query(Budget).filter(Budget.is_active.is_(True)).order_by(Budget.id).all()

    def add_no_commit(self, budget: Budget) -> Budget:
        self.db.add(budget)
        self.db.flush()
        return budget

    def delete(self, budget: Budget) -> None:
        self.db.delete(budget)
        self.db.commit()
