from datetime import date
from sqlalchemy.orm import Session
from moneyflow.models.recurring_income import RecurringIncome


class RecurringIncomeRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int, active_only: bool = False) -> list[RecurringIncome]:
        query = self.db.query(RecurringIncome).filter(RecurringIncome.user_id == user_id)
        if active_only:
            query = query.filter(RecurringIncome.is_active.is_(True))
        return query.order_by(RecurringIncome.next_expected_date, RecurringIncome.id).all()

    def get_by_id_and_user(self, income_id: int, user_id: int) -> RecurringIncome | None:
        return (
            self.db.query(RecurringIncome)
            .filter(RecurringIncome.id == income_id, RecurringIncome.user_id == user_id)
            .first()
        )

    def get_expected(self, today: date) -> list[RecurringIncome]:
        """Active automatic incomes whose expected date has come"""
        return (
            self.db.query(RecurringIncome)
            .filter(
                RecurringIncome.is_active.is_(True),
                RecurringIncome.auto_create_transaction.is_(True),
                RecurringIncome.next_expected_date <= today,
            )
            .order_by(RecurringIncome.next_expected_date, RecurringIncome.id)
            .all()
        )

    def add_no_commit(self, income: RecurringIncome) -> RecurringIncome:
        self.db.add(income)
        self.db.flush()
        return income

    def delete(self, income: RecurringIncome) -> None:
        self.db.delete(income)
        self.db.commit()
