import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import NotFoundException, RecurrenceError
from moneyflow.core.recurrence import first_occurrence, next_occurrence
from moneyflow.database import unit_of_work
from moneyflow.models.recurring_income import RecurringIncome
from moneyflow.models.transaction import Origin, OriginKind, Transaction, TransactionType
from moneyflow.models.user import User
from moneyflow.repositories.bank_account_repository import BankAccountRepository
from moneyflow.repositories.recurring_income_repository import RecurringIncomeRepository
from moneyflow.schemas.recurring_schemas import RecurringIncomeCreate
from moneyflow.services.ledger_service import TransactionLifecycle

logger = logging.getLogger(__name__)


class RecurringIncomeService:
    """Expected incomes: scheduling and receipt"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecurringIncomeRepository(db)
        self.account_repo = BankAccountRepository(db)
        self.lifecycle = TransactionLifecycle(db)

    def create_income(
        self, data: RecurringIncomeCreate, user: User, today: Optional[date] = None
    ) -> RecurringIncome:
        """
        Raises:
            NotFoundException: If the receiving account doesn't belong to the user
        """
        today = today or date.today()
        if data.to_account_id and not self.account_repo.get_by_id_and_user(data.to_account_id, user.id):
            raise NotFoundException(f"Account {data.to_account_id} not found or access denied")

        income = RecurringIncome(
            user_id=user.id,
            name=data.name,
            source=data.source,
            amount=data.amount,
            currency=data.currency or settings.DEFAULT_CURRENCY,
            frequency=data.frequency,
            payment_day=data.payment_day,
            payment_month=data.payment_month,
            start_date=data.start_date,
            end_date=data.end_date,
            next_expected_date=first_occurrence(
                data.frequency, data.start_date, today, data.payment_day, data.payment_month
            ),
            to_account_id=data.to_account_id,
            category_id=data.category_id,
            auto_create_transaction=data.auto_create_transaction,
            is_active=True,
        )
        with unit_of_work(self.db):
            self.repo.add_no_commit(income)

        self.db.refresh(income)
        return income

    def get_user_incomes(self, user: User, active_only: bool = False) -> list[RecurringIncome]:
        return self.repo.get_by_user(user.id, active_only=active_only)

    def get_income(self, income_id: int, user: User) -> RecurringIncome:
        income = self.repo.get_by_id_and_user(income_id, user.id)
        if not income:
            raise NotFoundException("Recurring income not found")
        return income

    def toggle_income(self, income_id: int, user: User) -> RecurringIncome:
        income = self.get_income(income_id, user)
        with unit_of_work(self.db):
            income.is_active = not income.is_active
        self.db.refresh(income)
        return income

    def delete_income(self, income_id: int, user: User) -> None:
        self.repo.delete(self.get_income(income_id, user))

    def mark_received(
        self, income: RecurringIncome, on_date: Optional[date] = None
    ) -> Optional[Transaction]:
        """
        Record one receipt and advance the schedule in one unit of work.

        Without a receiving account the income is recorded with no balance
        effect.
        """
        on_date = on_date or date.today()
        transaction = None

        with unit_of_work(self.db):
            if income.auto_create_transaction:
                to_account_id = income.to_account_id
                if to_account_id and not self.account_repo.get_by_id_and_user(to_account_id, income.user_id):
                    logger.warning("Income %s target account %s no longer exists", income.id, to_account_id)
                    to_account_id = None

                transaction = Transaction(
                    user_id=income.user_id,
                    type=TransactionType.INCOME,
                    amount=income.amount,
                    currency=income.currency,
                    title=f"Income: {income.name}",
                    description=f"From {income.source}" if income.source else None,
                    transaction_date=on_date,
                    to_account_id=to_account_id,
                    category_id=income.category_id,
                )
                transaction.origin = Origin(OriginKind.RECURRING_INCOME, income.id)
                self.lifecycle.create(transaction)

            scheduled = income.next_expected_date or on_date
            income.last_received_date = on_date
            income.next_expected_date = next_occurrence(
                income.frequency, scheduled, income.payment_day, income.payment_month
            )
            if income.end_date and income.next_expected_date > income.end_date:
                income.is_active = False
                logger.info("Recurring income %s reached its end date", income.id)

        logger.info("Recorded income %s received on %s", income.id, on_date)
        return transaction

    def process_expected_incomes(self, today: Optional[date] = None) -> int:
        """Record every automatic income that is expected by today."""
        today = today or date.today()
        count = 0
        for income in self.repo.get_expected(today):
            try:
                self.mark_received(income, today)
            except RecurrenceError:
                logger.exception("Could not record income %s", income.id)
                continue
            count += 1
        logger.info("Income sweep recorded %d incomes", count)
        return count
