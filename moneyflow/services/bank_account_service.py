import logging
from decimal import Decimal
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import NotFoundException
from moneyflow.database import unit_of_work
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.user import User
from moneyflow.repositories.bank_account_repository import BankAccountRepository
from moneyflow.schemas.bank_account_schemas import BankAccountCreate, BankAccountUpdate

logger = logging.getLogger(__name__)


class BankAccountService:
    """Service for bank account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BankAccountRepository(db)

    def create_account(self, data: BankAccountCreate, user: User) -> BankAccount:
        """
        Create new account for user.

        The opening balance is written directly; it is the only balance change
        that does not go through a transaction. The user's first account
        becomes the default.
        """
        make_default = data.is_default or not self.repo.get_by_user(user.id)

        with unit_of_work(self.db):
            if make_default:
                self.repo.clear_default(user.id)
            account = BankAccount(
                user_id=user.id,
                name=data.name,
                balance=data.initial_balance or Decimal("0.00"),
                currency=data.currency or settings.DEFAULT_CURRENCY,
                bank_name=data.bank_name,
                is_default=make_default,
            )
            self.db.add(account)

        self.db.refresh(account)
        logger.info("Created bank account %s for user %s", account.id, user.id)
        return account

    def get_user_accounts(self, user: User) -> list[BankAccount]:
        """Get all accounts for user"""
        return self.repo.get_by_user(user.id)

    def get_account(self, account_id: int, user: User) -> BankAccount:
        """
        Get specific account ensuring user ownership.

        Raises:
            NotFoundException: If account not found or belongs to another user
        """
        account = self.repo.get_by_id_and_user(account_id, user.id)
        if not account:
            raise NotFoundException("Account not found")
        return account

    def update_account(self, account_id: int, data: BankAccountUpdate, user: User) -> BankAccount:
        """Update account details"""
        account = self.get_account(account_id, user)

        if data.name is not None:
            account.name = data.name
        if data.currency is not None:
            account.currency = data.currency
        if data.bank_name is not None:
            account.bank_name = data.bank_name

        return self.repo.update(account)

    def set_default(self, account_id: int, user: User) -> BankAccount:
        account = self.get_account(account_id, user)
        with unit_of_work(self.db):
            self.repo.clear_default(user.id)
            account.is_default = True
        self.db.refresh(account)
        return account

    def delete_account(self, account_id: int, user: User) -> None:
        """
        Delete account.

        Transactions referencing it are kept; reversing them later skips the
        missing account. Debit cards linked to it lose their link.
        """
        account = self.get_account(account_id, user)
        self.repo.delete(account)
        logger.info("Deleted bank account %s for user %s", account_id, user.id)
