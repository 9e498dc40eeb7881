from sqlalchemy import select, update
from sqlalchemy.orm import Session
from moneyflow.models.bank_account import BankAccount


class BankAccountRepository:
    """Repository for BankAccount operations, always scoped to the owning user"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> list[BankAccount]:
        """Get all accounts for a user, default account first"""
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.user_id == user_id)
            .order_by(BankAccount.is_default.desc(), BankAccount.id)
            .all()
        )

    def get_by_id_and_user(self, account_id: int, user_id: int) -> BankAccount | None:
        """
        Get account ensuring it belongs to user.

        Returns None if account doesn't exist or belongs to another user.
        """
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.id == account_id, BankAccount.user_id == user_id)
            .first()
        )

    def get_for_update(self, account_id: int, user_id: int) -> BankAccount | None:
        """
        Load and row-lock an account (SELECT ... FOR UPDATE).

        Used for balance precondition checks so the balance read cannot change
        before the posting in the same unit of work. SQLite ignores the lock
        and serializes writers itself.
        """
        stmt = (
            select(BankAccount)
            .where(BankAccount.id == account_id, BankAccount.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, account: BankAccount) -> BankAccount:
        """Create new account"""
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        return account

    def update(self, account: BankAccount) -> BankAccount:
        """Update existing account"""
        self.db.commit()
        self.db.refresh(account)
        return account

    def clear_default(self, user_id: int) -> None:
        """Unset is_default on every account of the user (no commit)"""
        self.db.execute(
            update(BankAccount)
            .where(BankAccount.user_id == user_id)
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    def delete(self, account: BankAccount) -> None:
        """Delete account. Transactions keep their (now dangling) reference."""
        self.db.delete(account)
        self.db.commit()
