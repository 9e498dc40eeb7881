from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from moneyflow.models.transaction import Transaction, TransactionType


class TransactionRepository:
    """Repository for Transaction data access"""

    def __init__(self, db: Session):
        self.db = db

    def create_no_commit(self, transaction: Transaction) -> Transaction:
        """Add transaction and flush to assign its ID (caller commits)"""
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def delete_no_commit(self, transaction: Transaction) -> None:
        self.db.delete(transaction)
        self.db.flush()

    def get_by_id_and_user(self, transaction_id: int, user_id: int) -> Optional[Transaction]:
        """Get transaction ensuring it belongs to the user"""
        return (
            self.db.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .first()
        )

    def get_with_filters(
        self,
        user_id: int,
        type: Optional[TransactionType] = None,
        category_id: Optional[int] = None,
        merchant_id: Optional[int] = None,
        account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """
        Get transactions with filters for one user.

        Account and card filters match either side of the transaction.
        Search is a case-insensitive partial match on title or description.

        Returns:
            Tuple of (transactions list, total count)
        """
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)

        if type is not None:
            query = query.filter(Transaction.type == type)

        if category_id is not None:
            query = query.filter(Transaction.category_id == category_id)

        if merchant_id is not None:
            query = query.filter(Transaction.merchant_id == merchant_id)

        if account_id is not None:
            query = query.filter(
                or_(Transaction.from_account_id == account_id, Transaction.to_account_id == account_id)
            )

        if card_id is not None:
            query = query.filter(
                or_(Transaction.from_card_id == card_id, Transaction.to_card_id == card_id)
            )

        if start_date is not None:
            query = query.filter(Transaction.transaction_date >= start_date)

        if end_date is not None:
            query = query.filter(Transaction.transaction_date <= end_date)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Transaction.title.ilike(pattern), Transaction.description.ilike(pattern))
            )

        if min_amount is not None:
            query = query.filter(Transaction.amount >= min_amount)

        if max_amount is not None:
            query = query.filter(Transaction.amount <= max_amount)

        total = query.count()

        # Same-day entries keep their order of entry
        transactions = (
            query.order_by(
                Transaction.transaction_date.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc(),
            )
            .limit(limit)
            .offset(offset)
            .all()
        )

        return transactions, total

    def sum_expenses(
        self,
        user_id: int,
        start_date: date,
        end_date: date,
        category_id: Optional[int] = None,
    ) -> Decimal:
        """
        Total expense amount in an inclusive date range.

        A None category means every expense, uncategorized ones included.
        """
        query = self.db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.EXPENSE,
            Transaction.transaction_date >= start_date,
            Transaction.transaction_date <= end_date,
        )
        if category_id is not None:
            query = query.filter(Transaction.category_id == category_id)

        return Decimal(str(query.scalar())).quantize(Decimal("0.01"))

    def expenses_in_range(
        self,
        user_id: int,
        start_date: date,
        end_date: date,
        category_id: Optional[int] = None,
    ) -> list[Transaction]:
        query = self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.EXPENSE,
            Transaction.transaction_date >= start_date,
            Transaction.transaction_date <= end_date,
        )
        if category_id is not None:
            query = query.filter(Transaction.category_id == category_id)
        return query.all()

    def get_by_origin(self, origin_type: str, origin_id: int) -> list[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.transactionable_type == origin_type,
                Transaction.transactionable_id == origin_id,
            )
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .all()
        )
