import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import (
    InsufficientFundsException,
    NotFoundException,
    ValidationException,
)
from moneyflow.database import unit_of_work
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.transaction import Origin, Transaction, TransactionType
from moneyflow.models.user import User
from moneyflow.repositories.bank_account_repository import BankAccountRepository
from moneyflow.repositories.card_repository import CardRepository
from moneyflow.repositories.transaction_repository import TransactionRepository
from moneyflow.schemas.card_schemas import CardPaymentRequest
from moneyflow.schemas.transaction_schemas import (
    TransactionCreate,
    TransactionUpdate,
    TransferRequest,
    endpoint_error,
)
from moneyflow.services.ledger_service import TransactionLifecycle

logger = logging.getLogger(__name__)

_ENDPOINT_FIELDS = ("from_account_id", "to_account_id", "from_card_id", "to_card_id")


class TransactionService:
    """
    Service layer for transactions.

    Checks ownership and balance preconditions, then hands the transaction to
    the lifecycle coordinator which keeps balances in step.
    """

    def __init__(self, db: Session):
        self.db = db
        self.transaction_repo = TransactionRepository(db)
        self.account_repo = BankAccountRepository(db)
        self.card_repo = CardRepository(db)
        self.lifecycle = TransactionLifecycle(db)

    def _verify_endpoints(
        self,
        user: User,
        from_account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        from_card_id: Optional[int] = None,
        to_card_id: Optional[int] = None,
    ) -> None:
        """
        Raises:
            NotFoundException: If a referenced account/card doesn't exist or belongs to another user
        """
        for account_id in (from_account_id, to_account_id):
            if account_id and not self.account_repo.get_by_id_and_user(account_id, user.id):
                raise NotFoundException(f"Account {account_id} not found or access denied")
        for card_id in (from_card_id, to_card_id):
            if card_id and not self.card_repo.get_by_id_and_user(card_id, user.id):
                raise NotFoundException(f"Card {card_id} not found or access denied")

    def create_transaction(
        self, transaction_data: TransactionCreate, user: User, origin: Optional[Origin] = None
    ) -> Transaction:
        """
        Create a transaction and post its balance effects atomically.

        Args:
            transaction_data: Transaction creation data
            user: Current user (for ownership verification)
            origin: Recurring entity that generated the transaction, if any

        Returns:
            Created transaction

        Raises:
            NotFoundException: If a referenced account or card doesn't exist
        """
        self._verify_endpoints(
            user,
            transaction_data.from_account_id,
            transaction_data.to_account_id,
            transaction_data.from_card_id,
            transaction_data.to_card_id,
        )

        transaction = Transaction(
            user_id=user.id,
            type=transaction_data.type,
            amount=transaction_data.amount,
            currency=transaction_data.currency or settings.DEFAULT_CURRENCY,
            title=transaction_data.title,
            description=transaction_data.description,
            transaction_date=transaction_data.transaction_date,
            from_account_id=transaction_data.from_account_id,
            to_account_id=transaction_data.to_account_id,
            from_card_id=transaction_data.from_card_id,
            to_card_id=transaction_data.to_card_id,
            category_id=transaction_data.category_id,
            merchant_id=transaction_data.merchant_id,
        )
        transaction.origin = origin

        return self.lifecycle.create(transaction)

    def get_transaction(self, transaction_id: int, user: User) -> Transaction:
        """
        Raises:
            NotFoundException: If transaction doesn't exist or doesn't belong to user
        """
        transaction = self.transaction_repo.get_by_id_and_user(transaction_id, user.id)
        if not transaction:
            raise NotFoundException(f"Transaction {transaction_id} not found")
        return transaction

    def get_transactions(
        self,
        user: User,
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
        Get transactions with filters.

        Returns:
            Tuple of (transactions, total_count)
        """
        if account_id is not None and not self.account_repo.get_by_id_and_user(account_id, user.id):
            raise NotFoundException(f"Account {account_id} not found or access denied")
        if card_id is not None and not self.card_repo.get_by_id_and_user(card_id, user.id):
            raise NotFoundException(f"Card {card_id} not found or access denied")

        return self.transaction_repo.get_with_filters(
            user_id=user.id,
            type=type,
            category_id=category_id,
            merchant_id=merchant_id,
            account_id=account_id,
            card_id=card_id,
            start_date=start_date,
            end_date=end_date,
            search=search,
            min_amount=min_amount,
            max_amount=max_amount,
            limit=limit,
            offset=offset,
        )

    def update_transaction(
        self, transaction_id: int, transaction_data: TransactionUpdate, user: User
    ) -> Transaction:
        """
        Update a transaction, moving its balance effects to the new state.

        The old effects are reversed against the old endpoints and amount, then
        the edited transaction is posted, so a change of account credits the
        original account back.

        Raises:
            NotFoundException: If the transaction or a new endpoint doesn't exist
            ValidationException: If the resulting endpoints don't fit the type
        """
        transaction = self.get_transaction(transaction_id, user)
        changes = transaction_data.model_dump(exclude_unset=True)

        for field in ("type", "amount", "title", "transaction_date", "currency"):
            if field in changes and changes[field] is None:
                raise ValidationException(f"{field} cannot be cleared")

        merged = {field: changes.get(field, getattr(transaction, field)) for field in _ENDPOINT_FIELDS}
        error = endpoint_error(changes.get("type", transaction.type), **merged)
        if error:
            raise ValidationException(error)

        self._verify_endpoints(user, **{f: changes.get(f) for f in _ENDPOINT_FIELDS})

        return self.lifecycle.update(transaction, changes)

    def delete_transaction(self, transaction_id: int, user: User) -> None:
        """
        Delete a transaction and reverse its balance effects.

        Raises:
            NotFoundException: If transaction doesn't exist or doesn't belong to user
        """
        transaction = self.get_transaction(transaction_id, user)
        skipped = self.lifecycle.delete(transaction)
        if skipped:
            logger.warning(
                "Transaction %s deleted without reversing %d missing holder(s)",
                transaction_id,
                len(skipped),
            )

    def _lock_source_account(self, account_id: int, amount: Decimal, user: User) -> BankAccount:
        """
        Row-lock the paying account and check it covers the amount.

        Raises:
            NotFoundException: If the account doesn't exist or belongs to another user
            InsufficientFundsException: If the balance is below the amount
        """
        account = self.account_repo.get_for_update(account_id, user.id)
        if not account:
            raise NotFoundException(f"Account {account_id} not found or access denied")
        if account.balance < amount:
            raise InsufficientFundsException(account.id, account.balance, amount)
        return account

    def transfer(self, data: TransferRequest, user: User) -> Transaction:
        """
        Move money between two of the user's accounts.

        Raises:
            NotFoundException: If either account doesn't belong to the user
            InsufficientFundsException: If the source balance is below the amount
        """
        with unit_of_work(self.db):
            to_account = self.account_repo.get_by_id_and_user(data.to_account_id, user.id)
            if not to_account:
                raise NotFoundException(f"Account {data.to_account_id} not found or access denied")
            from_account = self._lock_source_account(data.from_account_id, data.amount, user)

            transaction = Transaction(
                user_id=user.id,
                type=TransactionType.TRANSFER,
                amount=data.amount,
                currency=from_account.currency,
                title=data.title or f"Transfer: {from_account.name} → {to_account.name}",
                description=data.description,
                transaction_date=data.transaction_date or date.today(),
                from_account_id=from_account.id,
                to_account_id=to_account.id,
            )
            self.lifecycle.create(transaction)

        return transaction

    def pay_card(self, card_id: int, data: CardPaymentRequest, user: User) -> Transaction:
        """
        Pay down a credit card's debt from a bank account.

        Raises:
            NotFoundException: If the card or account doesn't belong to the user
            ValidationException: If the card is not a credit card
            InsufficientFundsException: If the account balance is below the amount
        """
        card = self.card_repo.get_by_id_and_user(card_id, user.id)
        if not card:
            raise NotFoundException(f"Card {card_id} not found or access denied")
        if not card.is_credit:
            raise ValidationException("Only credit cards can have their balance paid")

        with unit_of_work(self.db):
            from_account = self._lock_source_account(data.from_account_id, data.amount, user)

            label = card.name
            if card.last_four_digits:
                label = f"{label} ****{card.last_four_digits}"
            transaction = Transaction(
                user_id=user.id,
                type=TransactionType.CARD_PAYMENT,
                amount=data.amount,
                currency=from_account.currency,
                title=f"Credit Card Payment - {label}",
                description=data.description,
                transaction_date=data.transaction_date or date.today(),
                from_account_id=from_account.id,
                to_card_id=card.id,
            )
            self.lifecycle.create(transaction)

        return transaction
