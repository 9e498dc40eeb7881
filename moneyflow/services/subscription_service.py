import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import NotFoundException, RecurrenceError
from moneyflow.core.recurrence import first_occurrence, next_occurrence
from moneyflow.database import unit_of_work
from moneyflow.models.subscription import PaymentMethodType, Subscription
from moneyflow.models.transaction import Origin, OriginKind, Transaction, TransactionType
from moneyflow.models.user import User
from moneyflow.repositories.bank_account_repository import BankAccountRepository
from moneyflow.repositories.card_repository import CardRepository
from moneyflow.repositories.subscription_repository import SubscriptionRepository
from moneyflow.schemas.recurring_schemas import SubscriptionCreate
from moneyflow.services.ledger_service import TransactionLifecycle

logger = logging.getLogger(__name__)


class PaymentSourceResolver:
    """Maps a (kind, id) payment method to transaction endpoint columns for one user"""

    def __init__(self, db: Session):
        self.account_repo = BankAccountRepository(db)
        self.card_repo = CardRepository(db)

    def exists(self, user_id: int, kind: Optional[PaymentMethodType], holder_id: Optional[int]) -> bool:
        if kind == PaymentMethodType.BANK_ACCOUNT:
            return self.account_repo.get_by_id_and_user(holder_id, user_id) is not None
        if kind == PaymentMethodType.CARD:
            return self.card_repo.get_by_id_and_user(holder_id, user_id) is not None
        return False

    def endpoints(
        self, user_id: int, kind: Optional[PaymentMethodType], holder_id: Optional[int]
    ) -> dict[str, Optional[int]]:
        """
        from_account_id/from_card_id for an expense paid with this method.

        A method that no longer exists yields no endpoint: the expense is still
        recorded but moves no balance.
        """
        if kind is None or holder_id is None:
            return {"from_account_id": None, "from_card_id": None}
        if not self.exists(user_id, kind, holder_id):
            logger.warning("Payment method %s %s no longer exists", kind.value, holder_id)
            return {"from_account_id": None, "from_card_id": None}
        if kind == PaymentMethodType.BANK_ACCOUNT:
            return {"from_account_id": holder_id, "from_card_id": None}
        return {"from_account_id": None, "from_card_id": holder_id}


class SubscriptionService:
    """Recurring expenses: scheduling and billing"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository(db)
        self.sources = PaymentSourceResolver(db)
        self.lifecycle = TransactionLifecycle(db)

    def create_subscription(
        self, data: SubscriptionCreate, user: User, today: Optional[date] = None
    ) -> Subscription:
        """
        Raises:
            NotFoundException: If the payment method doesn't belong to the user
            RecurrenceError: If billing day/month don't fit the cycle
        """
        today = today or date.today()
        if data.payment_method_type and not self.sources.exists(
            user.id, data.payment_method_type, data.payment_method_id
        ):
            raise NotFoundException(
                f"Payment method {data.payment_method_type.value} {data.payment_method_id} not found"
            )

        subscription = Subscription(
            user_id=user.id,
            name=data.name,
            amount=data.amount,
            currency=data.currency or settings.DEFAULT_CURRENCY,
            billing_cycle=data.billing_cycle,
            billing_day=data.billing_day,
            billing_month=data.billing_month,
            start_date=data.start_date,
            end_date=data.end_date,
            next_billing_date=first_occurrence(
                data.billing_cycle, data.start_date, today, data.billing_day, data.billing_month
            ),
            payment_method_type=data.payment_method_type,
            payment_method_id=data.payment_method_id,
            category_id=data.category_id,
            merchant_id=data.merchant_id,
            auto_create_transaction=data.auto_create_transaction,
            is_active=True,
        )
        with unit_of_work(self.db):
            self.repo.add_no_commit(subscription)

        self.db.refresh(subscription)
        return subscription

    def get_user_subscriptions(self, user: User, active_only: bool = False) -> list[Subscription]:
        return self.repo.get_by_user(user.id, active_only=active_only)

    def get_subscription(self, subscription_id: int, user: User) -> Subscription:
        subscription = self.repo.get_by_id_and_user(subscription_id, user.id)
        if not subscription:
            raise NotFoundException("Subscription not found")
        return subscription

    def toggle_subscription(self, subscription_id: int, user: User) -> Subscription:
        subscription = self.get_subscription(subscription_id, user)
        with unit_of_work(self.db):
            subscription.is_active = not subscription.is_active
        self.db.refresh(subscription)
        return subscription

    def delete_subscription(self, subscription_id: int, user: User) -> None:
        """Generated transactions are kept; only the schedule goes away."""
        self.repo.delete(self.get_subscription(subscription_id, user))

    def process_payment(
        self, subscription: Subscription, on_date: Optional[date] = None
    ) -> Optional[Transaction]:
        """
        Bill one cycle.

        Books the expense (when auto_create_transaction is set) and advances
        the schedule in one unit of work. The next billing date is counted
        from the scheduled date, so a late run does not shift the cycle.
        The subscription is deactivated once the next date passes end_date.
        """
        on_date = on_date or date.today()
        transaction = None

        with unit_of_work(self.db):
            if subscription.auto_create_transaction:
                transaction = Transaction(
                    user_id=subscription.user_id,
                    type=TransactionType.EXPENSE,
                    amount=subscription.amount,
                    currency=subscription.currency,
                    title=f"Subscription: {subscription.name}",
                    transaction_date=on_date,
                    category_id=subscription.category_id,
                    merchant_id=subscription.merchant_id,
                    **self.sources.endpoints(
                        subscription.user_id,
                        subscription.payment_method_type,
                        subscription.payment_method_id,
                    ),
                )
                transaction.origin = Origin(OriginKind.SUBSCRIPTION, subscription.id)
                self.lifecycle.create(transaction)

            scheduled = subscription.next_billing_date or on_date
            subscription.last_billed_date = on_date
            subscription.next_billing_date = next_occurrence(
                subscription.billing_cycle,
                scheduled,
                subscription.billing_day,
                subscription.billing_month,
            )
            if subscription.end_date and subscription.next_billing_date > subscription.end_date:
                subscription.is_active = False
                logger.info("Subscription %s reached its end date", subscription.id)

        logger.info("Billed subscription %s for %s", subscription.id, on_date)
        return transaction

    def process_due_subscriptions(self, today: Optional[date] = None) -> int:
        """Bill every automatic subscription that is due. Returns how many were billed."""
        today = today or date.today()
        count = 0
        for subscription in self.repo.get_due(today):
            try:
                self.process_payment(subscription, today)
            except RecurrenceError:
                logger.exception("Could not bill subscription %s", subscription.id)
                continue
            count += 1
        logger.info("Subscription sweep billed %d subscriptions", count)
        return count
