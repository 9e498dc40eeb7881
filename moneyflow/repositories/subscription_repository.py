from datetime import date
from sqlalchemy.orm import Session
from moneyflow.models.subscription import Subscription


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int, active_only: bool = False) -> list[Subscription]:
        query = self.db.query(Subscription).filter(Subscription.user_id == user_id)
        if active_only:
            query = query.filter(Subscription.is_active.is_(True))
        return query.order_by(Subscription.next_billing_date, Subscription.id).all()

    def get_by_id_and_user(self, subscription_id: int, user_id: int) -> Subscription | None:
        return (
            self.db.query(Subscription)
            .filter(Subscription.id == subscription_id, Subscription.user_id == user_id)
            .first()
        )

    def get_due(self, today: date) -> list[Subscription]:
        """Active subscriptions billed automatically whose billing date has come"""
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.is_active.is_(True),
                Subscription.auto_create_transaction.is_(True),
                Subscription.next_billing_date <= today,
            )
            .order_by(Subscription.next_billing_date, Subscription.id)
            .all()
        )

    def add_no_commit(self, subscription: Subscription) -> Subscription:
        self.db.add(subscription)
        self.db.flush()
        return subscription

    def delete(self, subscription: Subscription) -> None:
        self.db.delete(subscription)
        self.db.commit()
