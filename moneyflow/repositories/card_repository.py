from sqlalchemy import update
from sqlalchemy.orm import Session
from moneyflow.models.card import Card


class CardRepository:
    """Repository for Card operations, always scoped to the owning user"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> list[Card]:
        return (
            self.db.query(Card)
            .filter(Card.user_id == user_id)
            .order_by(Card.is_default.desc(), Card.id)
            .all()
        )

    def get_by_id_and_user(self, card_id: int, user_id: int) -> Card | None:
        """Returns None if card doesn't exist or belongs to another user."""
        return self.db.query(Card).filter(Card.id == card_id, Card.user_id == user_id).first()

    def create(self, card: Card) -> Card:
        self.db.add(card)
        self.db.commit()
        self.db.refresh(card)
        return card

    def update(self, card: Card) -> Card:
        self.db.commit()
        self.db.refresh(card)
        return card

    def clear_default(self, user_id: int) -> None:
        """Unset is_default on every card of the user (no commit)"""
        self.db.execute(
            update(Card)
            .where(Card.user_id == user_id)
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    def delete(self, card: Card) -> None:
        self.db.delete(card)
        self.db.commit()
