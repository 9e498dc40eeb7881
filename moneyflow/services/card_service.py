import logging
from decimal import Decimal
from sqlalchemy.orm import Session

from moneyflow.core.exceptions import NotFoundException, ValidationException
from moneyflow.database import unit_of_work
from moneyflow.models.card import Card
from moneyflow.models.user import User
from moneyflow.repositories.bank_account_repository import BankAccountRepository
from moneyflow.repositories.card_repository import CardRepository
from moneyflow.schemas.card_schemas import CardCreate, CardUpdate

logger = logging.getLogger(__name__)


class CardService:
    """Service for card business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CardRepository(db)
        self.account_repo = BankAccountRepository(db)

    def _check_account(self, account_id: int | None, user: User) -> None:
        if account_id is not None and not self.account_repo.get_by_id_and_user(account_id, user.id):
            raise NotFoundException(f"Account {account_id} not found or access denied")

    def create_card(self, data: CardCreate, user: User) -> Card:
        """
        Create a card, optionally linked to one of the user's accounts.

        Raises:
            NotFoundException: If the linked account doesn't belong to the user
        """
        self._check_account(data.bank_account_id, user)
        make_default = data.is_default or not self.repo.get_by_user(user.id)

        with unit_of_work(self.db):
            if make_default:
                self.repo.clear_default(user.id)
            card = Card(
                user_id=user.id,
                name=data.name,
                type=data.type,
                bank_account_id=data.bank_account_id,
                credit_limit=data.credit_limit,
                current_balance=data.current_balance or Decimal("0.00"),
                card_network=data.card_network,
                last_four_digits=data.last_four_digits,
                is_default=make_default,
            )
            self.db.add(card)

        self.db.refresh(card)
        logger.info("Created %s card %s for user %s", card.type.value, card.id, user.id)
        return card

    def get_user_cards(self, user: User) -> list[Card]:
        return self.repo.get_by_user(user.id)

    def get_card(self, card_id: int, user: User) -> Card:
        """
        Raises:
            NotFoundException: If card not found or belongs to another user
        """
        card = self.repo.get_by_id_and_user(card_id, user.id)
        if not card:
            raise NotFoundException("Card not found")
        return card

    def update_card(self, card_id: int, data: CardUpdate, user: User) -> Card:
        card = self.get_card(card_id, user)

        if data.credit_limit is not None and not card.is_credit:
            raise ValidationException("Debit cards cannot have a credit limit")
        if data.bank_account_id is not None:
            self._check_account(data.bank_account_id, user)
            card.bank_account_id = data.bank_account_id
        if data.name is not None:
            card.name = data.name
        if data.credit_limit is not None:
            card.credit_limit = data.credit_limit
        if data.card_network is not None:
            card.card_network = data.card_network
        if data.last_four_digits is not None:
            card.last_four_digits = data.last_four_digits

        return self.repo.update(card)

    def set_default(self, card_id: int, user: User) -> Card:
        card = self.get_card(card_id, user)
        with unit_of_work(self.db):
            self.repo.clear_default(user.id)
            card.is_default = True
        self.db.refresh(card)
        return card

    def delete_card(self, card_id: int, user: User) -> None:
        card = self.get_card(card_id, user)
        self.repo.delete(card)
        logger.info("Deleted card %s for user %s", card_id, user.id)
