"""Money-holder access: the only place balances are written."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from moneyflow.models.bank_account import BankAccount
from moneyflow.models.card import Card


class HolderKind(str, Enum):
    BANK_ACCOUNT = "bank_account"
    CARD = "card"


@dataclass(frozen=True)
class HolderRef:
    """A balance-bearing row: a bank account, or a credit card holding debt"""

    kind: HolderKind
    id: int


class MoneyHolderRepository:
    """
    Uniform access to balance-bearing rows.

    Balances are changed with a single atomic UPDATE (``balance = balance + :delta``)
    so concurrent postings against the same holder can never lose an update.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_card(self, card_id: int) -> Card | None:
        return self.db.get(Card, card_id)

    def adjust(self, holder: HolderRef, delta: Decimal) -> bool:
        """
        Add ``delta`` to the holder's balance.

        Returns False when no such row exists. Nothing is committed here.
        """
        if holder.kind == HolderKind.BANK_ACCOUNT:
            model = BankAccount
            stmt = update(BankAccount).where(BankAccount.id == holder.id).values(
                balance=BankAccount.balance + delta
            )
        else:
            model = Card
            stmt = update(Card).where(Card.id == holder.id).values(
                current_balance=Card.current_balance + delta
            )

        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            return False

        # Loaded instances would otherwise keep serving the pre-update balance
        instance = self.db.identity_map.get(identity_key(model, holder.id))
        if instance is not None:
            self.db.expire(instance)
        return True
