"""
Ledger consistency engine.

Posting applies the balance effects of a transaction, reversal applies their
exact inverse, and the lifecycle coordinator wraps create/update/delete so
that the transaction row and every balance change commit together.

Effect table (Δ = amount; a credit card balance is debt, so "debt +Δ" means
more is owed):

    type          from_account  from_card           to_account  to_card
    expense       account -Δ    credit: debt +Δ     -           -
                                debit: linked -Δ
    income        -             -                   account +Δ  credit: debt -Δ
                                                                debit: linked +Δ
    transfer      account -Δ    -                   account +Δ  -
    card_payment  account -Δ    -                   -           credit: debt -Δ

Endpoints not listed for a type are ignored even when populated.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from moneyflow.core.exceptions import PostingError
from moneyflow.database import unit_of_work
from moneyflow.models.transaction import Transaction, TransactionType
from moneyflow.repositories.holder_repository import HolderKind, HolderRef, MoneyHolderRepository
from moneyflow.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Structural copy of the balance-relevant fields of a transaction"""

    id: int | None
    type: TransactionType
    amount: Decimal
    from_account_id: int | None = None
    to_account_id: int | None = None
    from_card_id: int | None = None
    to_card_id: int | None = None
    card_account_id: int | None = None

    @classmethod
    def of(cls, transaction: Transaction) -> "LedgerSnapshot":
        return cls(
            id=transaction.id,
            type=TransactionType(transaction.type),
            amount=Decimal(str(transaction.amount)),
            from_account_id=transaction.from_account_id,
            to_account_id=transaction.to_account_id,
            from_card_id=transaction.from_card_id,
            to_card_id=transaction.to_card_id,
            card_account_id=transaction.card_account_id,
        )


@dataclass(frozen=True)
class _Leg:
    """
    One endpoint touched by a transaction, expressed as cash direction.

    For a card leg the cash direction is converted per card kind: a debit card
    moves cash on its linked account, a credit card moves debt the other way.
    settled_account_id is the account a debit card leg was posted against, if any.
    """

    kind: HolderKind
    id: int
    cash_sign: int
    credit_only: bool = False
    settled_account_id: int | None = None


def transaction_legs(snapshot: LedgerSnapshot) -> list[_Leg]:
    """Endpoints the transaction type acts on, in table order."""
    legs: list[_Leg] = []

    if snapshot.type == TransactionType.EXPENSE:
        if snapshot.from_account_id:
            legs.append(_Leg(HolderKind.BANK_ACCOUNT, snapshot.from_account_id, -1))
        if snapshot.from_card_id:
            legs.append(
                _Leg(HolderKind.CARD, snapshot.from_card_id, -1, settled_account_id=snapshot.card_account_id)
            )

    elif snapshot.type == TransactionType.INCOME:
        if snapshot.to_account_id:
            legs.append(_Leg(HolderKind.BANK_ACCOUNT, snapshot.to_account_id, +1))
        if snapshot.to_card_id:
            legs.append(
                _Leg(HolderKind.CARD, snapshot.to_card_id, +1, settled_account_id=snapshot.card_account_id)
            )

    elif snapshot.type == TransactionType.TRANSFER:
        if snapshot.from_account_id:
            legs.append(_Leg(HolderKind.BANK_ACCOUNT, snapshot.from_account_id, -1))
        if snapshot.to_account_id:
            legs.append(_Leg(HolderKind.BANK_ACCOUNT, snapshot.to_account_id, +1))

    elif snapshot.type == TransactionType.CARD_PAYMENT:
        if snapshot.from_account_id:
            legs.append(_Leg(HolderKind.BANK_ACCOUNT, snapshot.from_account_id, -1))
        if snapshot.to_card_id:
            legs.append(_Leg(HolderKind.CARD, snapshot.to_card_id, +1, credit_only=True))

    return legs


class _MissingHolder(Exception):
    def __init__(self, holder: HolderRef):
        super().__init__(holder)
        self.holder = holder


class _BalanceApplier:
    """Shared leg resolution for posting and reversal"""

    def __init__(self, holders: MoneyHolderRepository):
        self.holders = holders

    def _resolve(self, leg: _Leg, amount: Decimal) -> tuple[HolderRef, Decimal] | None:
        """
        Map a leg to the row whose balance changes and the signed delta,
        following the card's current link.

        Returns None when the leg legitimately has no effect. Raises _MissingHolder
        when the referenced card is gone.
        """
        cash_delta = amount * leg.cash_sign

        if leg.kind == HolderKind.BANK_ACCOUNT:
            return HolderRef(HolderKind.BANK_ACCOUNT, leg.id), cash_delta

        card = self.holders.get_card(leg.id)
        if card is None:
            raise _MissingHolder(HolderRef(HolderKind.CARD, leg.id))

        if card.is_credit:
            return HolderRef(HolderKind.CARD, card.id), -cash_delta

        if leg.credit_only:
            logger.debug("Ignoring debit card %s on credit-only leg", card.id)
            return None

        if card.bank_account_id is None:
            logger.debug("Debit card %s has no linked account, no balance effect", card.id)
            return None

        return HolderRef(HolderKind.BANK_ACCOUNT, card.bank_account_id), cash_delta


class PostingEngine(_BalanceApplier):
    """Applies the balance effects of a freshly created (or re-posted) transaction."""

    def post(self, snapshot: LedgerSnapshot) -> int | None:
        """
        Apply every delta the effect table assigns to this transaction.

        Returns the bank account a debit card leg settled against, which the
        caller stores so reversal can find it after the card is relinked.

        Raises:
            PostingError: a referenced account or card does not exist
        """
        settled_account_id = None

        for leg in transaction_legs(snapshot):
            try:
                resolved = self._resolve(leg, snapshot.amount)
            except _MissingHolder as e:
                missing = e.holder
                raise PostingError(missing.kind.value, missing.id, snapshot.id) from e
            if resolved is None:
                continue

            holder, delta = resolved
            if not self.holders.adjust(holder, delta):
                raise PostingError(holder.kind.value, holder.id, snapshot.id)
            if leg.kind == HolderKind.CARD and holder.kind == HolderKind.BANK_ACCOUNT:
                settled_account_id = holder.id
            logger.debug(
                "Posted transaction %s: %s %s %+f", snapshot.id, holder.kind.value, holder.id, delta
            )

        return settled_account_id


class ReversalEngine(_BalanceApplier):
    """Applies the exact inverse of what PostingEngine applied for a transaction."""

    def _resolve_posted(self, leg: _Leg, amount: Decimal) -> tuple[HolderRef, Decimal] | None:
        # A debit card leg goes back to the account it settled against, not the current link
        if leg.kind == HolderKind.CARD and leg.settled_account_id is not None:
            return HolderRef(HolderKind.BANK_ACCOUNT, leg.settled_account_id), amount * leg.cash_sign

        resolved = self._resolve(leg, amount)
        if resolved is None or leg.kind == HolderKind.BANK_ACCOUNT:
            return resolved
        if resolved[0].kind == HolderKind.BANK_ACCOUNT:
            # Debit card linked only after posting, nothing was applied
            return None
        return resolved

    def _skip(self, snapshot: LedgerSnapshot, holder: HolderRef, skipped: list[HolderRef]) -> None:
        skipped.append(holder)
        logger.warning(
            "Skipping reversal of transaction %s on missing %s %s",
            snapshot.id,
            holder.kind.value,
            holder.id,
            extra={"transaction_id": snapshot.id, "amount": str(snapshot.amount)},
        )

    def reverse(self, snapshot: LedgerSnapshot) -> list[HolderRef]:
        """
        Undo the transaction's balance effects against the same holder references.

        A holder that no longer exists is skipped with a warning so the
        transaction can still be deleted; its historical balance effect is then
        lost. Returns the holders that were skipped.
        """
        skipped: list[HolderRef] = []

        for leg in transaction_legs(snapshot):
            try:
                resolved = self._resolve_posted(leg, snapshot.amount)
            except _MissingHolder as e:
                self._skip(snapshot, e.holder, skipped)
                continue
            if resolved is None:
                continue

            holder, delta = resolved
            if not self.holders.adjust(holder, -delta):
                self._skip(snapshot, holder, skipped)
                continue
            logger.debug(
                "Reversed transaction %s: %s %s %+f", snapshot.id, holder.kind.value, holder.id, -delta
            )

        return skipped


# Fields the lifecycle coordinator lets callers change on update
UPDATABLE_FIELDS = frozenset(
    {
        "type",
        "amount",
        "currency",
        "title",
        "description",
        "transaction_date",
        "from_account_id",
        "to_account_id",
        "from_card_id",
        "to_card_id",
        "category_id",
        "merchant_id",
    }
)


class TransactionLifecycle:
    """
    Create / update / delete of transactions as atomic units.

    Each operation runs inside ``unit_of_work``: the row change and every
    balance change commit together or not at all. When called inside an
    enclosing unit of work (recurring billing) the enclosing block commits.
    """

    def __init__(self, db: Session):
        self.db = db
        self.transaction_repo = TransactionRepository(db)
        holders = MoneyHolderRepository(db)
        self.posting = PostingEngine(holders)
        self.reversal = ReversalEngine(holders)

    def create(self, transaction: Transaction) -> Transaction:
        with unit_of_work(self.db):
            self.transaction_repo.create_no_commit(transaction)
            transaction.card_account_id = self.posting.post(LedgerSnapshot.of(transaction))
        logger.info(
            "Created %s transaction %s for %s",
            transaction.type.value,
            transaction.id,
            transaction.amount,
        )
        return transaction

    def update(self, transaction: Transaction, changes: dict[str, Any]) -> Transaction:
        """
        Reverse the old state, apply ``changes``, post the new state.

        The snapshot is taken before any field is touched so the reversal uses
        the old endpoints and amount even when the update moves them.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        old = LedgerSnapshot.of(transaction)
        with unit_of_work(self.db):
            self.reversal.reverse(old)
            for field, value in changes.items():
                setattr(transaction, field, value)
            self.db.flush()
            transaction.card_account_id = self.posting.post(LedgerSnapshot.of(transaction))
        logger.info("Updated transaction %s", transaction.id)
        return transaction

    def delete(self, transaction: Transaction) -> list[HolderRef]:
        """Reverse and remove. Returns holders whose reversal had to be skipped."""
        snapshot = LedgerSnapshot.of(transaction)
        with unit_of_work(self.db):
            skipped = self.reversal.reverse(snapshot)
            self.transaction_repo.delete_no_commit(transaction)
        logger.info("Deleted transaction %s", snapshot.id)
        return skipped


