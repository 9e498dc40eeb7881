from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, ForeignKey, Date, Text, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.models.base import Base, TimestampMixin, enum_values


class TransactionType(str, PyEnum):
    """Money-movement kinds understood by the posting engine"""

    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"
    CARD_PAYMENT = "card_payment"


class OriginKind(str, PyEnum):
    """Recurring entities that can generate transactions"""

    INVOICE = "invoice"
    SUBSCRIPTION = "subscription"
    RECURRING_INCOME = "recurring_income"


@dataclass(frozen=True)
class Origin:
    """Traceability link to the entity that generated a transaction. Carries no behavior."""

    kind: OriginKind
    id: int


class Transaction(Base, TimestampMixin):
    """
    One money-movement event.

    Amount is always positive; the type decides which endpoint columns are
    meaningful. Rows never record whether their balance effects were applied,
    the lifecycle coordinator applies and reverses them exactly once.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False, values_callable=enum_values), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CHF")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Endpoints (which ones are active depends on type)
    from_account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True
    )
    to_account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True
    )
    from_card_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True
    )
    to_card_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True
    )
    # Account a debit card leg settled against at posting. No FK: the id must
    # outlive the account so reversal can report it missing.
    card_account_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Classification (category/merchant CRUD lives outside this service)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    merchant_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Origin link
    transactionable_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transactionable_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
        Index("ix_transactions_user_type", "user_id", "type"),
        Index("ix_transactions_user_category", "user_id", "category_id"),
        Index("ix_transactions_origin", "transactionable_type", "transactionable_id"),
    )

    @property
    def origin(self) -> Origin | None:
        if self.transactionable_type is None or self.transactionable_id is None:
            return None
        return Origin(kind=OriginKind(self.transactionable_type), id=self.transactionable_id)

    @origin.setter
    def origin(self, value: Origin | None) -> None:
        self.transactionable_type = value.kind.value if value else None
        self.transactionable_id = value.id if value else None

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.type.value}, amount={self.amount})>"
