from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, ForeignKey, Enum, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from moneyflow.models.base import Base, TimestampMixin, enum_values

if TYPE_CHECKING:
    from moneyflow.models.user import User
    from moneyflow.models.bank_account import BankAccount


class CardType(str, PyEnum):
    """Card type enumeration"""

    DEBIT = "debit"
    CREDIT = "credit"


class Card(Base, TimestampMixin):
    """
    Debit or credit card.

    A debit card is not a balance holder of its own: postings against it are
    redirected to its linked bank account. A credit card holds debt, so a
    higher current_balance means more is owed.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bank_account_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("bank_accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    type: Mapped[CardType] = mapped_column(
        Enum(CardType, native_enum=False, values_callable=enum_values), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    card_network: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_four_digits: Mapped[str | None] = mapped_column(String(4), nullable=True)
    credit_limit: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00")
    )
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="cards")
    bank_account: Mapped["BankAccount | None"] = relationship(
        "BankAccount", back_populates="cards"
    )

    @property
    def is_credit(self) -> bool:
        return self.type == CardType.CREDIT

    @property
    def available_credit(self) -> Decimal | None:
        """Remaining credit line; None for debit cards or cards without a limit"""
        if not self.is_credit or self.credit_limit is None:
            return None
        return self.credit_limit - self.current_balance

    def __repr__(self) -> str:
        return f"<Card(id={self.id}, type={self.type.value}, current_balance={self.current_balance})>"
