from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, ForeignKey, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from moneyflow.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from moneyflow.models.user import User
    from moneyflow.models.card import Card


class BankAccount(Base, TimestampMixin):
    """
    Cash-holding account owned by a user.

    Balance is signed (overdraft is representable) and only changes through
    the posting/reversal engine or the opening balance given at creation.
    """

    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CHF")
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="bank_accounts")
    cards: Mapped[list["Card"]] = relationship("Card", back_populates="bank_account")

    def __repr__(self) -> str:
        return f"<BankAccount(id={self.id}, name='{self.name}', balance={self.balance})>"
