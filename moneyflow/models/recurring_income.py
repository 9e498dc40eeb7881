from datetime import date
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, ForeignKey, Date, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.models.base import Base, TimestampMixin


class RecurringIncome(Base, TimestampMixin):
    """Expected income (salary, rent received, ...) paid into a bank account"""

    __tablename__ = "recurring_incomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CHF")

    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payment_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_expected_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    last_received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    to_account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True
    )
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_create_transaction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
