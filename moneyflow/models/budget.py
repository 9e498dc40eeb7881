from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, ForeignKey, Date, Text, Enum, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.models.base import Base, TimestampMixin, enum_values


class BudgetPeriod(str, PyEnum):
    """Budget recurrence"""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Budget(Base, TimestampMixin):
    """
    Spending limit over a recurring window.

    current_period_spent is a cached projection of the ledger and can always
    be recomputed from transactions. A null category_id covers every expense.
    """

    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CHF")

    # Period configuration
    period: Mapped[BudgetPeriod] = mapped_column(
        Enum(BudgetPeriod, native_enum=False, values_callable=enum_values), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Period cursor
    current_period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    current_period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    current_period_spent: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00")
    )

    # Rollover
    rollover_unused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rollover_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0.00")
    )

    # Alerts
    alert_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    alert_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_budgets_user_active", "user_id", "is_active"),
        Index("ix_budgets_period_end_active", "current_period_end", "is_active"),
    )

    @property
    def effective_amount(self) -> Decimal:
        """Base amount plus whatever rolled over from the previous period"""
        return self.amount + (self.rollover_amount or Decimal("0"))

    @property
    def remaining_amount(self) -> Decimal:
        return self.effective_amount - self.current_period_spent

    def __repr__(self) -> str:
        return f"<Budget(id={self.id}, name='{self.name}', period={self.period.value})>"
