from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, ForeignKey, Date, Enum, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.models.base import Base, TimestampMixin, enum_values


class PaymentMethodType(str, PyEnum):
    """Holder a recurring payment is drawn from"""

    BANK_ACCOUNT = "bank_account"
    CARD = "card"


class Subscription(Base, TimestampMixin):
    """Recurring expense billed on a fixed cycle"""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CHF")

    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False)
    billing_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    billing_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_billing_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    last_billed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    payment_method_type: Mapped[PaymentMethodType | None] = mapped_column(
        Enum(PaymentMethodType, native_enum=False, values_callable=enum_values), nullable=True
    )
    payment_method_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    merchant_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_create_transaction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
