from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator
from moneyflow.models.invoice import InvoiceStatus
from moneyflow.models.subscription import PaymentMethodType
from moneyflow.schemas.common import Money


class SubscriptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    billing_cycle: Literal["daily", "weekly", "monthly", "quarterly", "yearly"]
    billing_day: Optional[int] = Field(None, ge=0, le=31)
    billing_month: Optional[int] = Field(None, ge=1, le=12)
    start_date: date
    end_date: Optional[date] = None
    payment_method_type: Optional[PaymentMethodType] = None
    payment_method_id: Optional[int] = Field(None, gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    merchant_id: Optional[int] = Field(None, gt=0)
    auto_create_transaction: bool = True

    @model_validator(mode="after")
    def check_payment_method(self):
        if (self.payment_method_type is None) != (self.payment_method_id is None):
            raise ValueError("payment_method_type and payment_method_id go together")
        return self


class SubscriptionResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    amount: Money
    currency: str
    billing_cycle: str
    billing_day: Optional[int]
    billing_month: Optional[int]
    start_date: date
    end_date: Optional[date]
    next_billing_date: Optional[date]
    last_billed_date: Optional[date]
    payment_method_type: Optional[PaymentMethodType]
    payment_method_id: Optional[int]
    category_id: Optional[int]
    merchant_id: Optional[int]
    auto_create_transaction: bool
    is_active: bool
    created_at: datetime


class SubscriptionListResponse(BaseModel):
    subscriptions: list[SubscriptionResponse]
    total: int


class RecurringIncomeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    source: Optional[str] = Field(None, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    frequency: Literal["weekly", "bi_weekly", "monthly", "quarterly", "yearly"]
    payment_day: Optional[int] = Field(None, ge=0, le=31)
    payment_month: Optional[int] = Field(None, ge=1, le=12)
    start_date: date
    end_date: Optional[date] = None
    to_account_id: Optional[int] = Field(None, gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    auto_create_transaction: bool = True


class RecurringIncomeResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    source: Optional[str]
    amount: Money
    currency: str
    frequency: str
    payment_day: Optional[int]
    payment_month: Optional[int]
    start_date: date
    end_date: Optional[date]
    next_expected_date: Optional[date]
    last_received_date: Optional[date]
    to_account_id: Optional[int]
    category_id: Optional[int]
    auto_create_transaction: bool
    is_active: bool
    created_at: datetime


class RecurringIncomeListResponse(BaseModel):
    incomes: list[RecurringIncomeResponse]
    total: int


class InvoiceCreate(BaseModel):
    invoice_number: Optional[str] = Field(None, max_length=100)
    creditor_name: Optional[str] = Field(None, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    is_recurring: bool = False
    frequency: Optional[Literal["monthly", "quarterly", "yearly"]] = None
    billing_day: Optional[int] = Field(None, ge=1, le=31)
    category_id: Optional[int] = Field(None, gt=0)
    merchant_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.is_recurring and self.frequency is None:
            raise ValueError("Recurring invoices need a frequency")
        return self


class InvoicePaymentRequest(BaseModel):
    """Settle an invoice; giving a source also books the expense"""

    paid_date: Optional[date] = None
    from_account_id: Optional[int] = Field(None, gt=0)
    from_card_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_single_source(self):
        if self.from_account_id and self.from_card_id:
            raise ValueError("Pay from an account or a card, not both")
        return self


class InvoiceResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    invoice_number: Optional[str]
    creditor_name: Optional[str]
    amount: Money
    currency: str
    status: InvoiceStatus
    issue_date: Optional[date]
    due_date: Optional[date]
    paid_date: Optional[date]
    is_recurring: bool
    frequency: Optional[str]
    billing_day: Optional[int]
    next_due_date: Optional[date]
    times_paid: int
    category_id: Optional[int]
    merchant_id: Optional[int]
    notes: Optional[str]
    created_at: datetime


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    total: int


class RecurringChargeRequest(BaseModel):
    """Date to book a subscription charge or income receipt on (defaults to today)"""

    on_date: Optional[date] = None
