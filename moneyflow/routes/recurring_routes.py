from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from moneyflow.database import get_db
from moneyflow.dependencies import get_current_user
from moneyflow.models.invoice import InvoiceStatus
from moneyflow.models.user import User
from moneyflow.services.invoice_service import InvoiceService
from moneyflow.services.recurring_income_service import RecurringIncomeService
from moneyflow.services.subscription_service import SubscriptionService
from moneyflow.schemas.recurring_schemas import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoicePaymentRequest,
    InvoiceResponse,
    RecurringChargeRequest,
    RecurringIncomeCreate,
    RecurringIncomeListResponse,
    RecurringIncomeResponse,
    SubscriptionCreate,
    SubscriptionListResponse,
    SubscriptionResponse,
)

subscription_router = APIRouter()
income_router = APIRouter()
invoice_router = APIRouter()


# Subscriptions

@subscription_router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    data: SubscriptionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = SubscriptionService(db)
    return service.create_subscription(data, user)


@subscription_router.get("/", response_model=SubscriptionListResponse)
def list_subscriptions(
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = SubscriptionService(db)
    subscriptions = service.get_user_subscriptions(user, active_only=active_only)
    return SubscriptionListResponse(subscriptions=subscriptions, total=len(subscriptions))


@subscription_router.get("/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = SubscriptionService(db)
    return service.get_subscription(subscription_id, user)


@subscription_router.post("/{subscription_id}/toggle", response_model=SubscriptionResponse)
def toggle_subscription(
    subscription_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = SubscriptionService(db)
    return service.toggle_subscription(subscription_id, user)


@subscription_router.post("/{subscription_id}/pay", response_model=SubscriptionResponse)
def pay_subscription(
    subscription_id: int,
    data: Optional[RecurringChargeRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Bill one cycle now and advance the schedule"""
    service = SubscriptionService(db)
    subscription = service.get_subscription(subscription_id, user)
    service.process_payment(subscription, data.on_date if data else None)
    return subscription


@subscription_router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subscription(
    subscription_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = SubscriptionService(db)
    service.delete_subscription(subscription_id, user)
    return None


# Recurring incomes

@income_router.post("/", response_model=RecurringIncomeResponse, status_code=status.HTTP_201_CREATED)
def create_income(
    data: RecurringIncomeCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    service = RecurringIncomeService(db)
    return service.create_income(data, user)


@income_router.get("/", response_model=RecurringIncomeListResponse)
def list_incomes(
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = RecurringIncomeService(db)
    incomes = service.get_user_incomes(user, active_only=active_only)
    return RecurringIncomeListResponse(incomes=incomes, total=len(incomes))


@income_router.get("/{income_id}", response_model=RecurringIncomeResponse)
def get_income(income_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = RecurringIncomeService(db)
    return service.get_income(income_id, user)


@income_router.post("/{income_id}/toggle", response_model=RecurringIncomeResponse)
def toggle_income(income_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = RecurringIncomeService(db)
    return service.toggle_income(income_id, user)


@income_router.post("/{income_id}/receive", response_model=RecurringIncomeResponse)
def receive_income(
    income_id: int,
    data: Optional[RecurringChargeRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record a receipt now and advance the schedule"""
    service = RecurringIncomeService(db)
    income = service.get_income(income_id, user)
    service.mark_received(income, data.on_date if data else None)
    return income


@income_router.delete("/{income_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_income(income_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = RecurringIncomeService(db)
    service.delete_income(income_id, user)
    return None


# Invoices

@invoice_router.post("/", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(data: InvoiceCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = InvoiceService(db)
    return service.create_invoice(data, user)


@invoice_router.get("/", response_model=InvoiceListResponse)
def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = InvoiceService(db)
    invoices = service.get_user_invoices(user, status=status_filter)
    return InvoiceListResponse(invoices=invoices, total=len(invoices))


@invoice_router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = InvoiceService(db)
    return service.get_invoice(invoice_id, user)


@invoice_router.post("/{invoice_id}/pay", response_model=InvoiceResponse)
def pay_invoice(
    invoice_id: int,
    data: Optional[InvoicePaymentRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Mark the invoice paid.

    - With from_account_id or from_card_id an expense is booked against it
    """
    service = InvoiceService(db)
    invoice = service.get_invoice(invoice_id, user)
    service.mark_as_paid(invoice, data)
    return invoice


@invoice_router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
def cancel_invoice(invoice_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = InvoiceService(db)
    return service.cancel(service.get_invoice(invoice_id, user))
