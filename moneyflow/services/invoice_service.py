import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.exceptions import NotFoundException, ValidationException
from moneyflow.core.recurrence import next_occurrence
from moneyflow.database import unit_of_work
from moneyflow.models.invoice import Invoice, InvoiceStatus
from moneyflow.models.subscription import PaymentMethodType
from moneyflow.models.transaction import Origin, OriginKind, Transaction, TransactionType
from moneyflow.models.user import User
from moneyflow.repositories.invoice_repository import InvoiceRepository
from moneyflow.schemas.recurring_schemas import InvoiceCreate, InvoicePaymentRequest
from moneyflow.services.ledger_service import TransactionLifecycle
from moneyflow.services.subscription_service import PaymentSourceResolver

logger = logging.getLogger(__name__)

_PAYABLE = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)


class InvoiceService:
    """Bills: settlement, overdue tracking and recurring cycles"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository(db)
        self.sources = PaymentSourceResolver(db)
        self.lifecycle = TransactionLifecycle(db)

    @staticmethod
    def _next_due(invoice: Invoice, from_date: date) -> date:
        return next_occurrence(invoice.frequency, from_date, invoice.billing_day)

    def create_invoice(self, data: InvoiceCreate, user: User, today: Optional[date] = None) -> Invoice:
        invoice = Invoice(
            user_id=user.id,
            invoice_number=data.invoice_number,
            creditor_name=data.creditor_name,
            amount=data.amount,
            currency=data.currency or settings.DEFAULT_CURRENCY,
            status=InvoiceStatus.PENDING,
            issue_date=data.issue_date,
            due_date=data.due_date,
            is_recurring=data.is_recurring,
            frequency=data.frequency,
            billing_day=data.billing_day,
            times_paid=0,
            category_id=data.category_id,
            merchant_id=data.merchant_id,
            notes=data.notes,
        )
        if invoice.is_recurring:
            invoice.next_due_date = self._next_due(invoice, data.due_date or today or date.today())

        with unit_of_work(self.db):
            self.repo.add_no_commit(invoice)

        self.db.refresh(invoice)
        return invoice

    def get_user_invoices(self, user: User, status: Optional[InvoiceStatus] = None) -> list[Invoice]:
        return self.repo.get_by_user(user.id, status=status)

    def get_invoice(self, invoice_id: int, user: User) -> Invoice:
        invoice = self.repo.get_by_id_and_user(invoice_id, user.id)
        if not invoice:
            raise NotFoundException("Invoice not found")
        return invoice

    def mark_as_paid(
        self, invoice: Invoice, payment: Optional[InvoicePaymentRequest] = None
    ) -> Optional[Transaction]:
        """
        Settle the invoice; with a payment source also book the expense.

        Raises:
            ValidationException: If the invoice is already paid or cancelled
            NotFoundException: If the payment source doesn't belong to the user
        """
        if invoice.status not in _PAYABLE:
            raise ValidationException(f"Invoice {invoice.id} is {invoice.status.value}, cannot be paid")

        payment = payment or InvoicePaymentRequest()
        paid_date = payment.paid_date or date.today()

        if payment.from_account_id:
            kind, holder_id = PaymentMethodType.BANK_ACCOUNT, payment.from_account_id
        elif payment.from_card_id:
            kind, holder_id = PaymentMethodType.CARD, payment.from_card_id
        else:
            kind, holder_id = None, None
        if kind and not self.sources.exists(invoice.user_id, kind, holder_id):
            raise NotFoundException(f"Payment source {kind.value} {holder_id} not found")

        transaction = None
        with unit_of_work(self.db):
            invoice.status = InvoiceStatus.PAID
            invoice.paid_date = paid_date
            invoice.times_paid = (invoice.times_paid or 0) + 1
            if invoice.is_recurring:
                invoice.next_due_date = self._next_due(invoice, invoice.due_date or paid_date)

            if kind:
                transaction = Transaction(
                    user_id=invoice.user_id,
                    type=TransactionType.EXPENSE,
                    amount=invoice.amount,
                    currency=invoice.currency,
                    title=invoice.creditor_name or invoice.invoice_number or "Invoice Payment",
                    description=invoice.notes or f"Payment for invoice {invoice.invoice_number or invoice.id}",
                    transaction_date=paid_date,
                    category_id=invoice.category_id,
                    merchant_id=invoice.merchant_id,
                    **self.sources.endpoints(invoice.user_id, kind, holder_id),
                )
                transaction.origin = Origin(OriginKind.INVOICE, invoice.id)
                self.lifecycle.create(transaction)

        logger.info("Invoice %s paid on %s", invoice.id, paid_date)
        return transaction

    def cancel(self, invoice: Invoice) -> Invoice:
        if invoice.status == InvoiceStatus.PAID:
            raise ValidationException(f"Invoice {invoice.id} is already paid")
        with unit_of_work(self.db):
            invoice.status = InvoiceStatus.CANCELLED
        return invoice

    def mark_overdue_invoices(self, today: Optional[date] = None) -> int:
        """Flag pending invoices whose due date has passed. Returns how many changed."""
        invoices = self.repo.get_pending_past_due(today or date.today())
        with unit_of_work(self.db):
            for invoice in invoices:
                invoice.status = InvoiceStatus.OVERDUE
        logger.info("Marked %d invoices overdue", len(invoices))
        return len(invoices)

    def advance_recurring_invoices(self, today: Optional[date] = None) -> int:
        """Reopen paid recurring invoices for their next cycle once the due date passed."""
        invoices = self.repo.get_paid_recurring_due(today or date.today())
        with unit_of_work(self.db):
            for invoice in invoices:
                invoice.status = InvoiceStatus.PENDING
                invoice.due_date = invoice.next_due_date
                invoice.next_due_date = self._next_due(invoice, invoice.due_date)
                invoice.paid_date = None
        logger.info("Advanced %d recurring invoices", len(invoices))
        return len(invoices)
