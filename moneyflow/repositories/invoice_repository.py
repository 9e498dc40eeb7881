from datetime import date
from sqlalchemy.orm import Session
from moneyflow.models.invoice import Invoice, InvoiceStatus


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int, status: InvoiceStatus | None = None) -> list[Invoice]:
        query = self.db.query(Invoice).filter(Invoice.user_id == user_id)
        if status is not None:
            query = query.filter(Invoice.status == status)
        return query.order_by(Invoice.due_date, Invoice.id).all()

    def get_by_id_and_user(self, invoice_id: int, user_id: int) -> Invoice | None:
        return (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.user_id == user_id)
            .first()
        )

    def get_pending_past_due(self, today: date) -> list[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.status == InvoiceStatus.PENDING, Invoice.due_date < today)
            .order_by(Invoice.id)
            .all()
        )

    def get_paid_recurring_due(self, today: date) -> list[Invoice]:
        """Paid recurring invoices whose current due date has passed"""
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.status == InvoiceStatus.PAID,
                Invoice.is_recurring.is_(True),
                Invoice.due_date < today,
            )
            .order_by(Invoice.id)
            .all()
        )

    def add_no_commit(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        self.db.flush()
        return invoice
