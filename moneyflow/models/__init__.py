"""Import every model so the declarative registry knows all tables."""

from moneyflow.models.base import Base
from moneyflow.models.user import User
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.card import Card, CardType
from moneyflow.models.transaction import Transaction, TransactionType, Origin, OriginKind
from moneyflow.models.budget import Budget, BudgetPeriod
from moneyflow.models.subscription import Subscription, PaymentMethodType
from moneyflow.models.recurring_income import RecurringIncome
from moneyflow.models.invoice import Invoice, InvoiceStatus

__all__ = [
    "Base",
    "User",
    "BankAccount",
    "Card",
    "CardType",
    "Transaction",
    "TransactionType",
    "Origin",
    "OriginKind",
    "Budget",
    "BudgetPeriod",
    "Subscription",
    "PaymentMethodType",
    "RecurringIncome",
    "Invoice",
    "InvoiceStatus",
]
