"""CLI for periodic ledger sweeps, run once per invocation by an external scheduler."""

import logging
import sys
from datetime import date, datetime

import click
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moneyflow.config import settings
from moneyflow.core.logging import configure_logging
from moneyflow.database import session_scope
from moneyflow.services.budget_service import BudgetService
from moneyflow.services.invoice_service import InvoiceService
from moneyflow.services.recurring_income_service import RecurringIncomeService
from moneyflow.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

SWEEPS = ("budgets", "subscriptions", "incomes", "invoices")


def run_sweeps(db: Session, today: date, only: tuple[str, ...] = SWEEPS) -> dict[str, int]:
    """Run the selected sweeps and return per-sweep counts"""
    results: dict[str, int] = {}

    # Recurring charges first so budget spend sees them
    if "subscriptions" in only:
        results["subscriptions_billed"] = SubscriptionService(db).process_due_subscriptions(today)
    if "incomes" in only:
        results["incomes_received"] = RecurringIncomeService(db).process_expected_incomes(today)
    if "invoices" in only:
        invoices = InvoiceService(db)
        results["invoices_advanced"] = invoices.advance_recurring_invoices(today)
        results["invoices_overdue"] = invoices.mark_overdue_invoices(today)
    if "budgets" in only:
        budgets = BudgetService(db)
        rolled, deactivated = budgets.check_and_process_rollovers(today)
        results["budgets_rolled_over"] = rolled
        results["budgets_deactivated"] = deactivated
        results["budgets_refreshed"] = budgets.refresh_all_spending(today)

    return results


@click.command()
@click.version_option(version=settings.APP_VERSION)
@click.option(
    "--date",
    "on_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Reference date (defaults to today)",
)
@click.option("--only", multiple=True, type=click.Choice(SWEEPS), help="Run only these sweeps")
def sweep(on_date: datetime | None, only: tuple[str, ...]) -> None:
    """Run budget rollovers, recurring billing and invoice upkeep once."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    today = on_date.date() if on_date else date.today()

    try:
        with session_scope() as db:
            results = run_sweeps(db, today, only or SWEEPS)
    except SQLAlchemyError:
        logger.exception("Sweep aborted by a database error")
        sys.exit(1)

    for name, count in results.items():
        click.echo(f"{name}: {count}")


if __name__ == "__main__":
    sweep()
