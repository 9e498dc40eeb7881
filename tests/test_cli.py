from datetime import date
from decimal import Decimal

from click.testing import CliRunner

from moneyflow.cli import run_sweeps, sweep
from moneyflow.models import Budget, BudgetPeriod, Invoice, InvoiceStatus, PaymentMethodType, Subscription


def test_run_sweeps_in_order(db_session, user, make_account, balance_of):
    account = make_account()
    db_session.add_all(
        [
            Subscription(
                user_id=user.id,
                name="News",
                amount=Decimal("20.00"),
                currency="CHF",
                billing_cycle="monthly",
                start_date=date(2025, 1, 15),
                next_billing_date=date(2025, 1, 15),
                payment_method_type=PaymentMethodType.BANK_ACCOUNT,
                payment_method_id=account.id,
            ),
            Invoice(
                user_id=user.id,
                amount=Decimal("75.00"),
                currency="CHF",
                status=InvoiceStatus.PENDING,
                due_date=date(2025, 1, 20),
            ),
            Budget(
                user_id=user.id,
                name="All",
                amount=Decimal("100.00"),
                currency="CHF",
                period=BudgetPeriod.MONTHLY,
                start_date=date(2024, 12, 1),
                current_period_start=date(2024, 12, 1),
                current_period_end=date(2024, 12, 31),
            ),
        ]
    )
    db_session.commit()

    results = run_sweeps(db_session, date(2025, 2, 1))

    assert results == {
        "subscriptions_billed": 1,
        "incomes_received": 0,
        "invoices_advanced": 0,
        "invoices_overdue": 1,
        "budgets_rolled_over": 1,
        "budgets_deactivated": 0,
        "budgets_refreshed": 1,
    }
    assert balance_of(account) == Decimal("980.00")

    budget = db_session.query(Budget).one()
    # the new window already counts the charge billed the same morning
    assert budget.current_period_start == date(2025, 2, 1)
    assert budget.current_period_spent == Decimal("20.00")


def test_run_selected_sweeps_only(db_session):
    results = run_sweeps(db_session, date(2025, 2, 1), only=("invoices",))

    assert set(results) == {"invoices_advanced", "invoices_overdue"}


def test_cli_rejects_unknown_sweep():
    result = CliRunner().invoke(sweep, ["--only", "payroll"])

    assert result.exit_code == 2


def test_cli_rejects_bad_date():
    result = CliRunner().invoke(sweep, ["--date", "01/02/2025"])

    assert result.exit_code == 2
