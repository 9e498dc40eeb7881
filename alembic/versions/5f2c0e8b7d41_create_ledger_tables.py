"""create_ledger_tables

Revision ID: 5f2c0e8b7d41
Revises:
Create Date: 2026-02-02 09:30:12.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f2c0e8b7d41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=nullable)


def upgrade() -> None:
    """
    Create the ledger schema.

    Money holders (bank_accounts, cards), the transactions that move money
    between them, budgets over those transactions, and the recurring
    entities (subscriptions, recurring_incomes, invoices) that generate them.
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('auth_user_id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_auth_user_id', 'users', ['auth_user_id'], unique=True)

    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _money('balance'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bank_accounts_user_id', 'bank_accounts', ['user_id'])

    op.create_table(
        'cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('bank_account_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=6), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('card_network', sa.String(length=50), nullable=True),
        sa.Column('last_four_digits', sa.String(length=4), nullable=True),
        _money('credit_limit', nullable=True),
        _money('current_balance'),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cards_user_id', 'cards', ['user_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=12), nullable=False),
        _money('amount'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('from_account_id', sa.Integer(), nullable=True),
        sa.Column('to_account_id', sa.Integer(), nullable=True),
        sa.Column('from_card_id', sa.Integer(), nullable=True),
        sa.Column('to_card_id', sa.Integer(), nullable=True),
        sa.Column('card_account_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('merchant_id', sa.Integer(), nullable=True),
        sa.Column('transactionable_type', sa.String(length=50), nullable=True),
        sa.Column('transactionable_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_account_id'], ['bank_accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['to_account_id'], ['bank_accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['from_card_id'], ['cards.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['to_card_id'], ['cards.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('ix_transactions_user_type', 'transactions', ['user_id', 'type'])
    op.create_index('ix_transactions_user_category', 'transactions', ['user_id', 'category_id'])
    op.create_index(
        'ix_transactions_origin', 'transactions', ['transactionable_type', 'transactionable_id']
    )

    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _money('amount'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('period', sa.String(length=9), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('current_period_start', sa.Date(), nullable=True),
        sa.Column('current_period_end', sa.Date(), nullable=True),
        _money('current_period_spent'),
        sa.Column('rollover_unused', sa.Boolean(), nullable=False),
        _money('rollover_amount'),
        sa.Column('alert_threshold', sa.Integer(), nullable=False),
        sa.Column('alert_sent', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_budgets_user_id', 'budgets', ['user_id'])
    op.create_index('ix_budgets_user_active', 'budgets', ['user_id', 'is_active'])
    op.create_index('ix_budgets_period_end_active', 'budgets', ['current_period_end', 'is_active'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _money('amount'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('billing_cycle', sa.String(length=20), nullable=False),
        sa.Column('billing_day', sa.Integer(), nullable=True),
        sa.Column('billing_month', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('next_billing_date', sa.Date(), nullable=True),
        sa.Column('last_billed_date', sa.Date(), nullable=True),
        sa.Column('payment_method_type', sa.String(length=12), nullable=True),
        sa.Column('payment_method_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('merchant_id', sa.Integer(), nullable=True),
        sa.Column('auto_create_transaction', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_next_billing_date', 'subscriptions', ['next_billing_date'])

    op.create_table(
        'recurring_incomes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=255), nullable=True),
        _money('amount'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=False),
        sa.Column('payment_day', sa.Integer(), nullable=True),
        sa.Column('payment_month', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('next_expected_date', sa.Date(), nullable=True),
        sa.Column('last_received_date', sa.Date(), nullable=True),
        sa.Column('to_account_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('auto_create_transaction', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_account_id'], ['bank_accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recurring_incomes_user_id', 'recurring_incomes', ['user_id'])
    op.create_index(
        'ix_recurring_incomes_next_expected_date', 'recurring_incomes', ['next_expected_date']
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=100), nullable=True),
        sa.Column('creditor_name', sa.String(length=255), nullable=True),
        _money('amount'),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('paid_date', sa.Date(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=True),
        sa.Column('billing_day', sa.Integer(), nullable=True),
        sa.Column('next_due_date', sa.Date(), nullable=True),
        sa.Column('times_paid', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('merchant_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invoices_user_id', 'invoices', ['user_id'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])


def downgrade() -> None:
    """Drop the ledger schema in reverse dependency order."""
    for table in (
        'invoices',
        'recurring_incomes',
        'subscriptions',
        'budgets',
        'transactions',
        'cards',
        'bank_accounts',
        'users',
    ):
        op.drop_table(table)
