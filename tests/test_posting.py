import logging
import pytest
from datetime import date
from decimal import Decimal

from moneyflow.core.exceptions import PostingError
from moneyflow.models import CardType, Transaction, TransactionType
from moneyflow.repositories.holder_repository import HolderKind
from moneyflow.schemas.card_schemas import CardUpdate
from moneyflow.services.bank_account_service import BankAccountService
from moneyflow.services.card_service import CardService
from moneyflow.services.ledger_service import LedgerSnapshot, TransactionLifecycle


def make_transaction(user, type: TransactionType, amount: str, **endpoints) -> Transaction:
    return Transaction(
        user_id=user.id,
        type=type,
        amount=Decimal(amount),
        currency="CHF",
        title=f"{type.value} {amount}",
        transaction_date=date(2025, 3, 10),
        **endpoints,
    )


@pytest.fixture
def lifecycle(db_session):
    return TransactionLifecycle(db_session)


class TestPosting:
    """Balance effects applied when a transaction is created"""

    def test_expense_from_account(self, lifecycle, user, make_account, balance_of):
        account = make_account(balance="1000.00")

        lifecycle.create(make_transaction(user, TransactionType.EXPENSE, "120.00", from_account_id=account.id))

        assert balance_of(account) == Decimal("880.00")

    def test_expense_on_credit_card_increases_debt(self, lifecycle, user, make_card, balance_of):
        card = make_card(CardType.CREDIT, balance="100.00")

        lifecycle.create(make_transaction(user, TransactionType.EXPENSE, "50.00", from_card_id=card.id))

        assert balance_of(card) == Decimal("150.00")
        assert card.available_credit == Decimal("4850.00")

    def test_expense_on_debit_card_hits_linked_account(
        self, lifecycle, user, make_account, make_card, balance_of
    ):
        account = make_account(balance="500.00")
        card = make_card(CardType.DEBIT, bank_account_id=account.id)

        lifecycle.create(make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id))

        assert balance_of(account) == Decimal("460.00")
        assert balance_of(card) == Decimal("0.00")

    def test_debit_card_without_account_has_no_effect(self, lifecycle, user, make_card, balance_of):
        card = make_card(CardType.DEBIT)

        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id)
        )

        assert transaction.id is not None
        assert balance_of(card) == Decimal("0.00")

    def test_income_to_credit_card_reduces_debt(self, lifecycle, user, make_card, balance_of):
        card = make_card(CardType.CREDIT, balance="300.00")

        lifecycle.create(make_transaction(user, TransactionType.INCOME, "75.00", to_card_id=card.id))

        assert balance_of(card) == Decimal("225.00")

    def test_transfer_conserves_total(self, lifecycle, user, make_account, balance_of):
        source = make_account("Source", "1000.00")
        target = make_account("Target", "250.00")

        lifecycle.create(
            make_transaction(
                user,
                TransactionType.TRANSFER,
                "300.00",
                from_account_id=source.id,
                to_account_id=target.id,
            )
        )

        assert balance_of(source) == Decimal("700.00")
        assert balance_of(target) == Decimal("550.00")
        assert balance_of(source) + balance_of(target) == Decimal("1250.00")

    def test_card_payment_reduces_account_and_debt(
        self, lifecycle, user, make_account, make_card, balance_of
    ):
        account = make_account(balance="1000.00")
        card = make_card(CardType.CREDIT, balance="400.00")

        lifecycle.create(
            make_transaction(
                user,
                TransactionType.CARD_PAYMENT,
                "150.00",
                from_account_id=account.id,
                to_card_id=card.id,
            )
        )

        assert balance_of(account) == Decimal("850.00")
        assert balance_of(card) == Decimal("250.00")

    def test_card_payment_to_debit_card_only_debits_account(
        self, lifecycle, user, make_account, make_card, balance_of
    ):
        account = make_account(balance="1000.00")
        linked = make_account("Linked", "200.00")
        card = make_card(CardType.DEBIT, bank_account_id=linked.id)

        lifecycle.create(
            make_transaction(
                user,
                TransactionType.CARD_PAYMENT,
                "100.00",
                from_account_id=account.id,
                to_card_id=card.id,
            )
        )

        assert balance_of(account) == Decimal("900.00")
        assert balance_of(linked) == Decimal("200.00")

    def test_endpoints_outside_the_type_are_ignored(self, lifecycle, user, make_account, balance_of):
        source = make_account("Source", "1000.00")
        other = make_account("Other", "1000.00")

        lifecycle.create(
            make_transaction(
                user,
                TransactionType.EXPENSE,
                "10.00",
                from_account_id=source.id,
                to_account_id=other.id,
            )
        )

        assert balance_of(source) == Decimal("990.00")
        assert balance_of(other) == Decimal("1000.00")

    def test_missing_holder_rolls_back_everything(
        self, lifecycle, db_session, user, make_account, balance_of
    ):
        account = make_account(balance="1000.00")

        with pytest.raises(PostingError) as exc_info:
            lifecycle.create(
                make_transaction(
                    user,
                    TransactionType.EXPENSE,
                    "60.00",
                    from_account_id=account.id,
                    from_card_id=9999,
                )
            )

        assert exc_info.value.holder_kind == "card"
        assert exc_info.value.holder_id == 9999
        assert db_session.query(Transaction).count() == 0
        assert balance_of(account) == Decimal("1000.00")


class TestReversal:
    """Delete and update undo exactly what posting applied"""

    @pytest.mark.parametrize(
        "type,endpoints",
        [
            (TransactionType.EXPENSE, ("from_account_id", "from_card_id")),
            (TransactionType.INCOME, ("to_account_id", "to_card_id")),
            (TransactionType.TRANSFER, ("from_account_id", "to_account_id")),
            (TransactionType.CARD_PAYMENT, ("from_account_id", "to_card_id")),
        ],
    )
    def test_delete_restores_every_balance(
        self, type, endpoints, lifecycle, user, make_account, make_card, balance_of
    ):
        account_a = make_account("A", "1000.00")
        account_b = make_account("B", "500.00")
        card = make_card(CardType.CREDIT, balance="200.00")
        holders = {
            "from_account_id": account_a.id,
            "to_account_id": account_b.id,
            "from_card_id": card.id,
            "to_card_id": card.id,
        }

        transaction = lifecycle.create(
            make_transaction(user, type, "123.45", **{name: holders[name] for name in endpoints})
        )
        skipped = lifecycle.delete(transaction)

        assert skipped == []
        assert balance_of(account_a) == Decimal("1000.00")
        assert balance_of(account_b) == Decimal("500.00")
        assert balance_of(card) == Decimal("200.00")

    def test_scenario_create_then_delete(self, lifecycle, user, make_account, balance_of):
        account = make_account(balance="1000.00")

        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "120.00", from_account_id=account.id)
        )
        assert balance_of(account) == Decimal("880.00")

        lifecycle.delete(transaction)
        assert balance_of(account) == Decimal("1000.00")

    def test_reversal_skips_missing_card(
        self, lifecycle, db_session, user, make_account, make_card, balance_of, caplog
    ):
        account = make_account(balance="1000.00")
        card = make_card(CardType.CREDIT, balance="0.00")
        transaction = lifecycle.create(
            make_transaction(
                user,
                TransactionType.CARD_PAYMENT,
                "100.00",
                from_account_id=account.id,
                to_card_id=card.id,
            )
        )
        card_id = card.id
        db_session.delete(card)
        db_session.commit()

        with caplog.at_level(logging.WARNING, logger="moneyflow.services.ledger_service"):
            skipped = lifecycle.delete(transaction)

        assert [(ref.kind, ref.id) for ref in skipped] == [(HolderKind.CARD, card_id)]
        assert balance_of(account) == Decimal("1000.00")
        assert db_session.query(Transaction).count() == 0
        assert "Skipping reversal" in caplog.text

    def test_reversal_reports_deleted_debit_card_account(
        self, lifecycle, db_session, user, make_account, make_card, caplog
    ):
        account = make_account(balance="500.00")
        card = make_card(CardType.DEBIT, bank_account_id=account.id)
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id)
        )
        account_id = account.id
        BankAccountService(db_session).delete_account(account_id, user)

        with caplog.at_level(logging.WARNING, logger="moneyflow.services.ledger_service"):
            skipped = lifecycle.delete(transaction)

        assert [(ref.kind, ref.id) for ref in skipped] == [(HolderKind.BANK_ACCOUNT, account_id)]
        assert "Skipping reversal" in caplog.text

    def test_relinked_debit_card_reverses_original_account(
        self, lifecycle, db_session, user, make_account, make_card, balance_of
    ):
        first = make_account(name="First", balance="500.00")
        second = make_account(name="Second", balance="500.00")
        card = make_card(CardType.DEBIT, bank_account_id=first.id)
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id)
        )
        CardService(db_session).update_card(card.id, CardUpdate(bank_account_id=second.id), user)

        lifecycle.delete(transaction)

        assert balance_of(first) == Decimal("500.00")
        assert balance_of(second) == Decimal("500.00")

    def test_debit_card_linked_after_posting_reverses_nothing(
        self, lifecycle, db_session, user, make_account, make_card, balance_of
    ):
        account = make_account(balance="500.00")
        card = make_card(CardType.DEBIT)
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id)
        )
        CardService(db_session).update_card(card.id, CardUpdate(bank_account_id=account.id), user)

        assert lifecycle.delete(transaction) == []
        assert balance_of(account) == Decimal("500.00")


class TestUpdate:
    """Reverse old state, apply changes, post new state"""

    def test_amount_change_moves_balance_by_difference(self, lifecycle, user, make_account, balance_of):
        account = make_account(balance="1000.00")
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "120.00", from_account_id=account.id)
        )

        lifecycle.update(transaction, {"amount": Decimal("200.00")})

        assert balance_of(account) == Decimal("800.00")

    def test_moving_expense_to_another_account(self, lifecycle, user, make_account, balance_of):
        first = make_account("First", "1000.00")
        second = make_account("Second", "1000.00")
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "50.00", from_account_id=first.id)
        )

        lifecycle.update(transaction, {"from_account_id": second.id})

        assert balance_of(first) == Decimal("1000.00")
        assert balance_of(second) == Decimal("950.00")

    def test_changing_type_flips_direction(self, lifecycle, user, make_account, balance_of):
        account = make_account(balance="1000.00")
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "100.00", from_account_id=account.id)
        )

        lifecycle.update(
            transaction,
            {"type": TransactionType.INCOME, "from_account_id": None, "to_account_id": account.id},
        )

        assert balance_of(account) == Decimal("1100.00")

    def test_failed_update_leaves_old_state(
        self, lifecycle, db_session, user, make_account, balance_of
    ):
        account = make_account(balance="1000.00")
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "100.00", from_account_id=account.id)
        )
        transaction_id = transaction.id

        with pytest.raises(PostingError):
            lifecycle.update(transaction, {"from_card_id": 4242})

        assert balance_of(account) == Decimal("900.00")
        reloaded = db_session.get(Transaction, transaction_id)
        assert reloaded.from_card_id is None

    def test_unknown_field_rejected(self, lifecycle, user, make_account):
        account = make_account()
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "10.00", from_account_id=account.id)
        )

        with pytest.raises(ValueError):
            lifecycle.update(transaction, {"user_id": 99})

    def test_update_after_relink_moves_charge_to_new_account(
        self, lifecycle, db_session, user, make_account, make_card, balance_of
    ):
        first = make_account(name="First", balance="500.00")
        second = make_account(name="Second", balance="500.00")
        card = make_card(CardType.DEBIT, bank_account_id=first.id)
        transaction = lifecycle.create(
            make_transaction(user, TransactionType.EXPENSE, "40.00", from_card_id=card.id)
        )
        CardService(db_session).update_card(card.id, CardUpdate(bank_account_id=second.id), user)

        lifecycle.update(transaction, {"amount": Decimal("60.00")})

        assert balance_of(first) == Decimal("500.00")
        assert balance_of(second) == Decimal("440.00")
        assert transaction.card_account_id == second.id


def test_snapshot_is_decoupled_from_row(user):
    transaction = make_transaction(user, TransactionType.EXPENSE, "12.50", from_account_id=7)
    snapshot = LedgerSnapshot.of(transaction)

    transaction.amount = Decimal("99.00")
    transaction.from_account_id = 8

    assert snapshot.amount == Decimal("12.50")
    assert snapshot.from_account_id == 7
