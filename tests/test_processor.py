import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import AccountSnapshot, Transaction, TransactionType
from state import LedgerState
from processor import TransactionProcessor


def deposit(client_id, tx_id, amount):
    return Transaction(TransactionType.DEPOSIT, client_id, tx_id, Decimal(amount))


def withdrawal(client_id, tx_id, amount):
    return Transaction(TransactionType.WITHDRAWAL, client_id, tx_id, Decimal(amount))


def dispute(client_id, tx_id):
    return Transaction(TransactionType.DISPUTE, client_id, tx_id)


def resolve(client_id, tx_id):
    return Transaction(TransactionType.RESOLVE, client_id, tx_id)


def chargeback(client_id, tx_id):
    return Transaction(TransactionType.CHARGEBACK, client_id, tx_id)


class TestTransactionProcessor:
    def setup_method(self):
        self.state = LedgerState()
        self.processor = TransactionProcessor(self.state)

    def apply_all(self, *transactions):
        for transaction in transactions:
            self.processor.apply(transaction)

    def account(self, client_id=1):
        return self.state.get_or_create_account(client_id)

    def test_deposit(self):
        self.apply_all(deposit(1, 1, "100"))

        account = self.account()
        assert account.available == Decimal("100")
        assert account.total == Decimal("100")
        assert self.processor.stats.applied == 1

    def test_two_deposits(self):
        self.apply_all(deposit(1, 1, "5"), deposit(1, 2, "7"))

        account = self.account()
        assert account.available == Decimal("12")
        assert account.held == Decimal("0")
        assert account.total == Decimal("12")
        assert account.locked is False

    def test_withdrawal_success(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "3"))

        account = self.account()
        assert account.available == Decimal("2")
        assert account.total == Decimal("2")

    def test_withdrawal_insufficient_funds(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "8"))

        account = self.account()
        assert account.available == Decimal("5")
        assert account.total == Decimal("5")
        assert self.processor.stats.ignored == 1

    def test_rejected_withdrawal_does_not_consume_id(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "8"))
        assert not self.state.is_transaction_id_used(1, 2)

        self.apply_all(withdrawal(1, 2, "4"))
        assert self.account().available == Decimal("1")

    def test_withdrawal_of_exact_balance(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "5"))
        assert self.account().available == Decimal("0")

    def test_duplicate_deposit_ignored_and_id_consumed(self):
        self.apply_all(deposit(1, 1, "5"), deposit(1, 1, "7"))

        assert self.account().available == Decimal("5")
        assert self.state.is_transaction_id_used(1, 1)
        assert self.processor.stats.ignored == 1

    def test_duplicate_withdrawal_ignored(self):
        self.apply_all(deposit(1, 1, "200"), withdrawal(1, 2, "50"), withdrawal(1, 2, "50"))
        assert self.account().available == Decimal("150")

    def test_withdrawal_reusing_deposit_id_ignored(self):
        self.apply_all(deposit(1, 1, "200"), withdrawal(1, 1, "50"))
        assert self.account().available == Decimal("200")

    def test_dispute(self):
        self.apply_all(deposit(1, 1, "100"), dispute(1, 1))

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("100")
        assert account.total == Decimal("100")

    def test_dispute_withdrawal_holds_negative(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "3"), dispute(1, 2))

        account = self.account()
        assert account.available == Decimal("5")
        assert account.held == Decimal("-3")
        assert account.total == Decimal("2")

    def test_dispute_after_partial_withdrawal_goes_negative(self):
        self.apply_all(deposit(1, 1, "100"), withdrawal(1, 2, "30"), dispute(1, 1))

        account = self.account()
        assert account.available == Decimal("-30")
        assert account.held == Decimal("100")
        assert account.total == Decimal("70")

    def test_dispute_tx_not_found(self):
        self.apply_all(dispute(1, 99))

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert self.processor.stats.ignored == 1

    def test_dispute_wrong_client(self):
        self.apply_all(deposit(1, 1, "100"), dispute(2, 1))

        assert self.account(1).held == Decimal("0")
        assert self.account(1).available == Decimal("100")
        assert self.account(2).held == Decimal("0")

    def test_duplicate_dispute_idempotent(self):
        self.apply_all(deposit(1, 1, "100"), dispute(1, 1), dispute(1, 1))

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("100")

    def test_resolve(self):
        self.apply_all(deposit(1, 1, "100"), dispute(1, 1), resolve(1, 1))

        account = self.account()
        assert account.available == Decimal("100")
        assert account.held == Decimal("0")

    def test_resolve_withdrawal_dispute(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "3"), dispute(1, 2), resolve(1, 2))

        account = self.account()
        assert account.available == Decimal("2")
        assert account.held == Decimal("0")

    def test_resolve_not_disputed(self):
        self.apply_all(deposit(1, 1, "100"), resolve(1, 1))

        account = self.account()
        assert account.available == Decimal("100")
        assert account.held == Decimal("0")
        assert self.processor.stats.ignored == 1

    def test_redispute_after_resolve(self):
        self.apply_all(deposit(1, 1, "100"), dispute(1, 1), resolve(1, 1), dispute(1, 1))

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("100")

    def test_chargeback(self):
        self.apply_all(deposit(1, 1, "5"), dispute(1, 1), chargeback(1, 1))

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.locked is True

    def test_chargeback_withdrawal_dispute(self):
        self.apply_all(deposit(1, 1, "5"), withdrawal(1, 2, "3"), dispute(1, 2), chargeback(1, 2))

        account = self.account()
        assert account.available == Decimal("5")
        assert account.held == Decimal("0")
        assert account.total == Decimal("5")
        assert account.locked is True

    def test_chargeback_without_dispute_ignored(self):
        self.apply_all(deposit(1, 1, "5"), chargeback(1, 1))

        account = self.account()
        assert account.available == Decimal("5")
        assert account.locked is False

    def test_chargeback_after_resolve_ignored(self):
        self.apply_all(deposit(1, 1, "100"), dispute(1, 1), resolve(1, 1), chargeback(1, 1))

        account = self.account()
        assert account.available == Decimal("100")
        assert account.locked is False

    def test_locked_account_rejects_operations(self):
        self.apply_all(
            deposit(1, 1, "5"),
            deposit(1, 2, "10"),
            dispute(1, 1),
            chargeback(1, 1),
            deposit(1, 3, "50"),
            withdrawal(1, 4, "1"),
            dispute(1, 2),
        )

        account = self.account()
        assert account.available == Decimal("10")
        assert account.held == Decimal("0")
        assert account.total == Decimal("10")
        assert account.locked is True

    def test_deposit_on_locked_account_consumes_id(self):
        self.apply_all(deposit(1, 1, "5"), dispute(1, 1), chargeback(1, 1), deposit(1, 2, "50"))

        assert self.state.is_transaction_id_used(1, 2)
        assert self.state.get_record(2) is None

    def test_pending_dispute_frozen_by_lock(self):
        self.apply_all(
            deposit(1, 1, "5"),
            deposit(1, 2, "7"),
            dispute(1, 1),
            dispute(1, 2),
            chargeback(1, 1),
            resolve(1, 2),
            chargeback(1, 2),
        )

        account = self.account()
        assert account.available == Decimal("0")
        assert account.held == Decimal("7")
        assert account.total == Decimal("7")
        assert account.locked is True

    def test_other_clients_unaffected_by_lock(self):
        self.apply_all(deposit(1, 1, "5"), dispute(1, 1), chargeback(1, 1), deposit(2, 2, "3"))

        assert self.account(2).available == Decimal("3")
        assert self.account(2).locked is False

    def test_every_event_creates_account(self):
        self.apply_all(resolve(9, 1))
        assert [entry.client for entry in self.processor.snapshot()] == [9]


class TestSnapshot:
    def setup_method(self):
        self.processor = TransactionProcessor()

    def test_one_entry_per_client(self):
        self.processor.apply(deposit(1, 1, "5"))
        self.processor.apply(deposit(2, 2, "7"))
        self.processor.apply(deposit(1, 3, "1"))

        entries = sorted(self.processor.snapshot(), key=lambda entry: entry.client)
        assert entries == [
            AccountSnapshot(client=1, available=Decimal("6"), held=Decimal("0"), total=Decimal("6"), locked=False),
            AccountSnapshot(client=2, available=Decimal("7"), held=Decimal("0"), total=Decimal("7"), locked=False),
        ]

    def test_restartable(self):
        self.processor.apply(deposit(1, 1, "5"))
        snapshot = self.processor.snapshot()

        assert list(snapshot) == list(snapshot)
        assert len(snapshot) == 1

    def test_empty(self):
        assert list(self.processor.snapshot()) == []
