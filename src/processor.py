import logging
from typing import Iterator, Optional

from models import (
    AccountSnapshot,
    ClientAccount,
    DepositRecord,
    DisputeStatus,
    LedgerRecord,
    ProcessingStats,
    Transaction,
    TransactionType,
    WithdrawalRecord,
)
from state import LedgerState

logger = logging.getLogger(__name__)


class Snapshot:
    """
    Lazy view over the accounts of one processor.
    Iterating again starts over and reflects the current balances.
    """

    def __init__(self, state: LedgerState):
        self._state = state

    def __iter__(self) -> Iterator[AccountSnapshot]:
        for account in self._state.iter_accounts():
            yield AccountSnapshot.from_account(account)

    def __len__(self) -> int:
        return len(self._state)


class TransactionProcessor:
    """
    Applies transactions to the state it owns.
    Rule violations (duplicate ids, insufficient funds, foreign or settled
    disputes, locked accounts) are silently ignored and only counted.
    Caller must not share one processor between threads.
    """

    def __init__(self, state: Optional[LedgerState] = None):
        self._state = state if state is not None else LedgerState()
        self.stats = ProcessingStats()

    def apply(self, transaction: Transaction) -> None:
        """Apply a single transaction. Never raises for business-rule violations."""
        account = self._state.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                applied = self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                applied = self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                applied = self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                applied = self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                applied = self._handle_chargeback(account, transaction)
            case _:
                applied = False

        if applied:
            self.stats.record_applied()
        else:
            self.stats.record_ignored()

    def snapshot(self) -> Snapshot:
        return Snapshot(self._state)

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> bool:
        client_id, transaction_id = transaction.client_id, transaction.transaction_id
        if self._state.is_transaction_id_used(client_id, transaction_id):
            logger.debug(f"Deposit tx {transaction_id}: duplicate id for client {client_id}, ignoring")
            return False

        # The id is consumed even when the account is locked.
        self._state.mark_transaction_id_used(client_id, transaction_id)

        if account.locked:
            logger.debug(f"Deposit tx {transaction_id}: client {client_id} is locked, ignoring")
            return False

        account.credit(transaction.amount)
        self._state.store_record(DepositRecord(client_id, transaction_id, transaction.amount))
        return True

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> bool:
        client_id, transaction_id = transaction.client_id, transaction.transaction_id
        if self._state.is_transaction_id_used(client_id, transaction_id):
            logger.debug(f"Withdrawal tx {transaction_id}: duplicate id for client {client_id}, ignoring")
            return False

        if account.available < transaction.amount or account.locked:
            logger.debug(f"Withdrawal tx {transaction_id}: insufficient funds or locked client {client_id}, ignoring")
            return False

        self._state.mark_transaction_id_used(client_id, transaction_id)
        account.debit(transaction.amount)
        self._state.store_record(WithdrawalRecord(client_id, transaction_id, transaction.amount))
        return True

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> bool:
        record = self._find_record(account, transaction, DisputeStatus.ELIGIBLE)
        if record is None:
            return False

        # No floor: available or held may go negative here.
        record.apply_dispute(account)
        record.status = DisputeStatus.PENDING
        return True

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> bool:
        record = self._find_record(account, transaction, DisputeStatus.PENDING)
        if record is None:
            return False

        record.apply_resolve(account)
        record.status = DisputeStatus.ELIGIBLE
        return True

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> bool:
        record = self._find_record(account, transaction, DisputeStatus.PENDING)
        if record is None:
            return False

        record.apply_chargeback(account)
        record.status = DisputeStatus.COMPLETE
        account.lock()
        return True

    def _find_record(
        self, account: ClientAccount, transaction: Transaction, required_status: DisputeStatus
    ) -> Optional[LedgerRecord]:
        """
        Look up the record a dispute/resolve/chargeback refers to.

        Returns None when the record is unknown, belongs to another client,
        the account is locked, or the record is not in required_status.
        """
        kind = transaction.transaction_type.value.capitalize()
        transaction_id = transaction.transaction_id
        record = self._state.get_record(transaction_id)

        if record is None:
            logger.debug(f"{kind} for tx {transaction_id}: transaction not found, ignoring")
            return None

        if record.client_id != transaction.client_id:
            logger.debug(f"{kind} for tx {transaction_id}: client mismatch (expected {record.client_id}, got {transaction.client_id}), ignoring")
            return None

        if account.locked:
            logger.debug(f"{kind} for tx {transaction_id}: client {transaction.client_id} is locked, ignoring")
            return None

        if record.status != required_status:
            logger.debug(f"{kind} for tx {transaction_id}: status is {record.status.value}, expected {required_status.value}, ignoring")
            return None

        return record
