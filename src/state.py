from typing import Dict, Iterator, Optional, Set

from models import ClientAccount, LedgerRecord


class LedgerState:
    """
    State owned by a single processor.
    Stores client accounts, used transaction ids per client, and accepted
    deposits/withdrawals for dispute lookups.
    Not thread-safe: when sharding, every worker owns its own instance.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._used_transaction_ids: Dict[int, Set[int]] = {}
        self._records: Dict[int, LedgerRecord] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        account = self._accounts.get(client_id)
        if account is None:
            account = ClientAccount(client_id=client_id)
            self._accounts[client_id] = account
        return account

    def is_transaction_id_used(self, client_id: int, transaction_id: int) -> bool:
        """Check whether a deposit/withdrawal id was already consumed by this client."""
        return transaction_id in self._used_transaction_ids.get(client_id, ())

    def mark_transaction_id_used(self, client_id: int, transaction_id: int) -> None:
        self._used_transaction_ids.setdefault(client_id, set()).add(transaction_id)

    def store_record(self, record: LedgerRecord) -> None:
        """Store accepted deposit/withdrawal for future dispute lookups."""
        self._records[record.transaction_id] = record

    def get_record(self, transaction_id: int) -> Optional[LedgerRecord]:
        """Retrieve stored record by transaction ID."""
        return self._records.get(transaction_id)

    def iter_accounts(self) -> Iterator[ClientAccount]:
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)
