from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeStatus(Enum):
    ELIGIBLE = "eligible"
    PENDING = "pending"
    COMPLETE = "complete"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount

    def lock(self) -> None:
        self.locked = True


@dataclass
class DepositRecord:
    """
    Accepted deposit kept for later dispute lookups.
    Disputing it moves the amount from available to held.
    """

    client_id: int
    transaction_id: int
    amount: Decimal
    status: DisputeStatus = DisputeStatus.ELIGIBLE

    def apply_dispute(self, account: ClientAccount) -> None:
        account.hold(self.amount)

    def apply_resolve(self, account: ClientAccount) -> None:
        account.release_hold(self.amount)

    def apply_chargeback(self, account: ClientAccount) -> None:
        account.remove_held(self.amount)


@dataclass
class WithdrawalRecord:
    """
    Accepted withdrawal kept for later dispute lookups.
    Every movement is the mirror image of a deposit's, so held can go negative.
    """

    client_id: int
    transaction_id: int
    amount: Decimal
    status: DisputeStatus = DisputeStatus.ELIGIBLE

    def apply_dispute(self, account: ClientAccount) -> None:
        account.hold(-self.amount)

    def apply_resolve(self, account: ClientAccount) -> None:
        account.release_hold(-self.amount)

    def apply_chargeback(self, account: ClientAccount) -> None:
        account.remove_held(-self.amount)


LedgerRecord = Union[DepositRecord, WithdrawalRecord]


@dataclass(frozen=True)
class AccountSnapshot:
    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @classmethod
    def from_account(cls, account: ClientAccount) -> "AccountSnapshot":
        return cls(
            client=account.client_id,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked,
        )


class ProcessingStats:
    """
    Counters for tracking processing statistics.
    Owned by a single processor, so no locking; merge after the join.
    """

    def __init__(self):
        self.applied = 0
        self.ignored = 0

    @property
    def processed(self) -> int:
        return self.applied + self.ignored

    def record_applied(self):
        self.applied += 1

    def record_ignored(self):
        self.ignored += 1

    def merge(self, other: "ProcessingStats") -> None:
        self.applied += other.applied
        self.ignored += other.ignored

    def __repr__(self) -> str:
        return f"ProcessingStats(applied={self.applied}, ignored={self.ignored})"
