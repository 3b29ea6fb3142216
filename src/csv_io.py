import csv
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, TextIO

from models import AccountSnapshot, Transaction, TransactionType

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]

_AMOUNT_REQUIRED = (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class InputError(ValueError):
    """Raised for a row that cannot be turned into a Transaction."""


def parse_row(row: Dict[str, str]) -> Transaction:
    """Parse CSV row into Transaction."""
    try:
        normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

        transaction_type = TransactionType(normalized["type"].lower())
        client_id = int(normalized["client"])
        transaction_id = int(normalized["tx"])
        if client_id < 0 or transaction_id < 0:
            raise ValueError("client and tx must be unsigned")

        amount = None
        if transaction_type in _AMOUNT_REQUIRED:
            amount_str = normalized.get("amount", "")
            if not amount_str:
                raise ValueError(f"{transaction_type.value} requires an amount")
            amount = Decimal(amount_str)
            if not amount.is_finite():
                raise ValueError(f"amount must be finite, got {amount_str}")
    except (KeyError, ValueError, InvalidOperation) as e:
        raise InputError(f"Failed to parse row {row}: {e}") from e

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """Lazily read CSV file. The first malformed row raises InputError."""
    with open(filepath, "r", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            yield parse_row(row)


def format_decimal(value: Decimal) -> str:
    """Format decimal without exponent, removing trailing zeros."""
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return f"{normalized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Write accounts sorted by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for account in sorted(accounts, key=lambda a: a.client):
        writer.writerow([
            account.client,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])
