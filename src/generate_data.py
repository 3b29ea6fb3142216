import argparse
import csv
import logging
import random
import sys
from decimal import Decimal
from typing import Iterator, Optional, Set, Tuple

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)

ALL_TRANSACTION_TYPES = list(TransactionType)


class InputBuilder:
    """
    Random transaction source for load tests and benchmarks.
    Deposits and withdrawals get unique tx ids; disputes, resolves and
    chargebacks reference any id in range, so many of them are ignored.
    Ranges are half-open, like range().
    """

    def __init__(
        self,
        client_range: Tuple[int, int],
        tx_range: Tuple[int, int],
        amount_range: Tuple[Decimal, Decimal],
        seed: Optional[int] = None,
    ):
        if client_range[1] <= client_range[0] or tx_range[1] <= tx_range[0]:
            raise ValueError("client and tx ranges must not be empty")
        self._client_range = client_range
        self._tx_range = tx_range
        self._amount_range = amount_range
        self._tx_used: Set[int] = set()
        self._rng = random.Random(seed)

    def sample_random(self) -> Transaction:
        client_id = self._rng.randrange(*self._client_range)
        transaction_type = self._rng.choice(ALL_TRANSACTION_TYPES)

        if transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
            return Transaction(transaction_type, client_id, self._unique_transaction_id(), self._random_amount())
        return Transaction(transaction_type, client_id, self._rng.randrange(*self._tx_range))

    def samples(self, count: int) -> Iterator[Transaction]:
        for _ in range(count):
            yield self.sample_random()

    def _unique_transaction_id(self) -> int:
        if len(self._tx_used) >= self._tx_range[1] - self._tx_range[0]:
            raise ValueError("tx range exhausted")
        while True:
            candidate = self._rng.randrange(*self._tx_range)
            if candidate not in self._tx_used:
                self._tx_used.add(candidate)
                return candidate

    def _random_amount(self) -> Decimal:
        low, high = self._amount_range
        value = self._rng.uniform(float(low), float(high))
        return Decimal(str(value)).quantize(Decimal("0.0001"))


def generate(filepath: str, num_inputs: int, builder: InputBuilder) -> None:
    """Write num_inputs random transactions as CSV."""
    with open(filepath, "w", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(["type", "client", "tx", "amount"])
        for transaction in builder.samples(num_inputs):
            amount = "" if transaction.amount is None else f"{transaction.amount:f}"
            writer.writerow([transaction.transaction_type.value, transaction.client_id, transaction.transaction_id, amount])
    logger.info(f"Wrote {num_inputs} transactions to {filepath}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate a random transactions CSV.")
    parser.add_argument("output", help="output CSV path")
    parser.add_argument("--count", type=int, default=1_000_000, help="number of transactions")
    parser.add_argument("--clients", type=int, default=1000, help="number of distinct clients")
    parser.add_argument("--seed", type=int, default=None, help="random seed for reproducible output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", stream=sys.stderr)

    builder = InputBuilder(
        client_range=(0, args.clients),
        tx_range=(0, 2**32),
        amount_range=(Decimal("-999"), Decimal("999")),
        seed=args.seed,
    )
    generate(args.output, args.count, builder)
    return 0


if __name__ == "__main__":
    sys.exit(main())
