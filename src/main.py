import argparse
import logging
import sys

from csv_io import InputError, write_accounts
from engine import DispatchError, PaymentsEngine

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply a CSV of transactions and print client balances.")
    parser.add_argument("input", help="input CSV with columns type, client, tx, amount")
    parser.add_argument("--workers", type=int, default=4, help="number of worker shards (1 = single-threaded)")
    parser.add_argument("--queue-size", type=int, default=0, help="per-worker queue bound, 0 for unbounded")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        engine = PaymentsEngine(num_workers=args.workers, queue_size=args.queue_size)
        accounts = engine.process_file(args.input)
    except (DispatchError, InputError, OSError, ValueError) as e:
        logger.error(f"Run failed: {e}")
        return 1

    write_accounts(accounts.values(), sys.stdout)

    # Print final processing report to stderr
    print(
        f"Processed: {engine.stats.processed}, "
        f"Applied: {engine.stats.applied}, "
        f"Ignored: {engine.stats.ignored}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
