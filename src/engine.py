import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from csv_io import read_transactions
from message_queue import DataMessage, EndOfStream, WorkerQueue
from models import AccountSnapshot, ProcessingStats, Transaction
from processor import TransactionProcessor

logger = logging.getLogger(__name__)

Router = Callable[[int, int], int]


class DispatchError(RuntimeError):
    """Raised when a run cannot produce a complete, consistent summary."""


def route(client_id: int, num_workers: int) -> int:
    """Map a client to the worker that owns all of its transactions."""
    return client_id % num_workers


def merge_snapshots(snapshots: Iterable[Iterable[AccountSnapshot]]) -> List[AccountSnapshot]:
    """
    Concatenate per-worker snapshots.
    Routing partitions the client space, so a client seen twice means two
    workers processed the same client and the result cannot be trusted.
    """
    merged = []
    seen = set()
    for snapshot in snapshots:
        for account in snapshot:
            if account.client in seen:
                logger.error(f"Client {account.client} reported by more than one worker")
                raise DispatchError(f"client {account.client} appears in more than one worker snapshot")
            seen.add(account.client)
            merged.append(account)
    return merged


class PaymentsEngine:
    """
    Orchestrates transaction processing with a publisher-worker pattern.
    The publisher routes every transaction by client into one queue per
    worker; each worker owns one processor, so workers share no state and
    per-client ordering is the queue's FIFO ordering.
    With num_workers=1 everything runs on the calling thread.
    """

    def __init__(self, num_workers: int = 4, queue_size: int = 0, router: Router = route):
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        if queue_size < 0:
            raise ValueError(f"queue_size must not be negative, got {queue_size}")
        self._num_workers = num_workers
        self._queue_size = queue_size
        self._router = router
        self.stats = ProcessingStats()

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        return self.process_events(read_transactions(filepath))

    def process_events(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        """Process transactions and return final account states keyed by client."""
        logger.info(f"Starting processing with {self._num_workers} worker(s)")

        if self._num_workers == 1:
            processors = [self._run_single_threaded(transactions)]
        else:
            processors = self._run_sharded(transactions)

        self.stats = ProcessingStats()
        for processor in processors:
            self.stats.merge(processor.stats)

        accounts = merge_snapshots(processor.snapshot() for processor in processors)
        logger.info(f"Processing complete: {len(accounts)} accounts, {self.stats}")
        return {account.client: account for account in accounts}

    def _run_single_threaded(self, transactions: Iterable[Transaction]) -> TransactionProcessor:
        processor = TransactionProcessor()
        try:
            for transaction in transactions:
                processor.apply(transaction)
        except Exception as e:
            logger.error(f"Processing aborted: {e}")
            raise DispatchError(f"processing aborted: {e}") from e
        return processor

    def _run_sharded(self, transactions: Iterable[Transaction]) -> List[TransactionProcessor]:
        queues = [WorkerQueue(maxsize=self._queue_size) for _ in range(self._num_workers)]
        processors = [TransactionProcessor() for _ in range(self._num_workers)]
        publisher_errors: List[Exception] = []
        worker_errors: List[Optional[Exception]] = [None] * self._num_workers

        publisher_thread = threading.Thread(
            target=self._publish_transactions,
            args=(transactions, queues, publisher_errors),
            name="publisher",
        )
        worker_threads = [
            threading.Thread(
                target=self._consume_transactions,
                args=(index, queues[index], processors[index], worker_errors),
                name=f"worker-{index}",
            )
            for index in range(self._num_workers)
        ]

        publisher_thread.start()
        for worker_thread in worker_threads:
            worker_thread.start()

        # Join point: every queue has received its end-of-stream marker
        # once the publisher returns, so every worker terminates.
        publisher_thread.join()
        for worker_thread in worker_threads:
            worker_thread.join()

        if publisher_errors:
            error = publisher_errors[0]
            raise DispatchError(f"publisher failed: {error}") from error

        for index, error in enumerate(worker_errors):
            if error is not None:
                raise DispatchError(f"worker {index} failed: {error}") from error

        return processors

    def _publish_transactions(
        self, transactions: Iterable[Transaction], queues: List[WorkerQueue], errors: List[Exception]
    ) -> None:
        """Route transactions to worker queues, then send end-of-stream to all of them."""
        published = 0
        try:
            for transaction in transactions:
                queues[self._router(transaction.client_id, self._num_workers)].publish_message(transaction)
                published += 1
        except Exception as e:
            logger.error(f"Publisher aborted after {published} transactions: {e}")
            errors.append(e)
        finally:
            for queue in queues:
                queue.publish_end_of_stream()
        logger.info(f"Publisher finished: {published} transactions routed")

    def _consume_transactions(
        self,
        index: int,
        queue: WorkerQueue,
        processor: TransactionProcessor,
        errors: List[Optional[Exception]],
    ) -> None:
        """Worker loop: drain queue into processor until end-of-stream."""
        while True:
            match queue.consume_message():
                case EndOfStream():
                    break
                case DataMessage(transaction=transaction):
                    # After a failure keep draining so a bounded queue never blocks the publisher.
                    if errors[index] is not None:
                        continue
                    try:
                        processor.apply(transaction)
                    except Exception as e:
                        logger.error(f"Worker {index} failed on {transaction}: {e}")
                        errors[index] = e

        logger.info(f"Worker {index} finished: {processor.stats}")
