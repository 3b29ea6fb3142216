from dataclasses import dataclass
from queue import Queue
from typing import Union

from models import Transaction


@dataclass(frozen=True)
class DataMessage:
    transaction: Transaction


@dataclass(frozen=True)
class EndOfStream:
    pass


Message = Union[DataMessage, EndOfStream]

END_OF_STREAM = EndOfStream()


class WorkerQueue:
    """
    FIFO queue between the producer and exactly one worker.
    Messages are either DataMessage or the EndOfStream marker, which the
    producer sends once after its last transaction.
    All synchronization is internal - callers never need to lock.
    """

    def __init__(self, maxsize: int = 0):
        # maxsize 0 means unbounded; otherwise publish blocks while the worker lags.
        self._queue: Queue[Message] = Queue(maxsize=maxsize)

    def publish_message(self, transaction: Transaction) -> None:
        """Add transaction to the queue. Blocks while a bounded queue is full."""
        self._queue.put(DataMessage(transaction))

    def publish_end_of_stream(self) -> None:
        """Signal no more transactions will be published."""
        self._queue.put(END_OF_STREAM)

    def consume_message(self) -> Message:
        """Get next message, blocking until one is available."""
        return self._queue.get()

    def is_empty(self) -> bool:
        return self._queue.empty()

    def size(self) -> int:
        """Return approximate queue size."""
        return self._queue.qsize()
