# ==============================================================================
# Bounded Record Streams
# ==============================================================================
"""
Time- and count-bounded record streams over readers, and their fan-in.

A BoundedRecordStream yields blocks of records fetched from one reader until
either max_records have been produced or flush_interval has elapsed. Hitting
the time cap first marks the stream stalled. Streams are lazy and can be
iterated only once.

merge_streams() interleaves several streams block by block (round robin) on
the calling thread. Order within one reader is preserved; order across
readers is not specified. Because the consumer of the merged iterator writes
each block before asking for the next one, every block a stream has yielded
has been handed to the sink by the time that stream fetches again. The
intermediate commit mode relies on this, calling before_commit (the sink's
flush) so committed offsets never run ahead of durable rows.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator

from streamtable.base.reader import Reader
from streamtable.core.models import KafkaRecord

logger = logging.getLogger(__name__)


class BoundedRecordStream:
    """
    One reader's contribution to a delivery round.

    Args:
        reader: Reader to pull from
        max_records: Record count target for this stream
        flush_interval_ms: Time box for the whole stream
        poll_max_batch_size: Largest block requested per fetch
        intermediate_commit: Commit the reader before each fetch that follows a
            delivered block
        before_commit: Called ahead of every intermediate commit; failures
            propagate like sink errors
        cancelled: Table cancellation flag; a cancelled stream ends early
        log: Optional logger override
    """

    def __init__(
        self,
        reader: Reader,
        max_records: int,
        flush_interval_ms: int,
        poll_max_batch_size: int,
        intermediate_commit: bool = False,
        before_commit: Callable[[], None] | None = None,
        cancelled: threading.Event | None = None,
        log: logging.Logger | None = None,
    ):
        self.reader = reader
        self._max_records = max_records
        self._flush_interval = flush_interval_ms / 1000.0
        self._poll_max_batch_size = poll_max_batch_size
        self._intermediate_commit = intermediate_commit
        self._before_commit = before_commit
        self._cancelled = cancelled
        self._log = log or logger

        self.records_read = 0
        self.stalled = False
        self._started = False

    def __iter__(self) -> Iterator[list[KafkaRecord]]:
        if self._started:
            raise RuntimeError(f"Stream for {self.reader.name} has already been consumed")
        self._started = True
        return self._blocks()

    def _blocks(self) -> Iterator[list[KafkaRecord]]:
        start = time.monotonic()
        uncommitted = False
        while self.records_read < self._max_records:
            if self._cancelled is not None and self._cancelled.is_set():
                break
            if time.monotonic() - start >= self._flush_interval:
                self.stalled = True
                break

            if self._intermediate_commit and uncommitted:
                if self._before_commit is not None:
                    self._before_commit()
                self._commit_quietly()
                uncommitted = False

            want = min(self._poll_max_batch_size, self._max_records - self.records_read)
            block = self.reader.fetch(want)
            if not block:
                continue

            self.records_read += len(block)
            uncommitted = True
            yield block

    def _commit_quietly(self) -> None:
        try:
            self.reader.commit()
        except Exception as e:
            self._log.error("Intermediate commit failed for %s: %s", self.reader.name, e)


def merge_streams(streams: Iterable[BoundedRecordStream]) -> Iterator[list[KafkaRecord]]:
    """Round-robin fan-in of record blocks until every stream is exhausted."""
    active = [iter(stream) for stream in streams]
    while active:
        still_active = []
        for blocks in active:
            block = next(blocks, None)
            if block is None:
                continue
            still_active.append(blocks)
            yield block
        active = still_active
