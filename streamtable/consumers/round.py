# ==============================================================================
# Delivery Round
# ==============================================================================
"""
One bounded batch-drain-and-commit cycle across a set of readers.

A round builds one BoundedRecordStream per reader, merges them block by
block, writes every block into the sink, flushes the sink and only then
commits each reader. With intermediate commit enabled the streams also commit
before each follow-up fetch, flushing the sink first; since a block is written
before the merged iterator moves on, those commits never cover records that
are not yet durable in the sink.

Commit failures are logged and never abort the round. Sink failures do: every
reader is rolled back to its last commit and the error propagates, so the
lost records are delivered again on the next round.
"""

import logging
import threading
import time

from streamtable.base.reader import Reader
from streamtable.base.sinks import BaseSink
from streamtable.consumers.metrics import RoundMetrics
from streamtable.consumers.stream import BoundedRecordStream, merge_streams

logger = logging.getLogger(__name__)


class DeliveryRound:
    """
    Copy records from readers into a sink, then commit.

    Args:
        readers: Readers taking part; the caller keeps ownership
        sink: Destination of the delivered rows
        max_block_size: Record target per reader
        flush_interval_ms: Time box per reader
        poll_max_batch_size: Largest block fetched at once
        commit_every_batch: Enable intermediate commits
        cancelled: Table cancellation flag
        metrics: Optional RoundMetrics fed after the round
        log: Optional logger override
    """

    def __init__(
        self,
        readers: list[Reader],
        sink: BaseSink,
        max_block_size: int,
        flush_interval_ms: int,
        poll_max_batch_size: int,
        commit_every_batch: bool = False,
        cancelled: threading.Event | None = None,
        metrics: RoundMetrics | None = None,
        log: logging.Logger | None = None,
    ):
        self._readers = list(readers)
        self._sink = sink
        self._log = log or logger
        self._metrics = metrics
        self.streams = [
            BoundedRecordStream(
                reader,
                max_records=max_block_size,
                flush_interval_ms=flush_interval_ms,
                poll_max_batch_size=poll_max_batch_size,
                intermediate_commit=commit_every_batch,
                before_commit=sink.flush,
                cancelled=cancelled,
                log=self._log,
            )
            for reader in self._readers
        ]
        self.records_delivered = 0
        self.commit_failures = 0
        self._done = False

    @property
    def stalled(self) -> bool:
        """True if any participating reader hit its time box."""
        return any(stream.stalled for stream in self.streams)

    def run(self) -> bool:
        """
        Execute the round.

        Returns:
            True if any reader stalled

        Raises:
            RuntimeError: If the round was already run
            Exception: Whatever the sink raises while writing or flushing
        """
        if self._done:
            raise RuntimeError("A delivery round can only run once")
        self._done = True

        if not self.streams:
            return False

        columns = self._sink.columns
        copy_start = time.perf_counter()
        try:
            for block in merge_streams(self.streams):
                self._sink.write([record.to_row(columns) for record in block])
                self.records_delivered += len(block)
            self._sink.flush()
        except Exception:
            rollback_readers(self._readers, self._log)
            raise
        copy_ms = (time.perf_counter() - copy_start) * 1000

        commit_start = time.perf_counter()
        self._commit_all()
        commit_ms = (time.perf_counter() - commit_start) * 1000

        stalled = self.stalled
        if self._metrics is not None:
            self._metrics.record_round(
                records=self.records_delivered,
                readers=len(self.streams),
                stalled=stalled,
                copy_ms=copy_ms,
                commit_ms=commit_ms,
                commit_failures=self.commit_failures,
            )
        return stalled

    def _commit_all(self) -> None:
        """Commit every reader, stalled or not."""
        for reader in self._readers:
            try:
                reader.commit()
            except Exception as e:
                self.commit_failures += 1
                self._log.error("Commit failed for %s: %s", reader.name, e)


def rollback_readers(readers: list[Reader], log: logging.Logger | None = None) -> None:
    """Rewind every reader to its last commit after a failed copy."""
    log = log or logger
    for reader in readers:
        try:
            reader.rollback()
        except Exception as e:
            log.error("Rollback failed for %s: %s", reader.name, e)
