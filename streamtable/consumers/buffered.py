# ==============================================================================
# Buffered Reader
# ==============================================================================
"""
Broker-agnostic reader logic: receive buffer, offset cursors and cancellable
polling.

Concrete readers only implement _poll() and _commit_offsets(); everything
that decides *which* offsets may be committed lives here so it is shared by
the confluent-kafka reader and the in-memory readers used in tests.

Offsets follow Kafka's convention: the committed value for a partition is
the offset of the next record to read, i.e. last delivered offset + 1.
"""

import logging
import threading
import time
from abc import abstractmethod
from collections import deque

from streamtable.base.reader import Reader
from streamtable.core.errors import BrokenMessagesError
from streamtable.core.models import KafkaRecord

logger = logging.getLogger(__name__)

# Longest single broker wait, so cancellation is observed promptly
POLL_SLICE_MS = 100

TopicPartitionKey = tuple[str, int]


class BufferedReader(Reader):
    """
    Reader with a local receive buffer and per-partition offset cursors.

    Args:
        name: Client identity used in logs
        topics: Topics the session is subscribed to
        poll_timeout_ms: Longest time fetch() waits for the broker
        poll_max_batch_size: Records requested per broker poll
        cancelled: Per-table cancellation flag, checked between poll slices
        skip_broken_messages: Unreadable messages tolerated per poll
        log: Optional logger override (the owning table's logger)
    """

    def __init__(
        self,
        name: str,
        topics: list[str],
        poll_timeout_ms: int,
        poll_max_batch_size: int,
        cancelled: threading.Event,
        skip_broken_messages: int = 0,
        log: logging.Logger | None = None,
    ):
        self._name = name
        self._topics = list(topics)
        self._poll_timeout = poll_timeout_ms / 1000.0
        self._poll_max_batch_size = poll_max_batch_size
        self._cancelled = cancelled
        self._skip_broken_messages = skip_broken_messages
        self._log = log or logger

        self._buffer: deque[KafkaRecord] = deque()
        # Next offset to commit per partition (last delivered + 1)
        self._stored: dict[TopicPartitionKey, int] = {}
        # Last offset successfully committed per partition
        self._committed: dict[TopicPartitionKey, int] = {}
        # First offset handed out since the last commit, per partition
        self._rewind: dict[TopicPartitionKey, int] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def topics(self) -> list[str]:
        return list(self._topics)

    @property
    def buffered(self) -> int:
        """Records polled from the broker but not yet handed out."""
        return len(self._buffer)

    @property
    def committed_offsets(self) -> dict[TopicPartitionKey, int]:
        return dict(self._committed)

    @property
    def pending_offsets(self) -> dict[TopicPartitionKey, int]:
        """Offsets delivered but not yet committed."""
        return {tp: off for tp, off in self._stored.items() if self._committed.get(tp) != off}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch(self, max_records: int) -> list[KafkaRecord]:
        if max_records <= 0:
            return []
        if not self._buffer:
            self._fill_buffer()

        records: list[KafkaRecord] = []
        while self._buffer and len(records) < max_records:
            record = self._buffer.popleft()
            records.append(record)
            tp = (record.topic, record.partition)
            self._rewind.setdefault(tp, record.offset)
            self._stored[tp] = record.offset + 1
        return records

    def commit(self) -> None:
        pending = self.pending_offsets
        if not pending:
            return
        self._commit_offsets(pending)
        self._committed.update(pending)
        for tp in pending:
            self._rewind.pop(tp, None)
        self._log.debug(
            "Committed %s for %s",
            ", ".join(f"{t}[{p}]@{o}" for (t, p), o in sorted(pending.items())),
            self._name,
        )

    def rollback(self) -> None:
        """
        Forget everything handed out since the last commit.

        Used when delivered records were lost downstream: the buffer is
        discarded and the session is rewound so those records, and anything
        buffered behind them, are fetched again.
        """
        positions = dict(self._rewind)
        for record in self._buffer:
            positions.setdefault((record.topic, record.partition), record.offset)

        for tp in self._rewind:
            if tp in self._committed:
                self._stored[tp] = self._committed[tp]
            else:
                self._stored.pop(tp, None)
        self._rewind.clear()
        self._buffer.clear()

        if positions:
            self._seek(positions)
            self._log.warning(
                "Rewound %s to %s",
                self._name,
                ", ".join(f"{t}[{p}]@{o}" for (t, p), o in sorted(positions.items())),
            )

    # ------------------------------------------------------------------
    # Rebalance support
    # ------------------------------------------------------------------

    def drop_partitions(self, partitions: set[TopicPartitionKey]) -> None:
        """Forget buffered records and cursors of partitions no longer assigned."""
        if not partitions:
            return
        before = len(self._buffer)
        self._buffer = deque(r for r in self._buffer if (r.topic, r.partition) not in partitions)
        for tp in partitions:
            self._stored.pop(tp, None)
            self._committed.pop(tp, None)
            self._rewind.pop(tp, None)
        dropped = before - len(self._buffer)
        if dropped:
            self._log.info("Dropped %d buffered records from revoked partitions", dropped)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fill_buffer(self) -> None:
        """Poll in short slices until records arrive, the timeout passes or
        the table is cancelled."""
        deadline = time.monotonic() + self._poll_timeout
        slice_s = POLL_SLICE_MS / 1000.0
        while not self._cancelled.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            records, errors = self._poll(min(remaining, slice_s), self._poll_max_batch_size)
            # Buffered before any raise so rollback() can seek back to them
            self._buffer.extend(records)
            if errors:
                if len(errors) > self._skip_broken_messages:
                    raise BrokenMessagesError(len(errors), self._skip_broken_messages, errors[-1])
                self._log.warning(
                    "Skipped %d broken messages on %s: %s", len(errors), self._name, errors[-1]
                )
            if records:
                return

    @abstractmethod
    def _poll(self, timeout_s: float, max_records: int) -> tuple[list[KafkaRecord], list[str]]:
        """
        Poll the broker once.

        Returns:
            Tuple of (records in partition order, error descriptions of
            messages that could not be read)
        """
        ...

    @abstractmethod
    def _commit_offsets(self, offsets: dict[TopicPartitionKey, int]) -> None:
        """Synchronously commit the given next-to-read offsets."""
        ...

    @abstractmethod
    def _seek(self, positions: dict[TopicPartitionKey, int]) -> None:
        """Make the next poll of each partition start at the given offset."""
        ...
