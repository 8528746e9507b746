# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures and in-memory collaborators shared across test modules.

Provides:
- FakeReader: BufferedReader over an in-memory partition log
- RecordingSink: sink keeping every delivered row in memory
- make_records(): KafkaRecord factory
- An event log shared by readers and sinks, to assert commit/delivery order
"""

import threading

import pytest

from streamtable.base.sinks import BaseSink
from streamtable.consumers.buffered import BufferedReader
from streamtable.core.models import KafkaRecord
from streamtable.utils.config import KafkaSettings, Settings, StreamSettings, TableSettings

# ==============================================================================
# Helpers
# ==============================================================================


def make_records(
    count: int, topic: str = "events", partition: int = 0, start: int = 0
) -> list[KafkaRecord]:
    """Create count consecutive records of one partition."""
    return [
        KafkaRecord(
            topic=topic,
            partition=partition,
            offset=offset,
            key=f"k{offset}",
            value=f'{{"n": {offset}}}',
            timestamp_ms=1_700_000_000_000 + offset,
        )
        for offset in range(start, start + count)
    ]


class FakeReader(BufferedReader):
    """
    Reader over an in-memory broker log.

    Polling hands out the log in order; an empty log waits (cancellably) for
    the poll slice like a real broker would. Commits and seeks are recorded.
    """

    def __init__(
        self,
        name: str = "reader-0",
        records: list[KafkaRecord] | None = None,
        cancelled: threading.Event | None = None,
        poll_timeout_ms: int = 50,
        poll_max_batch_size: int = 100,
        skip_broken_messages: int = 0,
        events: list | None = None,
    ):
        super().__init__(
            name,
            ["events"],
            poll_timeout_ms,
            poll_max_batch_size,
            cancelled or threading.Event(),
            skip_broken_messages=skip_broken_messages,
        )
        self._log_records = list(records or [])
        self._position = 0
        self.events = events if events is not None else []
        self.commits: list[dict] = []
        self.seeks: list[dict] = []
        self.commit_error: Exception | None = None
        self.broken_per_poll: list[str] = []
        self.fetch_started = threading.Event()
        self.closed = False

    def append(self, records: list[KafkaRecord]) -> None:
        """Simulate new messages arriving at the broker."""
        self._log_records.extend(records)

    def fetch(self, max_records):
        self.fetch_started.set()
        return super().fetch(max_records)

    def _poll(self, timeout_s, max_records):
        errors = list(self.broken_per_poll)
        if self._position >= len(self._log_records):
            self._cancelled.wait(timeout_s)
            return [], errors
        batch = self._log_records[self._position : self._position + max_records]
        self._position += len(batch)
        return batch, errors

    def _commit_offsets(self, offsets):
        if self.commit_error is not None:
            raise self.commit_error
        self.commits.append(dict(offsets))
        self.events.append(("commit", self.name, dict(offsets)))

    def _seek(self, positions):
        self.seeks.append(dict(positions))
        indices = [
            i
            for i, record in enumerate(self._log_records)
            if positions.get((record.topic, record.partition)) == record.offset
        ]
        if indices:
            self._position = min(indices)

    def close(self):
        self.closed = True


class RecordingSink(BaseSink):
    """Sink keeping delivered rows in memory."""

    def __init__(self, columns: list[str] | None = None, events: list | None = None):
        self._columns = columns or ["_topic", "_partition", "_offset", "_value"]
        self.events = events if events is not None else []
        self.rows: list[dict] = []
        self.blocks: list[list[dict]] = []
        self.flushes = 0
        self.fail_on_write: Exception | None = None
        self.setup_called = False
        self.cleanup_called = False

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def setup(self) -> None:
        self.setup_called = True

    def write(self, rows: list[dict]) -> None:
        if self.fail_on_write is not None:
            raise self.fail_on_write
        self.rows.extend(rows)
        self.blocks.append(rows)
        self.events.append(("write", [(r["_partition"], r["_offset"]) for r in rows]))

    def flush(self) -> None:
        self.flushes += 1
        self.events.append(("flush",))

    def cleanup(self) -> None:
        self.cleanup_called = True

    def offsets(self) -> list[int]:
        return [row["_offset"] for row in self.rows]


def make_settings(**kafka_overrides) -> Settings:
    """Build Settings without touching the environment."""
    kafka_values = {
        "broker_list": "localhost:9092",
        "topic_list": "events",
        "group_name": "streamtable-test",
    }
    kafka_values.update(kafka_overrides)
    return Settings(
        kafka=KafkaSettings(**kafka_values),
        stream=StreamSettings(),
        table=TableSettings(database="test", name="queue"),
    )


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture()
def cancelled():
    """A fresh per-table cancellation flag."""
    return threading.Event()


@pytest.fixture()
def event_log():
    """Ordered log of sink writes/flushes and reader commits."""
    return []


@pytest.fixture()
def sink(event_log):
    return RecordingSink(events=event_log)


@pytest.fixture()
def settings():
    return make_settings()
