# ==============================================================================
# Tests for BufferedReader
# ==============================================================================
"""
Tests for the broker-agnostic reader: offset cursors, cancellable polling,
rollback and partition drops.
"""

import threading
import time

import pytest

from streamtable.core.errors import BrokenMessagesError

from conftest import FakeReader, make_records


class TestCursors:
    def test_fetch_advances_stored_not_committed(self):
        reader = FakeReader(records=make_records(5))

        reader.fetch(3)

        assert reader.pending_offsets == {("events", 0): 3}
        assert reader.committed_offsets == {}
        assert reader.buffered == 2

    def test_commit_moves_pending_to_committed(self):
        reader = FakeReader(records=make_records(5))
        reader.fetch(3)

        reader.commit()

        assert reader.committed_offsets == {("events", 0): 3}
        assert reader.pending_offsets == {}

    def test_failed_commit_keeps_pending(self):
        reader = FakeReader(records=make_records(5))
        reader.fetch(3)
        reader.commit_error = RuntimeError("nope")

        try:
            reader.commit()
        except RuntimeError:
            pass

        assert reader.pending_offsets == {("events", 0): 3}
        assert reader.committed_offsets == {}

    def test_zero_records_requested(self):
        reader = FakeReader(records=make_records(5))
        assert reader.fetch(0) == []
        assert reader.buffered == 0


class TestPolling:
    def test_empty_fetch_waits_for_poll_timeout(self):
        reader = FakeReader(poll_timeout_ms=150)
        start = time.monotonic()

        assert reader.fetch(10) == []
        assert time.monotonic() - start >= 0.14

    def test_cancellation_ends_blocking_fetch(self):
        cancelled = threading.Event()
        reader = FakeReader(cancelled=cancelled, poll_timeout_ms=30_000)
        threading.Timer(0.1, cancelled.set).start()

        start = time.monotonic()
        assert reader.fetch(10) == []
        assert time.monotonic() - start < 2.0

    def test_broken_messages_within_limit_are_skipped(self, caplog):
        reader = FakeReader(records=make_records(2), skip_broken_messages=2)
        reader.broken_per_poll = ["bad payload"]

        assert len(reader.fetch(10)) == 2
        assert any("Skipped 1 broken messages" in r.message for r in caplog.records)


class TestRollback:
    def test_rollback_rewinds_to_last_commit(self):
        reader = FakeReader(records=make_records(6))
        reader.fetch(2)
        reader.commit()
        reader.fetch(2)

        reader.rollback()

        assert reader.seeks == [{("events", 0): 2}]
        assert reader.pending_offsets == {}
        assert [r.offset for r in reader.fetch(10)] == [2, 3, 4, 5]

    def test_rollback_without_commit_forgets_partition(self):
        reader = FakeReader(records=make_records(3))
        reader.fetch(1)

        reader.rollback()

        assert reader.seeks == [{("events", 0): 0}]
        assert reader.pending_offsets == {}

    def test_rollback_after_too_many_broken_messages(self):
        reader = FakeReader(records=make_records(5))
        reader.broken_per_poll = ["bad message"]

        with pytest.raises(BrokenMessagesError):
            reader.fetch(10)
        reader.rollback()

        assert reader.seeks == [{("events", 0): 0}]
        reader.broken_per_poll = []
        assert [r.offset for r in reader.fetch(10)] == [0, 1, 2, 3, 4]

    def test_rollback_with_nothing_fetched(self):
        reader = FakeReader()
        reader.rollback()
        assert reader.seeks == []


class TestDropPartitions:
    def test_drop_forgets_buffer_and_cursors(self):
        records = make_records(3, partition=0) + make_records(3, partition=1)
        reader = FakeReader(records=records)
        reader.fetch(4)

        reader.drop_partitions({("events", 1)})

        assert ("events", 1) not in reader.pending_offsets
        assert reader.buffered == 0

    def test_drop_nothing(self):
        reader = FakeReader(records=make_records(3))
        reader.fetch(1)
        reader.drop_partitions(set())
        assert reader.buffered == 2
