# ==============================================================================
# Kafka Table
# ==============================================================================
"""
Lifecycle owner of one Kafka ingestion table.

KafkaTable ties together the reader pool, the streaming scheduler and the
sink:

- startup()  creates up to num_consumers readers (failures are logged and
             leave the slot empty) and starts the streaming task
- shutdown() cancels the table, waits for the in-flight round, returns the
             readers to the pool, drains it and closes every reader within
             CLEANUP_TIMEOUT_MS
- read()     direct bounded read from whatever readers are in the pool
- write()    produce rows into the table's single topic
- virtuals() describe the metadata columns every record carries

Each table logs through its own logger, streamtable.table.<database>.<name>,
which also receives librdkafka's log lines for the table's sessions.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, wait

from streamtable.base.dependencies import DependencyCatalog
from streamtable.base.reader import Reader
from streamtable.base.sinks import BaseSink
from streamtable.consumers.factory import create_reader
from streamtable.consumers.metrics import RoundMetrics
from streamtable.consumers.pool import NO_WAIT, ConsumerPool
from streamtable.consumers.round import rollback_readers
from streamtable.consumers.stream import BoundedRecordStream, merge_streams
from streamtable.core.dependencies import DependencyChecker
from streamtable.core.models import VIRTUAL_COLUMNS, KafkaRecord, VirtualColumn
from streamtable.core.scheduler import StreamingSession, StreamScheduler
from streamtable.infrastructure.schedule_pool import SchedulePool
from streamtable.producers.confluent import KafkaWriter
from streamtable.utils.config import Settings

logger = logging.getLogger(__name__)

# Longest shutdown waits for broker sessions to close
CLEANUP_TIMEOUT_MS = 3000

# (consumer_number, cancelled, log) -> Reader
ReaderFactory = Callable[[int, threading.Event, logging.Logger], Reader]
# Called once per reader right after its session is created
SessionCallback = Callable[[Reader], None]


class KafkaTable:
    """
    One ingestion table backed by a pool of reader sessions.

    Args:
        settings: Settings instance
        sink: Destination of streamed rows
        catalog: Catalog of the table's dependents
        schedule_pool: Shared pool running the streaming task
        reader_factory: Optional reader constructor; defaults to confluent
            readers built from settings
        on_session_created: Optional hook called with every new reader
        writer: Optional KafkaWriter used by write()
    """

    def __init__(
        self,
        settings: Settings,
        sink: BaseSink,
        catalog: DependencyCatalog,
        schedule_pool: SchedulePool,
        reader_factory: ReaderFactory | None = None,
        on_session_created: SessionCallback | None = None,
        writer: KafkaWriter | None = None,
    ):
        self.settings = settings
        self.name = settings.table.full_name
        self.log = logging.getLogger(f"streamtable.table.{self.name}")
        self.sink = sink

        self.session = StreamingSession()
        self.pool = ConsumerPool()
        self.metrics = RoundMetrics(log=self.log)
        self._readers: list[Reader] = []
        self._reader_factory = reader_factory or self._create_confluent_reader
        self._on_session_created = on_session_created
        self._writer = writer
        self._read_lock = threading.Lock()
        self._started = False
        self._shut_down = False

        self.scheduler = StreamScheduler(
            self.name,
            self.pool,
            sink,
            DependencyChecker(catalog),
            schedule_pool,
            self.session,
            max_block_size=settings.max_block_size,
            flush_interval_ms=settings.flush_interval_ms,
            poll_max_batch_size=settings.poll_max_batch_size,
            commit_every_batch=settings.kafka.commit_every_batch,
            metrics=self.metrics,
            log=self.log,
        )

    def _create_confluent_reader(
        self, consumer_number: int, cancelled: threading.Event, log: logging.Logger
    ) -> Reader:
        return create_reader(self.settings, consumer_number, cancelled, log=log)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Provision readers (best effort) and start streaming."""
        if self._started:
            return
        self._started = True
        self.sink.setup()

        num_consumers = self.settings.kafka.num_consumers
        for i in range(num_consumers):
            try:
                reader = self._reader_factory(i, self.session.cancelled, self.log)
            except Exception as e:
                self.log.error("Can't create reader %d of %s: %s", i, self.name, e)
                continue
            if self._on_session_created is not None:
                try:
                    self._on_session_created(reader)
                except Exception as e:
                    self.log.debug("on_session_created hook error: %s", e)
            self._readers.append(reader)
            self.pool.push(reader)
            self.session.created_consumers += 1

        self.log.info(
            "Started %s with %d of %d readers on %s",
            self.name,
            self.session.created_consumers,
            num_consumers,
            ", ".join(self.settings.kafka.topics),
        )
        self.scheduler.start()

    def shutdown(self) -> None:
        """Stop streaming and close every reader. Safe to call more than once."""
        if self._shut_down:
            return
        self._shut_down = True

        self.session.cancelled.set()
        self.scheduler.stop()
        self.metrics.log_final_summary()

        if not self._read_lock.acquire(timeout=CLEANUP_TIMEOUT_MS / 1000):
            self.log.warning("Direct read on %s did not finish before shutdown", self.name)
        else:
            self._read_lock.release()

        self.scheduler.release_readers()
        drained = []
        for _ in range(self.session.created_consumers):
            reader = self.pool.pop(NO_WAIT)
            if reader is None:
                break
            drained.append(reader)
        if len(drained) < len(self._readers):
            self.log.warning(
                "%d readers of %s were not in the pool at shutdown",
                len(self._readers) - len(drained),
                self.name,
            )

        try:
            self.sink.cleanup()
        except Exception as e:
            self.log.error("Sink cleanup failed for %s: %s", self.name, e)

        self.log.debug("Closing readers")
        self._close_readers(self._readers)
        self.log.debug("Readers closed")

    def _close_readers(self, readers: list[Reader]) -> None:
        if not readers:
            return
        executor = ThreadPoolExecutor(max_workers=len(readers), thread_name_prefix="KafkaCleanup")
        futures = {executor.submit(reader.close): reader for reader in readers}
        done, not_done = wait(futures, timeout=CLEANUP_TIMEOUT_MS / 1000)
        for future in done:
            error = future.exception()
            if error is not None:
                self.log.error("Closing %s failed: %s", futures[future].name, error)
        if not_done:
            self.log.warning(
                "%d readers did not close within %dms", len(not_done), CLEANUP_TIMEOUT_MS
            )
        executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Direct read / write
    # ------------------------------------------------------------------

    def read(self, max_records: int | None = None, timeout_ms: int | None = None) -> list[KafkaRecord]:
        """
        Read one bounded batch directly, bypassing streaming.

        Waits up to timeout_ms (default: the poll timeout) for a reader. When
        streaming holds every reader, or none were provisioned, returns an
        empty list.

        Args:
            max_records: Record target per reader (default: max_block_size)
            timeout_ms: Longest wait for a reader to become available

        Returns:
            Records from all checked-out readers, committed before returning
        """
        if self.session.created_consumers == 0 or self.session.is_cancelled:
            return []

        max_records = max_records or self.settings.max_block_size
        wait_ms = timeout_ms if timeout_ms is not None else self.settings.poll_timeout_ms

        with self._read_lock:
            readers = self._checkout(wait_ms)
            if not readers:
                return []
            try:
                streams = [
                    BoundedRecordStream(
                        reader,
                        max_records=max_records,
                        flush_interval_ms=self.settings.flush_interval_ms,
                        poll_max_batch_size=self.settings.poll_max_batch_size,
                        cancelled=self.session.cancelled,
                        log=self.log,
                    )
                    for reader in readers
                ]
                records: list[KafkaRecord] = []
                for block in merge_streams(streams):
                    records.extend(block)
            except Exception:
                rollback_readers(readers, self.log)
                raise
            else:
                for reader in readers:
                    try:
                        reader.commit()
                    except Exception as e:
                        self.log.error("Commit failed for %s: %s", reader.name, e)
                return records
            finally:
                for reader in readers:
                    self.pool.push(reader)

    def _checkout(self, wait_ms: int) -> list[Reader]:
        first = self.pool.pop(timeout=wait_ms / 1000 if wait_ms > 0 else NO_WAIT)
        if first is None:
            return []
        readers = [first]
        while len(readers) < self.session.created_consumers:
            reader = self.pool.pop(NO_WAIT)
            if reader is None:
                break
            readers.append(reader)
        return readers

    def write(self, rows: list[str], key: str | None = None) -> int:
        """
        Produce rows into the table's topic.

        Raises:
            TableWriteError: If the table has more than one topic
        """
        if self._writer is None:
            self._writer = KafkaWriter(self.settings, log=self.log)
        return self._writer.write(rows, key=key)

    @staticmethod
    def virtuals() -> list[VirtualColumn]:
        """Metadata columns available on every record."""
        return list(VIRTUAL_COLUMNS)
