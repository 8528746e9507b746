# ==============================================================================
# Streaming Scheduler
# ==============================================================================
"""
Background task that keeps a Kafka table streaming into its sink.

One invocation of the task:

    1. returns at once if nothing is registered downstream of the table
    2. loops while the table is not cancelled:
         - stops if a dependent is not ready
         - runs one DeliveryRound over every reader it holds
         - stops if the round stalled (nothing more to read right now)
         - stops once it has been running for max_work_duration_ms
    3. reschedules itself after reschedule_ms unless the table is cancelled

Exceptions inside the loop end the invocation; they are logged and the task
is rescheduled like any other run. Readers taken from the pool stay with the
scheduler across rounds and are handed back by release_readers() at shutdown.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

from streamtable.base.reader import Reader
from streamtable.base.sinks import BaseSink
from streamtable.consumers.metrics import RoundMetrics
from streamtable.consumers.pool import NO_WAIT, ConsumerPool
from streamtable.consumers.round import DeliveryRound
from streamtable.core.dependencies import DependencyChecker
from streamtable.infrastructure.schedule_pool import SchedulePool, TaskHandle

logger = logging.getLogger(__name__)

# Delay before the next invocation once an invocation ends
RESCHEDULE_MS = 500
# Longest one invocation keeps its worker thread
MAX_THREAD_WORK_DURATION_MS = 60000


@dataclass
class StreamingSession:
    """
    State shared between a table, its scheduler and in-flight reader fetches.

    Attributes:
        cancelled: Set once at shutdown, never cleared
        created_consumers: Readers successfully created at startup
        started_at: Monotonic start time of the current invocation
    """

    cancelled: threading.Event = field(default_factory=threading.Event)
    created_consumers: int = 0
    started_at: float = 0.0

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()


class StreamScheduler:
    """
    Cooperative streaming loop for one table.

    Args:
        table_name: Fully qualified table name, as known to the catalog
        pool: The table's reader pool
        sink: Destination of delivered rows
        checker: Readiness check over the table's dependents
        schedule_pool: Shared pool running the task
        session: The table's streaming session
        max_block_size: Record target per reader and round
        flush_interval_ms: Time box per reader and round
        poll_max_batch_size: Largest block fetched at once
        commit_every_batch: Commit after every block instead of once per round
        reschedule_ms: Delay between invocations
        max_work_duration_ms: Continuous run budget of one invocation
        metrics: Optional round metrics
        log: Optional logger override (the table's logger)
    """

    def __init__(
        self,
        table_name: str,
        pool: ConsumerPool,
        sink: BaseSink,
        checker: DependencyChecker,
        schedule_pool: SchedulePool,
        session: StreamingSession,
        max_block_size: int,
        flush_interval_ms: int,
        poll_max_batch_size: int,
        commit_every_batch: bool = False,
        reschedule_ms: int = RESCHEDULE_MS,
        max_work_duration_ms: int = MAX_THREAD_WORK_DURATION_MS,
        metrics: RoundMetrics | None = None,
        log: logging.Logger | None = None,
    ):
        self.table_name = table_name
        self._pool = pool
        self._sink = sink
        self._checker = checker
        self._schedule_pool = schedule_pool
        self._session = session
        self._max_block_size = max_block_size
        self._flush_interval_ms = flush_interval_ms
        self._poll_max_batch_size = poll_max_batch_size
        self._commit_every_batch = commit_every_batch
        self.reschedule_ms = reschedule_ms
        self.max_work_duration_ms = max_work_duration_ms
        self.metrics = metrics
        self._log = log or logger

        self._held: list[Reader] = []
        self._held_lock = threading.Lock()
        self._task: TaskHandle | None = None
        self.rounds_run = 0

    @property
    def task(self) -> TaskHandle | None:
        return self._task

    @property
    def held_readers(self) -> int:
        with self._held_lock:
            return len(self._held)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Create the background task and schedule its first run."""
        if self._task is None:
            self._task = self._schedule_pool.create_task(f"{self.table_name}.stream", self.run_once)
        self._task.activate_and_schedule()

    def stop(self) -> None:
        """Deactivate the task, waiting for an in-flight invocation."""
        if self._task is not None:
            self._task.deactivate()

    def release_readers(self) -> list[Reader]:
        """Return every held reader to the pool. Only safe once stopped."""
        with self._held_lock:
            released, self._held = self._held, []
        for reader in released:
            self._pool.push(reader)
        return released

    # ------------------------------------------------------------------
    # Task body
    # ------------------------------------------------------------------

    def run_once(self) -> None:
        """One invocation of the streaming task."""
        try:
            num_views = self._checker.count_dependents(self.table_name)
            if num_views:
                self._session.started_at = time.monotonic()

                while not self._session.is_cancelled:
                    if not self._checker.all_ready(self.table_name):
                        break

                    self._log.debug("Started streaming to %d attached views", num_views)

                    if self._stream_to_sinks():
                        self._log.debug("Stream(s) stalled. Reschedule.")
                        break

                    elapsed_ms = (time.monotonic() - self._session.started_at) * 1000
                    if elapsed_ms > self.max_work_duration_ms:
                        self._log.debug("Thread work duration limit exceeded. Reschedule.")
                        break
        except Exception:
            self._log.exception("Streaming to %s failed", self.table_name)

        if not self._session.is_cancelled and self._task is not None:
            self._task.schedule_after(self.reschedule_ms)

    def _stream_to_sinks(self) -> bool:
        """
        Run one delivery round over every held reader.

        Returns:
            True if the round stalled or there was nothing to read from
        """
        readers = self._borrow_readers()
        if not readers:
            self._log.debug("No readers available for %s", self.table_name)
            return True

        delivery = DeliveryRound(
            readers,
            self._sink,
            max_block_size=self._max_block_size,
            flush_interval_ms=self._flush_interval_ms,
            poll_max_batch_size=self._poll_max_batch_size,
            commit_every_batch=self._commit_every_batch,
            cancelled=self._session.cancelled,
            metrics=self.metrics,
            log=self._log,
        )
        stalled = delivery.run()
        self.rounds_run += 1
        return stalled

    def _borrow_readers(self) -> list[Reader]:
        """Take every reader currently in the pool, keeping those already held."""
        with self._held_lock:
            while True:
                reader = self._pool.pop(NO_WAIT)
                if reader is None:
                    break
                self._held.append(reader)
            return list(self._held)
