# ==============================================================================
# Background Schedule Pool
# ==============================================================================
"""
Shared thread pool for cooperatively rescheduled background tasks.

A task is a plain callable wrapped in a TaskHandle. Each invocation runs to
completion on a worker thread and returns; re-running it is an explicit
schedule() (as soon as possible) or schedule_after(ms) (via the pool's delay
thread). No task ever runs on two threads at once, and a task scheduled
while it is running is queued to run again once the current run ends.

Usage:
    pool = SchedulePool(size=4)
    task = pool.create_task("orders.stream", run_round)
    task.activate_and_schedule()
    ...
    task.deactivate()   # waits for an in-flight run
    pool.shutdown()
"""

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class TaskHandle:
    """
    Scheduling state of one background task.

    Tasks start deactivated; schedule calls on a deactivated task are
    ignored and return False.
    """

    def __init__(self, pool: "SchedulePool", name: str, fn: Callable[[], None]):
        self._pool = pool
        self.name = name
        self._fn = fn

        self._lock = threading.Lock()
        # Held for the duration of one run
        self._exec_lock = threading.Lock()
        self._deactivated = True
        self._scheduled = False
        self._executing = False
        self._delay_seq: int | None = None

    @property
    def deactivated(self) -> bool:
        with self._lock:
            return self._deactivated

    @property
    def delayed(self) -> bool:
        with self._lock:
            return self._delay_seq is not None

    def activate(self) -> None:
        with self._lock:
            self._deactivated = False

    def activate_and_schedule(self) -> bool:
        self.activate()
        return self.schedule()

    def schedule(self) -> bool:
        """Run as soon as a worker is free. False if already queued or deactivated."""
        with self._lock:
            if self._deactivated or self._scheduled:
                return False
            self._scheduled = True
            self._delay_seq = None
            if self._executing:
                return True
        self._pool._submit(self)
        return True

    def schedule_after(self, ms: float) -> bool:
        """Run after ms milliseconds, replacing any earlier delayed run."""
        with self._lock:
            if self._deactivated or self._scheduled:
                return False
            seq = self._pool._delay(self, ms / 1000.0)
            self._delay_seq = seq
        return True

    def deactivate(self) -> None:
        """Cancel pending runs and wait for an in-flight run to finish."""
        with self._lock:
            self._deactivated = True
            self._scheduled = False
            self._delay_seq = None
        with self._exec_lock:
            pass

    def _fire_delayed(self, seq: int) -> None:
        with self._lock:
            if self._delay_seq != seq:
                return
            self._delay_seq = None
        self.schedule()

    def _execute(self) -> None:
        with self._exec_lock:
            with self._lock:
                if self._deactivated or not self._scheduled:
                    return
                self._scheduled = False
                self._executing = True

            start = time.monotonic()
            try:
                self._fn()
            except Exception:
                logger.exception("Task %s failed", self.name)
            finally:
                with self._lock:
                    self._executing = False
                    rerun = self._scheduled and not self._deactivated

            elapsed_ms = (time.monotonic() - start) * 1000
            if elapsed_ms > 1000:
                logger.debug("Task %s ran for %.0fms", self.name, elapsed_ms)

        if rerun:
            self._pool._submit(self)


class SchedulePool:
    """
    Worker threads plus one delay thread shared by many tasks.

    Args:
        size: Number of worker threads
        thread_name_prefix: Prefix for worker thread names
    """

    def __init__(self, size: int = 16, thread_name_prefix: str = "BgSchPool"):
        if size < 1:
            raise ValueError("Schedule pool size must be at least 1")
        self.size = size
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=thread_name_prefix)

        self._cond = threading.Condition()
        self._heap: list[tuple[float, int, TaskHandle]] = []
        self._seq = itertools.count()
        self._shutdown = False
        self._delay_thread = threading.Thread(
            target=self._delay_loop, name=f"{thread_name_prefix}Delay", daemon=True
        )
        self._delay_thread.start()

    def create_task(self, name: str, fn: Callable[[], None]) -> TaskHandle:
        """Wrap fn as a task on this pool. The task starts deactivated."""
        return TaskHandle(self, name, fn)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the delay thread and the workers. Pending delayed runs are dropped."""
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
            self._heap.clear()
            self._cond.notify_all()
        self._delay_thread.join()
        self._executor.shutdown(wait=wait)
        logger.debug("Schedule pool shut down")

    def _submit(self, task: TaskHandle) -> None:
        with self._cond:
            if self._shutdown:
                logger.debug("Schedule pool is shut down, dropping run of %s", task.name)
                return
            self._executor.submit(task._execute)

    def _delay(self, task: TaskHandle, delay_s: float) -> int:
        with self._cond:
            seq = next(self._seq)
            heapq.heappush(self._heap, (time.monotonic() + delay_s, seq, task))
            self._cond.notify()
            return seq

    def _delay_loop(self) -> None:
        while True:
            with self._cond:
                while not self._shutdown:
                    if not self._heap:
                        self._cond.wait()
                        continue
                    wait_s = self._heap[0][0] - time.monotonic()
                    if wait_s <= 0:
                        break
                    self._cond.wait(wait_s)
                if self._shutdown:
                    return
                _, seq, task = heapq.heappop(self._heap)
            task._fire_delayed(seq)
