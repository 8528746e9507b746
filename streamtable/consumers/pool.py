# ==============================================================================
# Consumer Pool
# ==============================================================================
"""
Bounded pool of reader sessions with semaphore-gated checkout.

The semaphore count always equals the number of readers in the pool: push()
appends then releases, pop() acquires then removes. The mutex is held only
for the list append/remove, never while waiting on the semaphore, so a
blocked pop() can not stall a concurrent push().

Usage:
    pool = ConsumerPool()
    pool.push(reader)
    reader = pool.pop(timeout=1.0)   # None if nothing became available
    reader = pool.pop(NO_WAIT)       # None immediately if empty
    reader = pool.pop()              # blocks until a reader is pushed
"""

import threading

from streamtable.base.reader import Reader

# Passed as pop() timeout to fail immediately when the pool is empty
NO_WAIT = -1.0


class ConsumerPool:
    """Thread-safe collection of interchangeable readers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._semaphore = threading.Semaphore(0)
        self._buffers: list[Reader] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)

    @property
    def available(self) -> int:
        """Readers a NO_WAIT pop() could currently hand out."""
        return len(self)

    def push(self, reader: Reader) -> None:
        """Return a reader to the pool and wake one waiting pop()."""
        with self._lock:
            self._buffers.append(reader)
        self._semaphore.release()

    def pop(self, timeout: float = 0) -> Reader | None:
        """
        Check out one reader.

        Args:
            timeout: 0 waits indefinitely, a positive value waits up to that
                many seconds, NO_WAIT (any negative value) does not wait.

        Returns:
            The most recently pushed reader, or None if none became
            available in time.
        """
        if timeout == 0:
            acquired = self._semaphore.acquire()
        elif timeout > 0:
            acquired = self._semaphore.acquire(timeout=timeout)
        else:
            acquired = self._semaphore.acquire(blocking=False)

        if not acquired:
            return None

        with self._lock:
            return self._buffers.pop()
