# ==============================================================================
# Base Reader Abstract Class
# ==============================================================================
"""
Base class for broker reader sessions.

A reader is one consumer session bound to a fixed topic set. It owns a
receive buffer and tracks, per partition, how far records have been handed
out and how far offsets have been committed.
"""

from abc import ABC, abstractmethod

from streamtable.core.models import KafkaRecord


class Reader(ABC):
    """Base class for reader sessions."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client identity used in logs."""
        ...

    @property
    @abstractmethod
    def topics(self) -> list[str]:
        """Topics this reader is subscribed to."""
        ...

    @abstractmethod
    def fetch(self, max_records: int) -> list[KafkaRecord]:
        """
        Return up to max_records buffered records, polling the broker when
        the buffer is empty.

        Blocks at most for the configured poll timeout and returns early with
        an empty list once the owning table is cancelled. Records returned
        here count as delivered for the next commit().
        """
        ...

    @abstractmethod
    def commit(self) -> None:
        """
        Commit offsets of every record handed out by fetch().

        Does nothing when there is nothing new to commit.
        """
        ...

    @abstractmethod
    def rollback(self) -> None:
        """
        Undo fetch() back to the last commit so the records are read again.

        Called when records handed out were not delivered downstream.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Release the broker session.

        Called once during shutdown, after the reader has left the pool.
        """
        ...
