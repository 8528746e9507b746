# ==============================================================================
# Base Sink Abstract Class
# ==============================================================================
"""
Base class for stream sinks.

Sinks receive blocks of rows from delivery rounds and persist them. Rows are
dicts keyed by the sink's declared columns, projected from KafkaRecord
(virtual columns plus the raw ``_value`` payload).
"""

from abc import ABC, abstractmethod


class BaseSink(ABC):
    """Base class for stream sinks."""

    @property
    @abstractmethod
    def columns(self) -> list[str]:
        """Column names each delivered row carries, in order."""
        ...

    @abstractmethod
    def setup(self) -> None:
        """
        Initialize sink resources.

        Called once before the sink starts receiving data.
        """
        ...

    @abstractmethod
    def write(self, rows: list[dict]) -> None:
        """
        Write a block of rows.

        Args:
            rows: Rows from one reader fetch, in partition order
        """
        ...

    def flush(self) -> None:
        """
        Make everything written so far durable.

        Called at the end of each delivery round, before offsets are
        committed. Sinks that write synchronously need not override it.
        """

    @abstractmethod
    def cleanup(self) -> None:
        """
        Release sink resources.

        Called when the table is shutting down.
        """
        ...
