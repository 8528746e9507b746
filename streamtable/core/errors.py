# ==============================================================================
# Exceptions
# ==============================================================================
"""
Exception types raised by the ingestion engine.

Broker-side failures are not wrapped: they surface as
confluent_kafka.KafkaException from the reader or writer that hit them.
"""


class StreamTableError(Exception):
    """Base class for engine errors."""


class BrokenMessagesError(StreamTableError):
    """Raised when a fetch returns more unreadable messages than allowed."""

    def __init__(self, broken: int, allowed: int, last_error: str):
        super().__init__(
            f"{broken} broken messages in one fetch (allowed: {allowed}), last error: {last_error}"
        )
        self.broken = broken
        self.allowed = allowed


class TableWriteError(StreamTableError):
    """Raised when a table cannot accept writes."""
