# ==============================================================================
# Kafka Record Models
# ==============================================================================
"""
Pydantic models for records consumed from Kafka and the virtual columns
they expose to sinks.

A KafkaRecord carries the raw payload plus broker metadata. Payload decoding
is left to the sink; the record only knows how to project itself onto a list
of column names (virtual columns plus the raw ``_value``).
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

# Column carrying the raw message payload (row delimiter already stripped)
VALUE_COLUMN = "_value"


class VirtualColumn(BaseModel):
    """A metadata column available on every record."""

    name: str
    type: str

    model_config = {"frozen": True}


VIRTUAL_COLUMNS: list[VirtualColumn] = [
    VirtualColumn(name="_topic", type="String"),
    VirtualColumn(name="_key", type="String"),
    VirtualColumn(name="_offset", type="UInt64"),
    VirtualColumn(name="_partition", type="UInt64"),
    VirtualColumn(name="_timestamp", type="Nullable(DateTime)"),
    VirtualColumn(name="_timestamp_ms", type="Nullable(DateTime64(3))"),
    VirtualColumn(name="_headers.name", type="Array(String)"),
    VirtualColumn(name="_headers.value", type="Array(String)"),
]


class KafkaRecord(BaseModel):
    """
    A single message delivered by a Reader.

    Attributes:
        topic: Topic the message was read from
        partition: Partition index within the topic
        offset: Broker offset of the message
        key: Message key decoded as text (empty when absent)
        value: Raw payload decoded as text
        timestamp_ms: Broker timestamp in milliseconds, if the broker set one
        headers: Header (name, value) pairs in broker order
    """

    topic: str
    partition: int = Field(..., ge=0)
    offset: int = Field(..., ge=0)
    key: str = ""
    value: str = ""
    timestamp_ms: int | None = None
    headers: list[tuple[str, str]] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def timestamp(self) -> datetime | None:
        """Broker timestamp truncated to second precision."""
        if self.timestamp_ms is None:
            return None
        return datetime.fromtimestamp(self.timestamp_ms // 1000, tz=timezone.utc)

    @property
    def timestamp_with_ms(self) -> datetime | None:
        """Broker timestamp with millisecond precision."""
        if self.timestamp_ms is None:
            return None
        return datetime.fromtimestamp(self.timestamp_ms / 1000.0, tz=timezone.utc)

    def column_value(self, name: str):
        """Return the value of a virtual column or of ``_value``."""
        match name:
            case "_topic":
                return self.topic
            case "_key":
                return self.key
            case "_offset":
                return self.offset
            case "_partition":
                return self.partition
            case "_timestamp":
                return self.timestamp
            case "_timestamp_ms":
                return self.timestamp_with_ms
            case "_headers.name":
                return [header for header, _ in self.headers]
            case "_headers.value":
                return [value for _, value in self.headers]
            case "_value":
                return self.value
            case _:
                raise KeyError(f"Unknown column: {name}")

    def to_row(self, columns: list[str]) -> dict:
        """Project the record onto the given column names."""
        return {column: self.column_value(column) for column in columns}
