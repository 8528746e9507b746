# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.

Table-level settings (KAFKA_*) override the server-wide streaming defaults
(STREAM_*). The effective values used by readers and delivery rounds are
exposed as properties on Settings so callers never repeat the fallback rules.
"""

import socket
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()

MAX_CONSUMERS = 16

# Keep librdkafka's pre-fetch queue at least this deep
DEFAULT_QUEUED_MIN_MESSAGES = 100000


def parse_topics(topic_list: str) -> list[str]:
    """Split a comma-separated topic list and trim each name."""
    return [topic.strip() for topic in topic_list.split(",")]


class KafkaSettings(BaseSettings):
    """Per-table Kafka engine settings."""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    broker_list: str = Field(..., description="Comma-separated broker addresses")
    topic_list: str = Field(..., description="Comma-separated topic names")
    group_name: str = Field(..., description="Consumer group identity")
    client_id: str = Field(default="", description="Client id (derived from host and table if empty)")
    format_name: str = Field(default="JSONEachRow", description="Record format name")
    row_delimiter: str = Field(default="", description="Single character closing each message")
    schema_name: str = Field(default="", description="Format schema, if the format needs one")

    num_consumers: int = Field(default=1, description="Number of reader sessions (1-16)")
    max_block_size: Optional[int] = Field(
        default=None, description="Records per delivery round and reader"
    )
    poll_max_batch_size: Optional[int] = Field(
        default=None, description="Maximum records returned by one broker poll"
    )
    poll_timeout_ms: Optional[int] = Field(default=None, description="Broker poll timeout")
    flush_interval_ms: Optional[int] = Field(
        default=None, description="Time box for one reader's batch in a delivery round"
    )
    commit_every_batch: bool = Field(
        default=False, description="Commit after every fetched batch instead of once per round"
    )
    skip_broken_messages: int = Field(
        default=0, description="Unreadable messages tolerated per fetch"
    )

    # Free-form librdkafka properties; underscores are mapped to dots
    librdkafka: dict[str, str] = Field(default_factory=dict)
    # Per-topic librdkafka overrides keyed by topic name
    topic_config: dict[str, dict[str, str]] = Field(default_factory=dict)

    @field_validator("num_consumers")
    @classmethod
    def _check_num_consumers(cls, value: int) -> int:
        if value > MAX_CONSUMERS:
            raise ValueError(f"Number of consumers can not be bigger than {MAX_CONSUMERS}")
        if value < 1:
            raise ValueError("Number of consumers can not be lower than 1")
        return value

    @field_validator("max_block_size", "poll_max_batch_size")
    @classmethod
    def _check_positive(cls, value: Optional[int], info) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError(f"{info.field_name} can not be lower than 1")
        return value

    @field_validator("row_delimiter")
    @classmethod
    def _check_row_delimiter(cls, value: str) -> str:
        if len(value) > 1:
            raise ValueError("row_delimiter must be a single character")
        return value

    @property
    def topics(self) -> list[str]:
        """Topic names parsed from topic_list."""
        return parse_topics(self.topic_list)


class StreamSettings(BaseSettings):
    """Server-wide streaming defaults used when a table does not override them."""

    model_config = SettingsConfigDict(env_prefix="STREAM_")

    max_insert_block_size: int = Field(default=1048576, description="Rows per insert block")
    max_block_size: int = Field(default=65536, description="Rows per read block")
    poll_timeout_ms: int = Field(default=500, description="Broker poll timeout")
    flush_interval_ms: int = Field(default=7500, description="Flush interval for streaming")
    schedule_pool_size: int = Field(default=16, description="Threads in the shared scheduler")


class TableSettings(BaseSettings):
    """Identity of the ingestion table."""

    model_config = SettingsConfigDict(env_prefix="TABLE_")

    database: str = Field(default="default", description="Database name")
    name: str = Field(default="kafka_queue", description="Table name")

    @property
    def full_name(self) -> str:
        return f"{self.database}.{self.name}"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    table: TableSettings = Field(default_factory=TableSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def max_block_size(self) -> int:
        """Records one reader may contribute to a single delivery round."""
        if self.kafka.max_block_size is not None:
            return self.kafka.max_block_size
        return max(1, self.stream.max_insert_block_size // self.kafka.num_consumers)

    @property
    def poll_max_batch_size(self) -> int:
        """Records requested from the broker per poll, never above max_block_size."""
        batch_size = (
            self.kafka.poll_max_batch_size
            if self.kafka.poll_max_batch_size is not None
            else self.stream.max_block_size
        )
        return min(batch_size, self.max_block_size)

    @property
    def poll_timeout_ms(self) -> int:
        if self.kafka.poll_timeout_ms is not None:
            return self.kafka.poll_timeout_ms
        return self.stream.poll_timeout_ms

    @property
    def flush_interval_ms(self) -> int:
        if self.kafka.flush_interval_ms is not None:
            return self.kafka.flush_interval_ms
        return self.stream.flush_interval_ms

    @property
    def queued_min_messages(self) -> int:
        return max(self.max_block_size, DEFAULT_QUEUED_MIN_MESSAGES)

    @property
    def client_id(self) -> str:
        """Configured client id, or one derived from host and table identity."""
        if self.kafka.client_id:
            return self.kafka.client_id
        return f"streamtable-{socket.getfqdn()}-{self.table.database}-{self.table.name}"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
