# ==============================================================================
# Confluent Kafka Writer
# ==============================================================================
"""
Write path of a Kafka table, using confluent-kafka's Producer.

Rows are already-formatted payload strings. A table bound to more than one
topic can not be written to, since there is no rule for choosing a topic.
"""

import logging

from confluent_kafka import Producer

from streamtable.consumers.factory import apply_overrides
from streamtable.core.errors import TableWriteError
from streamtable.utils.config import Settings
from streamtable.utils.versions import get_streamtable_version

logger = logging.getLogger(__name__)

MAX_PRODUCE_ATTEMPTS = 5


def build_producer_config(settings: Settings, log: logging.Logger | None = None) -> dict:
    """
    Build confluent-kafka producer configuration.

    Args:
        settings: Settings instance
        log: Logger receiving librdkafka's own log lines

    Returns:
        Dict with confluent-kafka producer configuration
    """
    config = {
        "metadata.broker.list": settings.kafka.broker_list,
        "client.id": settings.client_id,
        "client.software.name": "streamtable",
        "client.software.version": get_streamtable_version(),
    }
    apply_overrides(config, settings)
    if log is not None:
        config["logger"] = log
    return config


class KafkaWriter:
    """
    Produce rows into the table's single topic.

    Args:
        settings: Settings instance
        producer: Optional pre-built Producer (mainly for tests)
        log: Optional logger override (the owning table's logger)

    Raises:
        TableWriteError: If the table has more than one topic
    """

    def __init__(
        self,
        settings: Settings,
        producer: Producer | None = None,
        log: logging.Logger | None = None,
    ):
        topics = settings.kafka.topics
        if len(topics) > 1:
            raise TableWriteError("Can't write to Kafka table with multiple topics!")

        self._log = log or logger
        self._topic = topics[0]
        self._row_delimiter = settings.kafka.row_delimiter
        self._flush_timeout = settings.poll_timeout_ms / 1000.0
        self._producer = producer or Producer(build_producer_config(settings, log=log))
        self._delivery_errors = 0

    @property
    def topic(self) -> str:
        return self._topic

    def _on_delivery(self, err, msg) -> None:
        if err is not None:
            self._delivery_errors += 1
            if self._delivery_errors <= 10:  # Only log first 10 errors
                self._log.error("Message delivery failed: %s", err)

    def write(self, rows: list[str], key: str | None = None) -> int:
        """
        Produce rows and flush.

        Args:
            rows: Payloads, one message each
            key: Optional message key applied to every row

        Returns:
            Number of messages still undelivered after the flush timeout
        """
        for row in rows:
            payload = row + self._row_delimiter if self._row_delimiter else row
            for attempt in range(MAX_PRODUCE_ATTEMPTS):
                try:
                    self._producer.produce(
                        self._topic, value=payload, key=key, on_delivery=self._on_delivery
                    )
                    break
                except BufferError:
                    if attempt == MAX_PRODUCE_ATTEMPTS - 1:
                        raise
                    # Queue full - serve delivery reports to make room
                    self._producer.poll(self._flush_timeout)

        remaining = self._producer.flush(self._flush_timeout)
        if remaining:
            self._log.warning("%d messages not delivered within %.1fs", remaining, self._flush_timeout)
        return remaining

    @property
    def delivery_errors(self) -> int:
        return self._delivery_errors
