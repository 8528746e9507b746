# ==============================================================================
# Confluent Kafka Reader
# ==============================================================================
"""
Reader implementation using confluent-kafka (librdkafka C wrapper).

Each reader owns one Consumer subscribed to the table's topics with manual
offset management: auto commit and auto offset store are disabled, so the
only offsets that ever reach the broker are the ones BufferedReader decided
are safe to commit.
"""

import logging
import threading

from confluent_kafka import TIMESTAMP_NOT_AVAILABLE, Consumer, KafkaError, TopicPartition

from streamtable.consumers.buffered import BufferedReader, TopicPartitionKey
from streamtable.core.models import KafkaRecord
from streamtable.utils.retry import retry_commit

logger = logging.getLogger(__name__)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class ConfluentReader(BufferedReader):
    """
    Confluent-kafka reader session.

    Args:
        consumer: Configured (not yet subscribed) confluent_kafka.Consumer
        row_delimiter: Character stripped from the end of each payload
        (remaining arguments as for BufferedReader)
    """

    def __init__(
        self,
        consumer: Consumer,
        name: str,
        topics: list[str],
        poll_timeout_ms: int,
        poll_max_batch_size: int,
        cancelled: threading.Event,
        skip_broken_messages: int = 0,
        row_delimiter: str = "",
        log: logging.Logger | None = None,
    ):
        super().__init__(
            name,
            topics,
            poll_timeout_ms,
            poll_max_batch_size,
            cancelled,
            skip_broken_messages=skip_broken_messages,
            log=log,
        )
        self._consumer = consumer
        self._row_delimiter = row_delimiter
        self._assignment: set[TopicPartitionKey] = set()
        self._commit = retry_commit(self._log)(self._commit_sync)

        self._consumer.subscribe(self._topics, on_assign=self._on_assign, on_revoke=self._on_revoke)

    @property
    def assignment(self) -> set[TopicPartitionKey]:
        return set(self._assignment)

    # ------------------------------------------------------------------
    # Rebalance callbacks (invoked from inside consume())
    # ------------------------------------------------------------------

    def _on_assign(self, consumer, partitions) -> None:
        self._assignment = {(p.topic, p.partition) for p in partitions}
        self._log.info(
            "%s assigned %d partitions: %s",
            self._name,
            len(partitions),
            [f"{p.topic}-{p.partition}" for p in partitions],
        )

    def _on_revoke(self, consumer, partitions) -> None:
        revoked = {(p.topic, p.partition) for p in partitions}
        self._assignment -= revoked
        self.drop_partitions(revoked)
        self._log.info("%s revoked %d partitions", self._name, len(partitions))

    # ------------------------------------------------------------------
    # BufferedReader hooks
    # ------------------------------------------------------------------

    def _poll(self, timeout_s: float, max_records: int) -> tuple[list[KafkaRecord], list[str]]:
        messages = self._consumer.consume(num_messages=max_records, timeout=timeout_s)

        records: list[KafkaRecord] = []
        errors: list[str] = []
        for msg in messages:
            error = msg.error()
            if error is not None:
                if error.code() == KafkaError._PARTITION_EOF:
                    continue
                errors.append(str(error))
                continue

            value = _decode(msg.value())
            if self._row_delimiter and value.endswith(self._row_delimiter):
                value = value[: -len(self._row_delimiter)]

            ts_type, ts_ms = msg.timestamp()
            headers = [(name, _decode(raw)) for name, raw in (msg.headers() or [])]

            records.append(
                KafkaRecord(
                    topic=msg.topic(),
                    partition=msg.partition(),
                    offset=msg.offset(),
                    key=_decode(msg.key()),
                    value=value,
                    timestamp_ms=None if ts_type == TIMESTAMP_NOT_AVAILABLE else ts_ms,
                    headers=headers,
                )
            )
        return records, errors

    def _commit_offsets(self, offsets: dict[TopicPartitionKey, int]) -> None:
        self._commit([TopicPartition(t, p, o) for (t, p), o in sorted(offsets.items())])

    def _commit_sync(self, partitions: list[TopicPartition]) -> None:
        self._consumer.commit(offsets=partitions, asynchronous=False)

    def _seek(self, positions: dict[TopicPartitionKey, int]) -> None:
        for (topic, partition), offset in sorted(positions.items()):
            if (topic, partition) not in self._assignment:
                continue
            self._consumer.seek(TopicPartition(topic, partition, offset))

    def close(self) -> None:
        """Unsubscribe and close the consumer session."""
        try:
            self._consumer.unsubscribe()
        finally:
            self._consumer.close()
        self._log.debug("Closed reader %s", self._name)
