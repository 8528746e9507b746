# ==============================================================================
# Reader Factory
# ==============================================================================
"""
Factory functions for creating reader sessions.

Builds the librdkafka configuration for one consumer slot from Settings and
wraps the resulting Consumer in a ConfluentReader. Creation failures
(confluent_kafka.KafkaException) are left to the caller: at startup they are
logged and the slot simply stays empty.
"""

import logging
import threading

from confluent_kafka import Consumer

from streamtable.base.reader import Reader
from streamtable.consumers.confluent.reader import ConfluentReader
from streamtable.utils.config import Settings
from streamtable.utils.versions import get_streamtable_version

logger = logging.getLogger(__name__)


def librdkafka_key(key: str) -> str:
    """
    Map a settings key to a librdkafka property name.

    Settings keys use underscores (session_timeout_ms); librdkafka uses dots
    (session.timeout.ms). log_level is the one property whose underscore is
    genuine.
    """
    if key == "log_level":
        return key
    return key.replace("_", ".")


def apply_overrides(config: dict, settings: Settings) -> None:
    """Apply user-supplied librdkafka properties, global first then per topic."""
    for key, value in settings.kafka.librdkafka.items():
        config[librdkafka_key(key)] = value

    for topic in settings.kafka.topics:
        for key, value in settings.kafka.topic_config.get(topic, {}).items():
            config[librdkafka_key(key)] = value


def build_consumer_config(
    settings: Settings,
    consumer_number: int,
    log: logging.Logger | None = None,
) -> dict:
    """
    Build confluent-kafka consumer configuration for one reader slot.

    Args:
        settings: Settings instance
        consumer_number: Index of the slot, appended to the client id when
            the table runs more than one reader
        log: Logger receiving librdkafka's own log lines

    Returns:
        Dict with confluent-kafka consumer configuration
    """
    kafka = settings.kafka
    client_id = settings.client_id
    if kafka.num_consumers > 1:
        client_id = f"{client_id}-{consumer_number}"

    config = {
        "metadata.broker.list": kafka.broker_list,
        "group.id": kafka.group_name,
        "client.id": client_id,
        "client.software.name": "streamtable",
        "client.software.version": get_streamtable_version(),
        # If no offset is stored for this group, read everything from the start
        "auto.offset.reset": "smallest",
        # Deep pre-fetch queue so one round's block is not drained from a cold queue
        "queued.min.messages": settings.queued_min_messages,
    }

    apply_overrides(config, settings)

    # Offsets are managed by the engine; users can not change these
    config.update(
        {
            "enable.auto.commit": False,
            "enable.auto.offset.store": False,
            "enable.partition.eof": False,
        }
    )

    if log is not None:
        config["logger"] = log

    return config


def create_reader(
    settings: Settings,
    consumer_number: int,
    cancelled: threading.Event,
    log: logging.Logger | None = None,
) -> Reader:
    """
    Create and subscribe one reader session.

    Args:
        settings: Settings instance
        consumer_number: Index of the reader slot (0-based)
        cancelled: The table's cancellation flag
        log: Table logger, shared by the reader and librdkafka

    Returns:
        Subscribed ConfluentReader

    Raises:
        confluent_kafka.KafkaException: If the client can not be created
    """
    config = build_consumer_config(settings, consumer_number, log=log)
    consumer = Consumer(config)

    return ConfluentReader(
        consumer,
        name=config["client.id"],
        topics=settings.kafka.topics,
        poll_timeout_ms=settings.poll_timeout_ms,
        poll_max_batch_size=settings.poll_max_batch_size,
        cancelled=cancelled,
        skip_broken_messages=settings.kafka.skip_broken_messages,
        row_delimiter=settings.kafka.row_delimiter,
        log=log,
    )
