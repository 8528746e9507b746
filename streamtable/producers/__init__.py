"""Write path of Kafka tables."""

from streamtable.producers.confluent import KafkaWriter, build_producer_config

__all__ = ["KafkaWriter", "build_producer_config"]
