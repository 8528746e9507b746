# ==============================================================================
# Confluent Kafka Reader
# ==============================================================================
"""
Confluent Kafka reader implementation.

Uses the confluent-kafka library (librdkafka C wrapper) for broker sessions.
"""

from streamtable.consumers.confluent.reader import ConfluentReader

__all__ = ["ConfluentReader"]
