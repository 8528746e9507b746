# ==============================================================================
# Readers, Pool and Delivery
# ==============================================================================
"""
Reader sessions and the machinery that drains them.

Modules:
    buffered   - broker-agnostic reader with receive buffer and offset cursors
    confluent  - confluent-kafka reader
    factory    - librdkafka configuration and reader creation
    pool       - semaphore-gated reader pool
    stream     - bounded record streams and round-robin fan-in
    round      - delivery round with commit coordination
    metrics    - round throughput instrumentation
"""

from streamtable.consumers.buffered import BufferedReader
from streamtable.consumers.metrics import RoundMetrics
from streamtable.consumers.pool import NO_WAIT, ConsumerPool
from streamtable.consumers.round import DeliveryRound
from streamtable.consumers.stream import BoundedRecordStream, merge_streams

__all__ = [
    "NO_WAIT",
    "BoundedRecordStream",
    "BufferedReader",
    "ConsumerPool",
    "DeliveryRound",
    "RoundMetrics",
    "merge_streams",
]
