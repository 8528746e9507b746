"""
Core ingestion engine: records, dependency checks, the streaming scheduler
and the table lifecycle.
"""

from streamtable.core.errors import BrokenMessagesError, StreamTableError, TableWriteError
from streamtable.core.models import VALUE_COLUMN, VIRTUAL_COLUMNS, KafkaRecord, VirtualColumn

__all__ = [
    "BrokenMessagesError",
    "KafkaRecord",
    "StreamTableError",
    "TableWriteError",
    "VALUE_COLUMN",
    "VIRTUAL_COLUMNS",
    "VirtualColumn",
]
