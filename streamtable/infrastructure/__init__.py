# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Concrete implementations the table engine runs on:

- schedule_pool.py - shared worker pool for rescheduled background tasks
- catalog.py - in-memory dependency catalog
- sinks/ - sink adapters (JSON lines)
"""

from streamtable.infrastructure.catalog import InMemoryCatalog, MaterializedView, TargetTable
from streamtable.infrastructure.schedule_pool import SchedulePool, TaskHandle
from streamtable.infrastructure.sinks import JsonLinesSink

__all__ = [
    # Catalog
    "InMemoryCatalog",
    "MaterializedView",
    "TargetTable",
    # Scheduling
    "SchedulePool",
    "TaskHandle",
    # Sinks
    "JsonLinesSink",
]
