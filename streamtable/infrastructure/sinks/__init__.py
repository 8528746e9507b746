"""Sink adapters."""

from streamtable.infrastructure.sinks.jsonl import DEFAULT_COLUMNS, JsonLinesSink

__all__ = ["DEFAULT_COLUMNS", "JsonLinesSink"]
