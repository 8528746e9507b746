# ==============================================================================
# JSON Lines Sink
# ==============================================================================
"""
Sink writing each delivered row as one JSON object per line.

Writes to a file (appending) or to stdout. flush() fsyncs file output so a
round's offsets are only committed once its rows are on disk.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import IO

from streamtable.base.sinks import BaseSink
from streamtable.core.models import VALUE_COLUMN, VIRTUAL_COLUMNS

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = [column.name for column in VIRTUAL_COLUMNS] + [VALUE_COLUMN]


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonLinesSink(BaseSink):
    """
    JSON lines writer.

    Args:
        path: Output file; None or "-" writes to stdout
        columns: Columns each row carries. Defaults to every virtual column
            followed by the raw payload.
    """

    def __init__(self, path: str | Path | None = None, columns: list[str] | None = None):
        self._path = None if path in (None, "-") else Path(path)
        self._columns = list(columns) if columns else list(DEFAULT_COLUMNS)
        self._file: IO[str] | None = None
        self.rows_written = 0

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def path(self) -> Path | None:
        return self._path

    def setup(self) -> None:
        if self._file is not None:
            return
        if self._path is None:
            self._file = sys.stdout
        else:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")
        logger.info("JsonLinesSink writing to %s", self._path or "stdout")

    def write(self, rows: list[dict]) -> None:
        if self._file is None:
            self.setup()
        for row in rows:
            self._file.write(json.dumps(row, default=_json_default, ensure_ascii=False))
            self._file.write("\n")
        self.rows_written += len(rows)

    def flush(self) -> None:
        if self._file is None:
            return
        self._file.flush()
        if self._path is not None:
            os.fsync(self._file.fileno())

    def cleanup(self) -> None:
        if self._file is None:
            return
        self.flush()
        if self._path is not None:
            self._file.close()
        self._file = None
        logger.info("JsonLinesSink closed (%d rows written)", self.rows_written)
