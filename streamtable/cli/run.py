# ==============================================================================
# Run Command
# ==============================================================================
"""
Runs one Kafka table in the foreground, streaming into a JSON lines sink.

The table is registered with a single target table downstream, so the
streaming task always has a ready dependent. SIGINT/SIGTERM stop the table
gracefully: the in-flight round finishes, offsets are committed and the
readers are closed.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from streamtable.base.runner import BaseRunner
from streamtable.cli.shared import C, I, load_settings
from streamtable.core.table import KafkaTable
from streamtable.infrastructure.catalog import InMemoryCatalog, TargetTable
from streamtable.infrastructure.schedule_pool import SchedulePool
from streamtable.infrastructure.sinks.jsonl import JsonLinesSink
from streamtable.utils.config import Settings

logger = logging.getLogger(__name__)


class TableRunner(BaseRunner):
    """Foreground lifecycle of one KafkaTable."""

    def __init__(self, settings: Settings, output: Path | None = None, pool_size: int | None = None):
        super().__init__(log_level="DEBUG" if settings.debug else settings.log_level)
        self._settings = settings
        self._output = output
        self._pool_size = pool_size or settings.stream.schedule_pool_size
        self.table: KafkaTable | None = None
        self.schedule_pool: SchedulePool | None = None

    def build(self) -> KafkaTable:
        """Wire sink, catalog and schedule pool into a table."""
        sink = JsonLinesSink(self._output)
        catalog = InMemoryCatalog()
        catalog.add(
            TargetTable(f"{self._settings.table.full_name}_sink", sink=sink),
            source=self._settings.table.full_name,
        )
        self.schedule_pool = SchedulePool(self._pool_size)
        self.table = KafkaTable(self._settings, sink, catalog, self.schedule_pool)
        return self.table

    def _run(self) -> None:
        table = self.table or self.build()
        table.startup()
        logger.info("Streaming %s, press Ctrl+C to stop", table.name)
        self.wait_for_shutdown()

    def _cleanup(self) -> None:
        if self.table is not None:
            self.table.shutdown()
        if self.schedule_pool is not None:
            self.schedule_pool.shutdown()


def run_table(
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="JSON lines file to append to (default: stdout)"),
    ] = None,
    pool_size: Annotated[
        Optional[int],
        typer.Option("--pool-size", "-p", min=1, help="Background schedule pool threads"),
    ] = None,
) -> None:
    """Stream the configured Kafka table into a JSON lines sink until interrupted.

    Examples:
        streamtable run
        streamtable run --output events.jsonl
        streamtable run -o events.jsonl --pool-size 4
    """
    settings = load_settings()
    target = output or "stdout"
    print(f"  {C.BRIGHT_GREEN}{I.PLAY}{C.RESET} Streaming {settings.table.full_name} to {target}")

    TableRunner(settings, output=output, pool_size=pool_size).run()

    print(f"  {C.DIM}{I.STOP} Stopped {settings.table.full_name}{C.RESET}")
