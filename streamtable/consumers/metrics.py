# ==============================================================================
# Delivery Round Metrics
# ==============================================================================
"""
Instrumentation for delivery rounds.

Each round has two timed stages:

    1. copy   - fetch from readers and write blocks into the sink (incl. flush)
    2. commit - commit delivered offsets on every participating reader

RoundMetrics records those timings and provides:

- Per-round INFO log with stage-level timings
- Periodic throughput summary (configurable interval, default 30s)
- Cumulative stats tracking, including stall and commit failure counts
- Final summary on shutdown

Usage:
    metrics = RoundMetrics(log=table_logger)
    metrics.record_round(records=..., readers=..., stalled=..., copy_ms=..., commit_ms=...)
    ...
    metrics.log_final_summary()
"""

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RoundMetrics:
    """
    Throughput and timing statistics for one table's delivery rounds.

    This is a composition object: the scheduler owns one and feeds it after
    every round. It never raises into the caller except from on_summary,
    which is guarded.
    """

    def __init__(
        self,
        summary_interval_seconds: float = 30.0,
        on_summary: Callable[[], None] | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Initialize round metrics.

        Args:
            summary_interval_seconds: How often to log throughput summaries
            on_summary: Optional callback invoked during periodic summaries
            log: Optional logger override. Defaults to this module's logger.
        """
        self._summary_interval = summary_interval_seconds
        self._on_summary = on_summary
        self._log = log or logger

        # Cumulative stats (lifetime of this RoundMetrics instance)
        self._total_records = 0
        self._total_rounds = 0
        self._total_stalled = 0
        self._total_commit_failures = 0
        self._cum_copy_ms = 0.0
        self._cum_commit_ms = 0.0
        self._start_time = time.monotonic()

        # Period stats (reset each summary interval)
        self._period_records = 0
        self._period_rounds = 0
        self._period_stalled = 0
        self._period_copy_ms = 0.0
        self._period_commit_ms = 0.0
        self._last_summary_time = time.monotonic()

    @property
    def total_records(self) -> int:
        return self._total_records

    @property
    def total_rounds(self) -> int:
        return self._total_rounds

    def record_round(
        self,
        records: int,
        readers: int,
        stalled: bool,
        copy_ms: float,
        commit_ms: float,
        commit_failures: int = 0,
    ) -> None:
        """
        Record one finished delivery round.

        Logs per-round timing at INFO level when records were delivered
        (DEBUG for empty rounds). Triggers periodic throughput summary when
        the configured interval has elapsed.

        Args:
            records: Records handed to the sink
            readers: Readers that took part
            stalled: Whether any reader hit its time box
            copy_ms: Time spent fetching and writing, in milliseconds
            commit_ms: Time spent committing, in milliseconds
            commit_failures: Readers whose commit failed
        """
        level = logging.INFO if records else logging.DEBUG
        self._log.log(
            level,
            "Round: %s records from %d readers%s | copy=%.*fms commit=%.*fms",
            f"{records:,}",
            readers,
            " (stalled)" if stalled else "",
            _precision(copy_ms),
            copy_ms,
            _precision(commit_ms),
            commit_ms,
        )

        # Update cumulative stats
        self._total_records += records
        self._total_rounds += 1
        self._total_stalled += int(stalled)
        self._total_commit_failures += commit_failures
        self._cum_copy_ms += copy_ms
        self._cum_commit_ms += commit_ms

        # Update period stats
        self._period_records += records
        self._period_rounds += 1
        self._period_stalled += int(stalled)
        self._period_copy_ms += copy_ms
        self._period_commit_ms += commit_ms

        # Check if periodic summary is due
        now = time.monotonic()
        if now - self._last_summary_time >= self._summary_interval:
            self._log_summary(now)

    def _log_summary(self, now: float) -> None:
        """Log periodic throughput summary and reset period counters."""
        elapsed = now - self._last_summary_time
        if elapsed <= 0 or self._period_rounds == 0:
            return

        records_per_sec = self._period_records / elapsed
        avg_copy_ms = self._period_copy_ms / self._period_rounds
        avg_commit_ms = self._period_commit_ms / self._period_rounds

        self._log.info(
            "Throughput (%.1fs): %s records/sec | rounds=%d stalled=%d | "
            "avg_copy=%.*fms avg_commit=%.*fms",
            elapsed,
            f"{records_per_sec:,.0f}",
            self._period_rounds,
            self._period_stalled,
            _precision(avg_copy_ms),
            avg_copy_ms,
            _precision(avg_commit_ms),
            avg_commit_ms,
        )

        if self._on_summary:
            try:
                self._on_summary()
            except Exception as e:
                self._log.debug("on_summary callback error: %s", e)

        # Reset period counters
        self._period_records = 0
        self._period_rounds = 0
        self._period_stalled = 0
        self._period_copy_ms = 0.0
        self._period_commit_ms = 0.0
        self._last_summary_time = now

    def log_final_summary(self) -> None:
        """
        Log final summary on shutdown.

        Should be called once the streaming task has been deactivated.
        """
        total_elapsed = time.monotonic() - self._start_time
        if self._total_rounds == 0:
            self._log.info("Final: no rounds run (%.1fs elapsed)", total_elapsed)
            return

        overall_rps = self._total_records / total_elapsed if total_elapsed > 0 else 0
        avg_copy_ms = self._cum_copy_ms / self._total_rounds
        avg_commit_ms = self._cum_commit_ms / self._total_rounds

        self._log.info(
            "Final: %s records in %d rounds over %.1fs (%s records/sec) | "
            "stalled=%d commit_failures=%d | avg_copy=%.*fms avg_commit=%.*fms",
            f"{self._total_records:,}",
            self._total_rounds,
            total_elapsed,
            f"{overall_rps:,.0f}",
            self._total_stalled,
            self._total_commit_failures,
            _precision(avg_copy_ms),
            avg_copy_ms,
            _precision(avg_commit_ms),
            avg_commit_ms,
        )


def _precision(ms: float) -> int:
    """Return decimal precision for millisecond values.

    >= 10ms  → 0 decimals (e.g., 85ms)
    >= 1ms   → 1 decimal  (e.g., 3.2ms)
    < 1ms    → 2 decimals (e.g., 0.45ms)
    """
    if ms >= 10:
        return 0
    elif ms >= 1:
        return 1
    else:
        return 2
