# ==============================================================================
# Tests for RoundMetrics
# ==============================================================================
"""
Tests for the RoundMetrics class, focusing on the record_round() method and
its integration with periodic summaries and final summary.
"""

import logging
import time
from unittest.mock import MagicMock

import pytest

from streamtable.consumers.metrics import RoundMetrics, _precision

# ==============================================================================
# _precision helper
# ==============================================================================


class TestPrecision:
    """Tests for the _precision helper function."""

    def test_large_values_zero_decimals(self):
        assert _precision(10.0) == 0
        assert _precision(85.3) == 0

    def test_medium_values_one_decimal(self):
        assert _precision(1.0) == 1
        assert _precision(3.2) == 1

    def test_small_values_two_decimals(self):
        assert _precision(0.5) == 2
        assert _precision(0.01) == 2


# ==============================================================================
# record_round - field accumulation
# ==============================================================================


class TestRecordRound:
    """Tests for the record_round method."""

    def test_single_recording(self):
        """A single call accumulates cumulative and period stats."""
        rm = RoundMetrics()
        rm.record_round(records=800, readers=2, stalled=False, copy_ms=5.0, commit_ms=3.0)

        assert rm.total_records == 800
        assert rm.total_rounds == 1
        assert rm._cum_copy_ms == 5.0
        assert rm._cum_commit_ms == 3.0
        assert rm._period_records == 800
        assert rm._period_stalled == 0

    def test_multiple_recordings_accumulate(self):
        """Multiple calls accumulate correctly."""
        rm = RoundMetrics()
        rm.record_round(records=800, readers=2, stalled=False, copy_ms=5.0, commit_ms=3.0)
        rm.record_round(
            records=10, readers=2, stalled=True, copy_ms=10.0, commit_ms=4.0, commit_failures=1
        )

        assert rm.total_records == 810
        assert rm.total_rounds == 2
        assert rm._total_stalled == 1
        assert rm._total_commit_failures == 1
        assert rm._cum_copy_ms == 15.0
        assert rm._cum_commit_ms == 7.0

    def test_round_logged_at_info(self, caplog):
        rm = RoundMetrics()
        with caplog.at_level(logging.INFO):
            rm.record_round(records=1500, readers=3, stalled=True, copy_ms=12.0, commit_ms=0.4)

        message = caplog.records[-1].message
        assert "1,500 records from 3 readers (stalled)" in message
        assert "copy=12ms" in message
        assert "commit=0.40ms" in message

    def test_empty_round_logged_at_debug(self, caplog):
        rm = RoundMetrics()
        with caplog.at_level(logging.INFO):
            rm.record_round(records=0, readers=1, stalled=True, copy_ms=1.0, commit_ms=0.0)
        assert not [r for r in caplog.records if "Round:" in r.message]

    def test_custom_logger(self, caplog):
        table_log = logging.getLogger("streamtable.table.test.queue")
        rm = RoundMetrics(log=table_log)
        with caplog.at_level(logging.INFO):
            rm.record_round(records=5, readers=1, stalled=False, copy_ms=1.0, commit_ms=1.0)
        assert caplog.records[-1].name == "streamtable.table.test.queue"


# ==============================================================================
# _log_summary - periodic summaries
# ==============================================================================


class TestLogSummary:
    """Tests for periodic throughput summaries."""

    def test_summary_logged_after_interval(self, caplog):
        rm = RoundMetrics(summary_interval_seconds=0.01)
        rm.record_round(records=100, readers=1, stalled=False, copy_ms=5.0, commit_ms=3.0)

        time.sleep(0.02)

        with caplog.at_level(logging.INFO):
            rm.record_round(records=100, readers=1, stalled=True, copy_ms=5.0, commit_ms=3.0)

        summaries = [r.message for r in caplog.records if r.message.startswith("Throughput")]
        assert len(summaries) == 1
        assert "rounds=2 stalled=1" in summaries[0]
        assert "avg_copy=" in summaries[0]
        assert "avg_commit=" in summaries[0]

    def test_summary_resets_period_counters(self):
        """After summary, period counters are reset but cumulative ones persist."""
        rm = RoundMetrics(summary_interval_seconds=0.01)
        rm.record_round(records=100, readers=1, stalled=False, copy_ms=5.0, commit_ms=3.0)
        time.sleep(0.02)
        rm.record_round(records=100, readers=1, stalled=False, copy_ms=5.0, commit_ms=3.0)

        assert rm._period_records == 0
        assert rm._period_rounds == 0
        assert rm._period_copy_ms == 0.0
        assert rm.total_records == 200

    def test_on_summary_called(self):
        callback = MagicMock()
        rm = RoundMetrics(summary_interval_seconds=0.01, on_summary=callback)
        time.sleep(0.02)
        rm.record_round(records=1, readers=1, stalled=False, copy_ms=1.0, commit_ms=1.0)
        callback.assert_called_once()

    def test_on_summary_error_swallowed(self):
        callback = MagicMock(side_effect=RuntimeError("boom"))
        rm = RoundMetrics(summary_interval_seconds=0.01, on_summary=callback)
        time.sleep(0.02)
        rm.record_round(records=1, readers=1, stalled=False, copy_ms=1.0, commit_ms=1.0)
        callback.assert_called_once()


# ==============================================================================
# log_final_summary
# ==============================================================================


class TestFinalSummary:
    """Tests for the shutdown summary."""

    def test_no_rounds(self, caplog):
        rm = RoundMetrics()
        with caplog.at_level(logging.INFO):
            rm.log_final_summary()
        assert "no rounds run" in caplog.records[-1].message

    def test_with_rounds(self, caplog):
        rm = RoundMetrics()
        rm.record_round(records=50, readers=2, stalled=True, copy_ms=2.0, commit_ms=1.0)
        rm.record_round(
            records=50, readers=2, stalled=False, copy_ms=4.0, commit_ms=1.0, commit_failures=2
        )

        with caplog.at_level(logging.INFO):
            rm.log_final_summary()

        message = caplog.records[-1].message
        assert message.startswith("Final: 100 records in 2 rounds")
        assert "stalled=1 commit_failures=2" in message
        assert "avg_copy=3.0ms" in message

    @pytest.mark.parametrize("interval", [0.0, 30.0])
    def test_final_summary_independent_of_interval(self, interval, caplog):
        rm = RoundMetrics(summary_interval_seconds=interval)
        rm.record_round(records=5, readers=1, stalled=False, copy_ms=1.0, commit_ms=1.0)
        with caplog.at_level(logging.INFO):
            rm.log_final_summary()
        assert rm.total_records == 5
        assert caplog.records[-1].message.startswith("Final: 5 records")
