"""Test timing helpers.

Run:
    pytest tests/test_profiler.py -v
"""

import logging
import time

import pytest

from paintmix.utils.profiler import synchronize_and_time, timer


def test_timer_reports_to_sink():
    timings = {}
    with timer("render", sink=timings.__setitem__):
        time.sleep(0.01)
    assert timings["render"] >= 0.005


def test_timer_logs_without_sink(caplog):
    with caplog.at_level(logging.INFO, logger="paintmix.utils.profiler"):
        with timer("evaluate"):
            pass
    assert "evaluate:" in caplog.text


def test_timer_reports_on_exception():
    timings = {}
    with pytest.raises(RuntimeError):
        with timer("failing", sink=timings.__setitem__):
            raise RuntimeError("boom")
    assert "failing" in timings


def test_synchronize_and_time():
    result, elapsed = synchronize_and_time(sum, [1, 2, 3])
    assert result == 6
    assert elapsed >= 0.0
