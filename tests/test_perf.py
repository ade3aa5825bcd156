from __future__ import annotations

from pathlib import Path

import numpy as np

from overlapcheck.perf import (
    benchmark_aggregate,
    benchmark_statistic,
    capture_profile,
    profile_application,
)
from overlapcheck.template import TestParameters


def test_benchmark_statistic_returns_statistics() -> None:
    bits = np.random.default_rng(3).integers(0, 2, size=1032 * 4, dtype=np.uint8)

    stats = benchmark_statistic(bits, TestParameters(stream_length=1032 * 4), repeat=2)

    assert set(stats) == {"min", "max", "mean"}
    assert stats["max"] >= stats["min"]


def test_benchmark_aggregate_returns_statistics() -> None:
    stats = benchmark_aggregate([0.1, 0.5, None, 0.9] * 10, repeat=2)

    assert set(stats) == {"min", "max", "mean"}
    assert stats["mean"] >= 0.0


def test_capture_profile_returns_profile_output() -> None:
    with capture_profile() as (app, exporter):
        app._load_config  # attribute access to ensure object used

    profile_output = exporter()

    assert "function calls" in profile_output


def test_profile_application_reports_pipeline(tmp_path: Path) -> None:
    config_path = tmp_path / "config.ini"
    config_path.write_text(
        "[parameters]\nstream_length = 1032\nstreams = 2\n\n[output]\nwrite_results = false\n",
        encoding="utf-8",
    )
    data_path = tmp_path / "data.txt"
    data_path.write_text("0110" * 516, encoding="utf-8")

    output = profile_application(data_path, config_path)

    assert "cumulative" in output or "function calls" in output
