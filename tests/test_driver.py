"""Unit tests for :mod:`overlapcheck.driver`."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

from overlapcheck.driver import DriverState, OverlappingTemplateDriver, run_streams
from overlapcheck.errors import InconsistentStateError, LifecycleError
from overlapcheck.template import TestParameters

M = 1032


def _streams(count: int, substrings: int = 2, seed: int = 11) -> list[np.ndarray]:
    rng = np.random.default_rng(seed)
    return [rng.integers(0, 2, size=M * substrings, dtype=np.uint8) for _ in range(count)]


def _params(streams: int, **overrides) -> TestParameters:
    return TestParameters(stream_length=M * 2, num_streams=streams, **overrides)


def test_full_lifecycle_collects_one_p_value_per_stream() -> None:
    driver = OverlappingTemplateDriver()
    assert driver.configure(_params(3))
    assert driver.state is DriverState.READY

    for bits in _streams(3):
        driver.iterate(bits)
    assert driver.state is DriverState.ACCUMULATING

    metrics = driver.finalize()

    assert driver.state is DriverState.FINALIZED
    assert len(metrics) == 1
    assert driver.tally().count == 3
    assert metrics[0].sample_count == driver.tally().valid_p_values


def test_iterate_before_configure_raises() -> None:
    driver = OverlappingTemplateDriver()

    with pytest.raises(LifecycleError):
        driver.iterate(_streams(1)[0])


def test_finalize_without_streams_raises() -> None:
    driver = OverlappingTemplateDriver()
    driver.configure(_params(1))

    with pytest.raises(LifecycleError):
        driver.finalize()


def test_configure_twice_raises() -> None:
    driver = OverlappingTemplateDriver()
    driver.configure(_params(1))

    with pytest.raises(LifecycleError):
        driver.configure(_params(1))


def test_configure_rejects_missing_parameters() -> None:
    driver = OverlappingTemplateDriver()

    with pytest.raises(LifecycleError):
        driver.configure(None)  # type: ignore[arg-type]


def test_iterate_rejects_missing_stream() -> None:
    driver = OverlappingTemplateDriver()
    driver.configure(_params(1))

    with pytest.raises(LifecycleError):
        driver.iterate(None)  # type: ignore[arg-type]


def test_iterate_after_finalize_raises() -> None:
    driver = OverlappingTemplateDriver()
    driver.configure(_params(1))
    driver.iterate(_streams(1)[0])
    driver.finalize()

    with pytest.raises(LifecycleError):
        driver.iterate(_streams(1)[0])


@pytest.mark.parametrize("template_length", [1, 17])
def test_unsupported_template_length_disables_test(
    template_length: int, caplog: pytest.LogCaptureFixture, tmp_path: Path
) -> None:
    driver = OverlappingTemplateDriver()

    with caplog.at_level(logging.WARNING):
        enabled = driver.configure(_params(1, template_length=template_length))

    assert enabled is False
    assert driver.state is DriverState.DISABLED
    assert "Disabling test OverlappingTemplate" in caplog.text
    assert driver.iterate(_streams(1)[0]) is None
    assert driver.finalize(tmp_path) == ()
    assert not (tmp_path / "OverlappingTemplate").exists()


def test_stream_count_mismatch_is_inconsistent() -> None:
    driver = OverlappingTemplateDriver()
    driver.configure(_params(3))
    for bits in _streams(2):
        driver.iterate(bits)

    with pytest.raises(InconsistentStateError):
        driver.finalize()


def test_concurrent_run_matches_sequential_run() -> None:
    streams = _streams(12)

    sequential = run_streams(streams, _params(12), max_workers=1)
    concurrent = run_streams(streams, _params(12), max_workers=4)

    assert sequential.metrics == concurrent.metrics
    assert sequential.tally() == concurrent.tally()


def test_iterate_many_preserves_stream_order() -> None:
    streams = _streams(6)
    driver = OverlappingTemplateDriver()
    driver.configure(_params(6))

    results = driver.iterate_many(streams, max_workers=3)

    expected = [run_streams([bits], _params(1)).tally() for bits in streams]
    assert len(results) == 6
    assert [1 if stat.record.success else 0 for stat in results] == [
        tally.successes for tally in expected
    ]


def test_finalize_writes_reports(tmp_path: Path) -> None:
    driver = run_streams(_streams(4), _params(4, partitions=2), output_dir=tmp_path)

    paths = driver.report_paths
    assert paths is not None
    assert paths.directory == tmp_path / "OverlappingTemplate"
    assert paths.stats.exists()
    assert len(paths.results.read_text(encoding="utf-8").splitlines()) == 4
    assert [path.name for path in paths.data] == ["data1.txt", "data2.txt"]
    assert len(driver.metrics) == 2


def test_reset_returns_to_unconfigured() -> None:
    driver = run_streams(_streams(1), _params(1))

    driver.reset()

    assert driver.state is DriverState.UNCONFIGURED
    assert driver.tally().count == 0
    with pytest.raises(LifecycleError):
        _ = driver.parameters


def test_random_streams_keep_the_pass_proportion() -> None:
    rng = np.random.default_rng(20241019)
    substrings = 100
    streams = (rng.integers(0, 2, size=M * substrings, dtype=np.uint8) for _ in range(300))

    driver = run_streams(
        streams,
        TestParameters(stream_length=M * substrings, num_streams=300),
        max_workers=4,
    )

    metrics = driver.metrics[0]
    assert metrics.sample_count == 300
    assert metrics.proportion_min <= metrics.pass_count <= metrics.proportion_max
    assert not metrics.proportion_failure
