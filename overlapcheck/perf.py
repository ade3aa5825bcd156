"""Performance helpers for benchmarking and profiling the test pipeline."""

from __future__ import annotations

import cProfile
import io
import pstats
import statistics
import timeit
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, Optional

from .analysis import aggregate
from .app import OverlapCheckApp
from .template.base import TestParameters
from .template.statistic import compute_statistic
from .template.table import probability_table
from .template.utils import BitsLike, as_bit_array


def _summarise(runs: list[float]) -> Mapping[str, float]:
    return {
        "min": min(runs),
        "max": max(runs),
        "mean": statistics.fmean(runs),
    }


def benchmark_statistic(
    bits: BitsLike, params: TestParameters, *, repeat: int = 5
) -> Mapping[str, float]:
    """Benchmark :func:`compute_statistic` for a single stream."""

    array = as_bit_array(bits)
    table = probability_table(
        params.template_length, params.substring_length, params.degrees_of_freedom
    )
    timer = timeit.Timer(lambda: compute_statistic(array, params, table=table))
    return _summarise(timer.repeat(repeat=repeat, number=1))


def benchmark_aggregate(
    p_values: Iterable[Optional[float]], *, repeat: int = 5, alpha: float = 0.01
) -> Mapping[str, float]:
    """Benchmark :func:`aggregate` on ``p_values``."""

    cached = tuple(p_values)
    timer = timeit.Timer(lambda: aggregate(cached, alpha=alpha))
    return _summarise(timer.repeat(repeat=repeat, number=1))


def profile_application(
    input_path: Path, config_path: Path, *, output_dir: Path | None = None, repeat: int = 1
) -> str:
    """Profile the end-to-end application pipeline using :mod:`cProfile`."""

    app = OverlapCheckApp()
    profiler = cProfile.Profile()
    for _ in range(repeat):
        profiler.runcall(app.run, input_path, config_path, output_dir, False)
    stream = io.StringIO()
    stats = _build_stats(profiler, stream)
    stats.strip_dirs().sort_stats("cumulative").print_stats(25)
    return stream.getvalue()


@contextmanager
def capture_profile(
    app: OverlapCheckApp | None = None,
) -> Iterator[tuple[OverlapCheckApp, Callable[[int], str]]]:
    """Context manager capturing profiling data for manual inspection.

    The yielded tuple contains the :class:`OverlapCheckApp` instance to use
    for the profiled operations and a callable that returns a formatted
    profile summary when invoked.
    """

    profiler = cProfile.Profile()
    target_app = app or OverlapCheckApp()
    profiler.enable()

    def exporter(limit: int = 25) -> str:
        profiler.disable()
        stream = io.StringIO()
        stats = _build_stats(profiler, stream)
        stats.strip_dirs().sort_stats("cumulative").print_stats(limit)
        return stream.getvalue()

    try:
        yield target_app, exporter
    finally:
        profiler.disable()


def _build_stats(profiler: cProfile.Profile, stream: io.StringIO) -> "StatsWrapper":
    return StatsWrapper(pstats.Stats(profiler, stream=stream))


class StatsWrapper:
    """Thin wrapper delegating to :class:`pstats.Stats` methods."""

    def __init__(self, stats: pstats.Stats) -> None:
        self._stats = stats

    def strip_dirs(self) -> "StatsWrapper":
        self._stats.strip_dirs()
        return self

    def sort_stats(self, *keys: str) -> "StatsWrapper":
        self._stats.sort_stats(*keys)
        return self

    def print_stats(self, *args: int | float | str) -> "StatsWrapper":
        self._stats.print_stats(*args)
        return self

    def __getattr__(self, name: str):
        return getattr(self._stats, name)


__all__ = [
    "benchmark_aggregate",
    "benchmark_statistic",
    "capture_profile",
    "profile_application",
]
