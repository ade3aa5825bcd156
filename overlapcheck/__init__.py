"""Overlapping template of all ones test with cross-stream analysis."""

from .analysis import AggregateMetrics, AggregationPolicy, aggregate, aggregate_partitions
from .app import OverlapCheckApp, RunResult
from .driver import DriverState, OverlappingTemplateDriver, run_streams
from .template import StreamStatistic, TestParameters, compute_statistic

__all__ = [
    "AggregateMetrics",
    "AggregationPolicy",
    "DriverState",
    "OverlapCheckApp",
    "OverlappingTemplateDriver",
    "RunResult",
    "StreamStatistic",
    "TestParameters",
    "aggregate",
    "aggregate_partitions",
    "compute_statistic",
    "run_streams",
]
