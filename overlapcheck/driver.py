"""Lifecycle driver for the overlapping template test.

The driver enforces the order ``configure -> iterate* -> finalize``.  Any
other sequence raises :class:`~overlapcheck.errors.LifecycleError`.  A
template length outside the supported range disables the test instead: the
driver logs a warning, moves to :attr:`DriverState.DISABLED` and ignores the
remaining calls so an orchestrator can carry on with other tests.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .accumulator import ResultAccumulator, Tally
from .analysis import DEFAULT_POLICY, AggregateMetrics, AggregationPolicy, aggregate_partitions
from .errors import InconsistentStateError, LifecycleError
from .reporting import ReportPaths, write_test_reports
from .template.base import (
    MAX_TEMPLATE_LENGTH,
    MIN_TEMPLATE_LENGTH,
    TEST_NAME,
    StreamStatistic,
    TestParameters,
)
from .template.statistic import compute_statistic
from .template.table import probability_table
from .template.utils import BitsLike

logger = logging.getLogger(__name__)


class DriverState(enum.Enum):
    UNCONFIGURED = "unconfigured"
    READY = "ready"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"
    DISABLED = "disabled"


class OverlappingTemplateDriver:
    """Run the overlapping template test over a sequence of bit streams."""

    def __init__(self, policy: AggregationPolicy = DEFAULT_POLICY) -> None:
        self._policy = policy
        self._state = DriverState.UNCONFIGURED
        self._params: Optional[TestParameters] = None
        self._table: Optional[Tuple[float, ...]] = None
        self._accumulator: Optional[ResultAccumulator] = None
        self._metrics: Tuple[AggregateMetrics, ...] = ()
        self._report_paths: Optional[ReportPaths] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is not DriverState.DISABLED

    @property
    def parameters(self) -> TestParameters:
        if self._params is None:
            raise LifecycleError(f"{TEST_NAME} driver has not been configured.")
        return self._params

    @property
    def metrics(self) -> Tuple[AggregateMetrics, ...]:
        return self._metrics

    @property
    def report_paths(self) -> Optional[ReportPaths]:
        return self._report_paths

    def tally(self) -> Tally:
        if self._accumulator is None:
            return Tally(count=0, valid_p_values=0, successes=0, failures=0)
        return self._accumulator.tally()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def configure(self, params: TestParameters) -> bool:
        """Prepare the driver for ``params``; return ``False`` when disabled."""

        self._require(DriverState.UNCONFIGURED, operation="configure")
        if params is None:
            raise LifecycleError("configure() requires test parameters.")
        if params.partitions < 1:
            raise LifecycleError(f"Partition count must be at least 1, got {params.partitions}.")

        m = params.template_length
        if not params.template_length_supported:
            logger.warning(
                "Disabling test %s: template length m=%d must be within [%d, %d].",
                TEST_NAME,
                m,
                MIN_TEMPLATE_LENGTH,
                MAX_TEMPLATE_LENGTH,
            )
            self._params = params
            self._transition(DriverState.DISABLED)
            return False

        self._params = params
        self._table = probability_table(m, params.substring_length, params.degrees_of_freedom)
        self._accumulator = ResultAccumulator(params.expected_p_values)
        self._transition(DriverState.READY)
        return True

    def iterate(self, bits: BitsLike) -> Optional[StreamStatistic]:
        """Compute and store the statistic for the next bit stream."""

        if self._state is DriverState.DISABLED:
            logger.debug("iterate() ignored: %s is disabled.", TEST_NAME)
            return None
        self._require(DriverState.READY, DriverState.ACCUMULATING, operation="iterate")
        if bits is None:
            raise LifecycleError("iterate() requires a bit stream.")
        statistic = self._compute(bits)
        assert self._accumulator is not None
        self._accumulator.append(statistic)
        self._transition(DriverState.ACCUMULATING)
        return statistic

    def iterate_many(
        self, streams: Iterable[BitsLike], *, max_workers: int | None = None
    ) -> Tuple[StreamStatistic, ...]:
        """Compute several streams concurrently, keeping their input order."""

        if self._state is DriverState.DISABLED:
            logger.debug("iterate_many() ignored: %s is disabled.", TEST_NAME)
            return ()
        self._require(DriverState.READY, DriverState.ACCUMULATING, operation="iterate_many")
        batch = list(streams)
        if any(bits is None for bits in batch):
            raise LifecycleError("iterate_many() requires every bit stream to be present.")
        assert self._accumulator is not None
        offset = len(self._accumulator)
        indices = range(offset, offset + len(batch))

        if max_workers == 1 or len(batch) <= 1:
            results = [self._compute_into(index, bits) for index, bits in zip(indices, batch)]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = list(executor.map(self._compute_into, indices, batch))

        if results:
            self._transition(DriverState.ACCUMULATING)
        return tuple(results)

    def finalize(
        self,
        output_dir: Path | None = None,
        *,
        legacy_output: bool = False,
    ) -> Tuple[AggregateMetrics, ...]:
        """Write the per-stream reports and aggregate every partition."""

        if self._state is DriverState.DISABLED:
            logger.debug("finalize() ignored: %s is disabled.", TEST_NAME)
            return ()
        self._require(DriverState.ACCUMULATING, operation="finalize")
        params = self.parameters
        assert self._accumulator is not None

        collected = len(self._accumulator)
        if collected != params.expected_p_values:
            raise InconsistentStateError(
                f"{TEST_NAME} collected {collected} p-values but {params.expected_p_values} "
                "streams were configured."
            )
        statistics = self._accumulator.statistics()

        if output_dir is not None:
            self._report_paths = write_test_reports(
                statistics, params, Path(output_dir), legacy=legacy_output
            )

        self._metrics = aggregate_partitions(
            [statistic.p_value for statistic in statistics],
            partitions=params.partitions,
            alpha=params.alpha,
            uniformity_bins=params.uniformity_bins,
            uniformity_level=params.uniformity_level,
            policy=self._policy,
        )
        self._transition(DriverState.FINALIZED)
        return self._metrics

    def reset(self) -> None:
        """Drop every collected result and return to the unconfigured state."""

        if self._accumulator is not None:
            self._accumulator.clear()
        self._params = None
        self._table = None
        self._accumulator = None
        self._metrics = ()
        self._report_paths = None
        self._transition(DriverState.UNCONFIGURED)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _compute(self, bits: BitsLike) -> StreamStatistic:
        return compute_statistic(bits, self.parameters, table=self._table)

    def _compute_into(self, index: int, bits: BitsLike) -> StreamStatistic:
        statistic = self._compute(bits)
        assert self._accumulator is not None
        self._accumulator.store(index, statistic)
        return statistic

    def _require(self, *allowed: DriverState, operation: str) -> None:
        if self._state not in allowed:
            expected = ", ".join(state.name for state in allowed)
            raise LifecycleError(
                f"{operation}() called for {TEST_NAME} in state {self._state.name}; "
                f"expected {expected}."
            )

    def _transition(self, target: DriverState) -> None:
        if self._state is not target:
            logger.debug(
                "Driver for %s changing from %s to %s",
                TEST_NAME,
                self._state.name,
                target.name,
            )
            self._state = target


def run_streams(
    streams: Iterable[BitsLike],
    params: TestParameters,
    *,
    output_dir: Path | None = None,
    legacy_output: bool = False,
    max_workers: int | None = None,
    policy: AggregationPolicy = DEFAULT_POLICY,
) -> OverlappingTemplateDriver:
    """Drive a full run over ``streams`` and return the finalized driver."""

    driver = OverlappingTemplateDriver(policy=policy)
    if not driver.configure(params):
        return driver
    driver.iterate_many(streams, max_workers=max_workers)
    driver.finalize(output_dir, legacy_output=legacy_output)
    return driver


__all__ = ["DriverState", "OverlappingTemplateDriver", "run_streams"]
