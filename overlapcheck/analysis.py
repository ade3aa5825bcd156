"""Cross-stream analysis of the p-values collected during a run.

Individual streams only produce a p-value each.  Whether the generator under
test looks random is judged over many streams with two independent checks:

``uniformity``
    The p-values are binned into ``uniformity_bins`` equal-width buckets over
    ``[0, 1]`` and compared with a flat distribution through a chi-square
    statistic.  The check fails when the resulting p-value drops below
    ``uniformity_level``.  With fewer samples than bins there is not enough
    data and the check is reported as not applicable instead of failed.

``proportion``
    The number of streams passing at significance level :math:`\\alpha` must
    fall within ``p_hat * S +/- 3 * sqrt(p_hat * alpha * S)`` where
    ``p_hat = 1 - alpha`` and ``S`` is the number of sampled p-values.

P-values that were never computed (``None``) are skipped entirely.  Some test
families only sample strictly positive p-values; callers opt into that with
:class:`AggregationPolicy`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .template.base import (
    CONFIDENCE_MULTIPLIER,
    DEFAULT_ALPHA,
    DEFAULT_UNIFORMITY_BINS,
    DEFAULT_UNIFORMITY_LEVEL,
)
from .template.utils import IncompleteGamma, igamc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationPolicy:
    """Sampling rules applied before p-values are tallied."""

    exclude_zero_p_values: bool = False


DEFAULT_POLICY = AggregationPolicy()


@dataclass(frozen=True)
class AggregateMetrics:
    """Uniformity and proportion verdicts for one group of p-values."""

    histogram: Tuple[int, ...]
    sample_count: int
    too_low: int
    pass_count: int
    uniformity_p_value: Optional[float]
    uniformity_failure: bool
    proportion_min: Optional[float]
    proportion_max: Optional[float]
    proportion_failure: bool

    @property
    def uniformity_applicable(self) -> bool:
        return self.uniformity_p_value is not None

    @property
    def proportion_applicable(self) -> bool:
        return self.sample_count > 0

    @property
    def passed(self) -> bool:
        return not (self.uniformity_failure or self.proportion_failure)


def sample_p_values(
    p_values: Iterable[Optional[float]], policy: AggregationPolicy = DEFAULT_POLICY
) -> List[float]:
    """Return the p-values that count as samples under ``policy``."""

    sampled: List[float] = []
    for p_value in p_values:
        if p_value is None or math.isnan(p_value):
            continue
        if policy.exclude_zero_p_values and not p_value > 0.0:
            continue
        sampled.append(float(p_value))
    return sampled


def uniformity_histogram(samples: Sequence[float], bins: int) -> Tuple[int, ...]:
    """Tally ``samples`` into ``bins`` equal-width buckets over ``[0, 1]``.

    ``p >= 1`` lands in the last bucket and negative values in the first.
    """

    if bins < 2:
        raise ValueError(f"Uniformity needs at least 2 bins, got {bins}.")
    values = np.asarray(samples, dtype=float)
    indices = np.where(
        values >= 1.0,
        bins - 1,
        np.where(values >= 0.0, np.floor(values * bins), 0),
    )
    indices = np.clip(indices, 0, bins - 1).astype(np.int64)
    return tuple(int(count) for count in np.bincount(indices, minlength=bins))


def uniformity_p_value(
    histogram: Sequence[int],
    sample_count: int,
    *,
    incomplete_gamma: IncompleteGamma = igamc,
) -> Optional[float]:
    """Return the uniformity p-value or ``None`` when there are too few samples."""

    bins = len(histogram)
    if bins < 2:
        raise ValueError(f"Uniformity needs at least 2 bins, got {bins}.")
    # Integer expectation; fewer samples than bins is not applicable.
    exp_count = float(sample_count // bins)
    if exp_count <= 0.0:
        return None
    chi2 = math.fsum((count - exp_count) ** 2 / exp_count for count in histogram)
    return incomplete_gamma((bins - 1) / 2.0, chi2 / 2.0)


def proportion_bounds(sample_count: int, alpha: float) -> Tuple[float, float]:
    """Return the ``(min, max)`` acceptable number of passing samples."""

    if sample_count <= 0:
        raise ValueError("Proportion bounds need at least one sample.")
    p_hat = 1.0 - alpha
    spread = CONFIDENCE_MULTIPLIER * math.sqrt(p_hat * alpha * sample_count)
    centre = p_hat * sample_count
    return centre - spread, centre + spread


def aggregate(
    p_values: Iterable[Optional[float]],
    *,
    alpha: float = DEFAULT_ALPHA,
    uniformity_bins: int = DEFAULT_UNIFORMITY_BINS,
    uniformity_level: float = DEFAULT_UNIFORMITY_LEVEL,
    policy: AggregationPolicy = DEFAULT_POLICY,
    incomplete_gamma: IncompleteGamma = igamc,
) -> AggregateMetrics:
    """Compute the uniformity and proportion verdicts for ``p_values``."""

    samples = sample_p_values(p_values, policy)
    sample_count = len(samples)
    too_low = sum(1 for p_value in samples if p_value < alpha)
    pass_count = sample_count - too_low if sample_count > 0 else 0

    histogram = uniformity_histogram(samples, uniformity_bins)
    uniformity = uniformity_p_value(
        histogram, sample_count, incomplete_gamma=incomplete_gamma
    )
    if uniformity is None:
        uniformity_failure = False
        logger.debug("Too few samples (%d) for the uniformity check.", sample_count)
    else:
        uniformity_failure = uniformity < uniformity_level
        logger.debug(
            "Uniformity p-value %.6f (%s).",
            uniformity,
            "failure" if uniformity_failure else "success",
        )

    if sample_count == 0:
        proportion_min: Optional[float] = None
        proportion_max: Optional[float] = None
        proportion_failure = False
        logger.debug("No samples for the proportion check.")
    else:
        proportion_min, proportion_max = proportion_bounds(sample_count, alpha)
        proportion_failure = not proportion_min <= pass_count <= proportion_max
        logger.debug(
            "Proportion %d/%d within [%.3f, %.3f]: %s.",
            pass_count,
            sample_count,
            proportion_min,
            proportion_max,
            "no" if proportion_failure else "yes",
        )

    return AggregateMetrics(
        histogram=histogram,
        sample_count=sample_count,
        too_low=too_low,
        pass_count=pass_count,
        uniformity_p_value=uniformity,
        uniformity_failure=uniformity_failure,
        proportion_min=proportion_min,
        proportion_max=proportion_max,
        proportion_failure=proportion_failure,
    )


def partition_p_values(
    p_values: Sequence[Optional[float]], partitions: int
) -> Tuple[Tuple[Optional[float], ...], ...]:
    """Split ``p_values`` by stride: partition ``j`` holds ``j, j+P, j+2P, ...``."""

    if partitions < 1:
        raise ValueError(f"Partition count must be at least 1, got {partitions}.")
    return tuple(tuple(p_values[start::partitions]) for start in range(partitions))


def aggregate_partitions(
    p_values: Sequence[Optional[float]],
    *,
    partitions: int = 1,
    alpha: float = DEFAULT_ALPHA,
    uniformity_bins: int = DEFAULT_UNIFORMITY_BINS,
    uniformity_level: float = DEFAULT_UNIFORMITY_LEVEL,
    policy: AggregationPolicy = DEFAULT_POLICY,
    incomplete_gamma: IncompleteGamma = igamc,
) -> Tuple[AggregateMetrics, ...]:
    """Aggregate every partition of ``p_values`` independently."""

    return tuple(
        aggregate(
            group,
            alpha=alpha,
            uniformity_bins=uniformity_bins,
            uniformity_level=uniformity_level,
            policy=policy,
            incomplete_gamma=incomplete_gamma,
        )
        for group in partition_p_values(p_values, partitions)
    )


__all__ = [
    "AggregateMetrics",
    "AggregationPolicy",
    "DEFAULT_POLICY",
    "aggregate",
    "aggregate_partitions",
    "partition_p_values",
    "proportion_bounds",
    "sample_p_values",
    "uniformity_histogram",
    "uniformity_p_value",
]
