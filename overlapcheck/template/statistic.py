"""Per-stream statistic for the overlapping template of all ones test."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..errors import InsufficientBitsError, InvalidConfigurationError, TemplateLengthError
from .base import (
    COUNTER_BITS,
    OccurrenceBuckets,
    StreamRecord,
    StreamStatistic,
    TestParameters,
)
from .table import probability_table
from .utils import BitsLike, IncompleteGamma, as_bit_array, igamc
from .validation import sampled_p_value, validate_p_value

logger = logging.getLogger(__name__)


def count_occurrences(substrings: np.ndarray, template_length: int) -> np.ndarray:
    """Return the overlapping all-ones matches found in each row of ``substrings``."""

    if substrings.shape[0] == 0:
        return np.zeros(0, dtype=np.int64)
    windows = sliding_window_view(substrings, template_length, axis=1)
    matches = windows.all(axis=2)
    return matches.sum(axis=1, dtype=np.int64)


def chi_square(buckets: OccurrenceBuckets, substring_count: int, table: Sequence[float]) -> float:
    """Return ``sum((v_i - N*p_i)^2 / (N*p_i))`` over every bucket."""

    if len(table) != len(buckets):
        raise InvalidConfigurationError(
            f"Probability table has {len(table)} entries but {len(buckets)} buckets were counted."
        )
    chi2 = 0.0
    for observed, probability in zip(buckets, table):
        expected = substring_count * probability
        if not expected > 0.0:
            raise InvalidConfigurationError(
                f"Expected bucket frequency {expected!r} must be positive "
                f"(N={substring_count}, p={probability!r})."
            )
        term = observed - expected
        chi2 += term * term / expected
    return chi2


def compute_statistic(
    bits: BitsLike,
    params: TestParameters,
    *,
    table: Optional[Sequence[float]] = None,
    incomplete_gamma: IncompleteGamma = igamc,
) -> StreamStatistic:
    """Run the overlapping template test over one bit stream.

    The first ``N * M`` bits are split into ``N`` substrings of ``M`` bits and
    any remainder is ignored.  Each substring is scanned with an ``m`` bit
    window advancing one bit at a time, the number of all-ones windows is
    bucketed into ``K + 1`` slots and compared with the theoretical
    distribution through a chi-square statistic.
    """

    m = params.template_length
    if m < 1:
        raise InvalidConfigurationError(f"Template length must be positive, got {m}.")
    if m > COUNTER_BITS - 1:
        raise TemplateLengthError(
            f"Template length {m} is too large: 1 << {m} exceeds {COUNTER_BITS - 1} bits."
        )
    if params.window_count <= 0:
        raise InvalidConfigurationError(
            f"Substring length {params.substring_length} is shorter than template length {m}."
        )
    if table is None:
        table = probability_table(m, params.substring_length, params.degrees_of_freedom)

    stream = as_bit_array(bits)
    substring_count = params.substring_count
    used_bits = substring_count * params.substring_length
    if stream.size < used_bits:
        raise InsufficientBitsError(
            f"Stream holds {stream.size} bits but {used_bits} are required "
            f"({substring_count} substrings of {params.substring_length} bits)."
        )

    substrings = stream[:used_bits].reshape(substring_count, params.substring_length)
    occurrences = count_occurrences(substrings, m)
    buckets = OccurrenceBuckets.from_occurrences(occurrences, params.degrees_of_freedom)

    lambda_value = params.window_count / float(1 << m)
    chi2 = chi_square(buckets, substring_count, table)
    raw_p_value = incomplete_gamma(params.degrees_of_freedom / 2.0, chi2 / 2.0)

    validation = validate_p_value(raw_p_value, params.alpha)
    if not validation.is_valid:
        logger.warning(
            "Overlapping template test produced bogus p-value %r (%s); recorded as failure.",
            raw_p_value,
            validation.value,
        )

    record = StreamRecord(
        substring_count=substring_count,
        substring_length=params.substring_length,
        lambda_value=lambda_value,
        buckets=buckets,
        chi2=chi2,
        validation=validation,
    )
    return StreamStatistic(record=record, p_value=sampled_p_value(raw_p_value, validation))


__all__ = ["chi_square", "compute_statistic", "count_occurrences"]
