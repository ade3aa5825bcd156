"""Common data structures for the overlapping template test."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

import numpy as np

SUBSTRING_LENGTH: int = 1032
"""Length ``M`` in bits of each independent substring."""

DEGREES_OF_FREEDOM: int = 5
"""Number ``K`` of degrees of freedom; bucket ``K`` catches counts ``>= K``."""

MIN_TEMPLATE_LENGTH: int = 2
MAX_TEMPLATE_LENGTH: int = 16

COUNTER_BITS: int = 64
"""Bit width of the integer used for ``1 << m``."""

CONFIDENCE_MULTIPLIER: float = 3.0
"""Standard deviations spanned by the proportion acceptance interval."""

DEFAULT_TEMPLATE_LENGTH: int = 9
DEFAULT_STREAM_LENGTH: int = 1_048_576
DEFAULT_ALPHA: float = 0.01
DEFAULT_UNIFORMITY_BINS: int = 10
DEFAULT_UNIFORMITY_LEVEL: float = 0.0001

TEST_NAME = "OverlappingTemplate"


class Validation(enum.Enum):
    """Classification of a computed p-value."""

    PASSED = "passed"
    FAILED = "failed"
    INVALID_NEGATIVE = "invalid_negative"
    INVALID_ABOVE_ONE = "invalid_above_one"
    INVALID_NOT_A_NUMBER = "invalid_not_a_number"

    @property
    def is_valid(self) -> bool:
        """Return whether the p-value counts as a valid sample."""

        return self in (Validation.PASSED, Validation.FAILED)

    @property
    def passed(self) -> bool:
        return self is Validation.PASSED


@dataclass(frozen=True)
class TestParameters:
    """Immutable per-run configuration of the overlapping template test."""

    __test__ = False

    template_length: int = DEFAULT_TEMPLATE_LENGTH
    stream_length: int = DEFAULT_STREAM_LENGTH
    num_streams: int = 1
    alpha: float = DEFAULT_ALPHA
    uniformity_bins: int = DEFAULT_UNIFORMITY_BINS
    uniformity_level: float = DEFAULT_UNIFORMITY_LEVEL
    partitions: int = 1
    substring_length: int = SUBSTRING_LENGTH
    degrees_of_freedom: int = DEGREES_OF_FREEDOM

    @property
    def substring_count(self) -> int:
        """Number ``N`` of complete substrings in one stream."""

        return self.stream_length // self.substring_length

    @property
    def window_count(self) -> int:
        """Number of template offsets checked in each substring."""

        return self.substring_length - self.template_length + 1

    @property
    def expected_p_values(self) -> int:
        """One p-value per stream; partitions only regroup them."""

        return self.num_streams

    @property
    def template_length_supported(self) -> bool:
        return (
            MIN_TEMPLATE_LENGTH <= self.template_length <= MAX_TEMPLATE_LENGTH
            and self.window_count > 0
        )


@dataclass(frozen=True)
class OccurrenceBuckets:
    """Per-stream frequencies of template occurrence counts.

    Index ``i < K`` holds the number of substrings with exactly ``i`` matches,
    index ``K`` (:attr:`catch_all`) holds the substrings with ``K`` or more.
    """

    counts: Tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.counts) < 2:
            raise ValueError("Occurrence buckets need at least two slots.")
        if any(count < 0 for count in self.counts):
            raise ValueError("Occurrence bucket counts must be non-negative.")

    @classmethod
    def empty(cls, degrees_of_freedom: int = DEGREES_OF_FREEDOM) -> "OccurrenceBuckets":
        return cls(counts=(0,) * (degrees_of_freedom + 1))

    @classmethod
    def from_occurrences(
        cls, occurrences: Iterable[int], degrees_of_freedom: int = DEGREES_OF_FREEDOM
    ) -> "OccurrenceBuckets":
        """Bucket per-substring match counts, folding ``>= K`` into the last slot."""

        values = np.fromiter(occurrences, dtype=np.int64)
        capped = np.minimum(values, degrees_of_freedom)
        tallies = np.bincount(capped, minlength=degrees_of_freedom + 1)
        return cls(counts=tuple(int(count) for count in tallies))

    @property
    def degrees_of_freedom(self) -> int:
        return len(self.counts) - 1

    @property
    def catch_all(self) -> int:
        """Substrings with at least ``K`` matches."""

        return self.counts[-1]

    @property
    def total(self) -> int:
        return sum(self.counts)

    def __getitem__(self, index: int) -> int:
        return self.counts[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self.counts)

    def __len__(self) -> int:
        return len(self.counts)


@dataclass(frozen=True)
class StreamRecord:
    """Statistics computed for one bit stream."""

    substring_count: int
    substring_length: int
    lambda_value: float
    buckets: OccurrenceBuckets
    chi2: float
    validation: Validation

    @property
    def success(self) -> bool:
        return self.validation.passed

    @property
    def eta(self) -> float:
        return self.lambda_value / 2.0


@dataclass(frozen=True)
class StreamStatistic:
    """A :class:`StreamRecord` paired with its p-value (``None`` when invalid)."""

    record: StreamRecord
    p_value: Optional[float]


__all__ = [
    "COUNTER_BITS",
    "CONFIDENCE_MULTIPLIER",
    "DEFAULT_ALPHA",
    "DEFAULT_STREAM_LENGTH",
    "DEFAULT_TEMPLATE_LENGTH",
    "DEFAULT_UNIFORMITY_BINS",
    "DEFAULT_UNIFORMITY_LEVEL",
    "DEGREES_OF_FREEDOM",
    "MAX_TEMPLATE_LENGTH",
    "MIN_TEMPLATE_LENGTH",
    "OccurrenceBuckets",
    "StreamRecord",
    "StreamStatistic",
    "SUBSTRING_LENGTH",
    "TEST_NAME",
    "TestParameters",
    "Validation",
]
