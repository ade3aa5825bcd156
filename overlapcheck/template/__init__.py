"""Overlapping template of all ones test."""

from .base import (
    DEGREES_OF_FREEDOM,
    MAX_TEMPLATE_LENGTH,
    MIN_TEMPLATE_LENGTH,
    SUBSTRING_LENGTH,
    TEST_NAME,
    OccurrenceBuckets,
    StreamRecord,
    StreamStatistic,
    TestParameters,
    Validation,
)
from .statistic import compute_statistic
from .table import probability_table
from .validation import validate_p_value

__all__ = [
    "DEGREES_OF_FREEDOM",
    "MAX_TEMPLATE_LENGTH",
    "MIN_TEMPLATE_LENGTH",
    "OccurrenceBuckets",
    "SUBSTRING_LENGTH",
    "StreamRecord",
    "StreamStatistic",
    "TEST_NAME",
    "TestParameters",
    "Validation",
    "compute_statistic",
    "probability_table",
    "validate_p_value",
]
