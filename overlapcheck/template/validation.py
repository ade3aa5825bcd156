"""Classification of per-stream p-values against the significance level."""

from __future__ import annotations

import math
from typing import Optional

from .base import DEFAULT_ALPHA, Validation


def validate_p_value(p_value: Optional[float], alpha: float = DEFAULT_ALPHA) -> Validation:
    """Classify ``p_value``.

    ``p < 0``, ``p > 1`` and NaN (or a missing value) are invalid and count as
    failures.  A valid p-value fails when ``p < alpha`` and passes otherwise.
    """

    if p_value is None or math.isnan(p_value):
        return Validation.INVALID_NOT_A_NUMBER
    if p_value < 0.0:
        return Validation.INVALID_NEGATIVE
    if p_value > 1.0:
        return Validation.INVALID_ABOVE_ONE
    if p_value < alpha:
        return Validation.FAILED
    return Validation.PASSED


def sampled_p_value(p_value: Optional[float], validation: Validation) -> Optional[float]:
    """Return the p-value to keep for aggregation, or ``None`` when invalid."""

    if not validation.is_valid:
        return None
    return p_value


__all__ = ["sampled_p_value", "validate_p_value"]
