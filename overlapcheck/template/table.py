"""Theoretical occurrence probabilities for the all-ones template.

The reference configuration (``m = 9``, ``M = 1032``, ``K = 5``) uses the
values published by Hamano and Kaneko, "The Correction of the Overlapping
Template Matching Test Included in NIST Randomness Test Suite" (IEICE
Transactions E90-A(9), 2007).  Other template lengths are derived exactly by
walking every substring bit with a small dynamic program over the current run
of ones and the number of matches seen so far.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

import numpy as np

from .base import DEGREES_OF_FREEDOM, SUBSTRING_LENGTH

REFERENCE_TEMPLATE_LENGTH = 9

REFERENCE_TABLE: Tuple[float, ...] = (
    0.36409105321672786245,
    0.18565890010624038178,
    0.13938113045903269914,
    0.10057114399877811497,
    0.070432326346398449744,
    0.13986544587282249192,
)
"""``T_i[M] / 2^1032`` for ``i = 0..4`` and the remainder for ``>= 5``."""


def probability_table(
    template_length: int,
    substring_length: int = SUBSTRING_LENGTH,
    degrees_of_freedom: int = DEGREES_OF_FREEDOM,
) -> Tuple[float, ...]:
    """Return the ``K + 1`` probabilities ``p_i`` for ``template_length``.

    Entry ``i < K`` is the probability that a random substring holds exactly
    ``i`` overlapping matches of the all-ones template; entry ``K`` is the
    probability of ``K`` or more.
    """

    if (
        template_length == REFERENCE_TEMPLATE_LENGTH
        and substring_length == SUBSTRING_LENGTH
        and degrees_of_freedom == DEGREES_OF_FREEDOM
    ):
        return REFERENCE_TABLE
    return derive_probability_table(template_length, substring_length, degrees_of_freedom)


@lru_cache(maxsize=64)
def derive_probability_table(
    template_length: int,
    substring_length: int = SUBSTRING_LENGTH,
    degrees_of_freedom: int = DEGREES_OF_FREEDOM,
) -> Tuple[float, ...]:
    """Compute the exact occurrence distribution for a random substring."""

    m = template_length
    k = degrees_of_freedom
    if m < 1:
        raise ValueError("Template length must be positive.")
    if k < 1:
        raise ValueError("Degrees of freedom must be positive.")
    if substring_length < m:
        raise ValueError("Substring length must be at least the template length.")

    # state[r, c]: trailing run of ones r (capped at m), matches so far c (capped at k)
    state = np.zeros((m + 1, k + 1), dtype=float)
    state[0, 0] = 1.0
    for _ in range(substring_length):
        following = np.zeros_like(state)
        following[0, :] = 0.5 * state.sum(axis=0)
        following[1:m, :] += 0.5 * state[0 : m - 1, :]
        matched = 0.5 * state[m - 1 :, :].sum(axis=0)
        following[m, 1:] += matched[:-1]
        following[m, k] += matched[k]
        state = following
    return tuple(float(value) for value in state.sum(axis=0))


__all__ = [
    "REFERENCE_TABLE",
    "REFERENCE_TEMPLATE_LENGTH",
    "derive_probability_table",
    "probability_table",
]
