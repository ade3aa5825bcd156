"""Utility helpers shared by the statistic engine and the aggregator."""

from __future__ import annotations

from typing import Callable, Sequence, Union

import numpy as np
from scipy.special import gammaincc

from ..errors import InvalidInputError

IncompleteGamma = Callable[[float, float], float]
"""Signature of the regularised upper incomplete gamma function ``Q(a, x)``."""

BitsLike = Union[Sequence[int], np.ndarray]


def igamc(shape: float, x: float) -> float:
    """Return the regularised upper incomplete gamma function ``Q(shape, x)``."""

    return float(gammaincc(shape, x))


def as_bit_array(bits: BitsLike) -> np.ndarray:
    """Return ``bits`` as a one dimensional ``uint8`` array of zeros and ones."""

    array = np.asarray(bits)
    if array.ndim != 1:
        raise InvalidInputError("Bit streams must be one dimensional.")
    if array.size and not np.isin(array, (0, 1)).all():
        raise InvalidInputError("Bit streams may only contain the values 0 and 1.")
    return array.astype(np.uint8, copy=False)


__all__ = ["BitsLike", "IncompleteGamma", "as_bit_array", "igamc"]
