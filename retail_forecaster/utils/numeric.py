"""
Numeric helpers shared by the forecasting and pricing engines.

All helpers take plain sequences of floats and return floats; callers are
responsible for rejecting empty input before calling anything that takes a
mean (the engines raise ``InvalidInput`` first).

Rounding
--------
``round_half_up`` rounds .5 away from zero for positive values, the way
shop prices and unit counts are rounded by hand. Python's built-in
``round()`` uses banker's rounding (``round(2.5) == 2``), which would make
a forecast of 52.5 units come out as 52.
"""

from __future__ import annotations

import math
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. Raises ``ValueError`` on an empty sequence."""
    if not values:
        raise ValueError("mean() of an empty sequence.")
    return sum(values) / len(values)


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (divides by N, not N-1)."""
    mu = mean(values)
    variance = sum((v - mu) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def moving_average(values: Sequence[float], window: int) -> float:
    """Mean of the last ``window`` values, or of all values if fewer."""
    if len(values) < window:
        return mean(values)
    return mean(values[-window:])


def coefficient_of_variation(values: Sequence[float]) -> float:
    """``population_std / mean``; ``inf`` when the mean is zero."""
    mu = mean(values)
    if mu == 0:
        return math.inf
    return population_std(values) / mu


def clamp(value: float, lower: float, upper: float) -> float:
    """Constrain ``value`` to ``[lower, upper]``."""
    return max(lower, min(upper, value))


def round_half_up(value: float, step: float = 1.0) -> float:
    """Round ``value`` to the nearest multiple of ``step``, halves up.

    A tiny epsilon absorbs float noise such as ``2.675 * 100 == 267.49999``.
    """
    return math.floor(value / step + 0.5 + 1e-9) * step


def round_up_to(value: float, step: float) -> float:
    """Smallest multiple of ``step`` that is >= ``value``."""
    return math.ceil(value / step - 1e-9) * step


def round_down_to(value: float, step: float) -> float:
    """Largest multiple of ``step`` that is <= ``value``."""
    return math.floor(value / step + 1e-9) * step
