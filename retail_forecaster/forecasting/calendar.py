"""
Calendar-driven demand context: public holidays and regional demand patterns.

Both helpers are pure functions of a date and a frozen config tuple, so the
engine stays deterministic for a given ``reference_date``.

Regional demand patterns
------------------------
A pattern is active when the reference month is in ``pattern.months`` and
the product category contains one of ``pattern.products`` as a substring
(``"fresh_vegetables"`` matches ``"vegetables"``). Patterns are checked in
configured order and the FIRST match wins; they do not compound. With the
default table, vegetables in December get the Christmas multiplier (2.0)
rather than also picking up a school-holiday effect. Staples such as maize
and beans carry no default pattern.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Optional

from retail_forecaster.config import DemandPattern
from retail_forecaster.utils.time_utils import any_date_in_window, horizon_window


def holidays_in_horizon(
    reference_date: date,
    horizon_days: int,
    public_holidays: Sequence[date],
) -> bool:
    """True if any public holiday falls in ``[reference_date, +horizon_days)``."""
    start, end = horizon_window(reference_date, horizon_days)
    return any_date_in_window(public_holidays, start, end)


def matching_demand_pattern(
    category: Optional[str],
    on_date: date,
    patterns: Sequence[DemandPattern],
) -> Optional[DemandPattern]:
    """Return the first pattern active for ``category`` on ``on_date``."""
    if not category:
        return None
    needle = category.lower()
    for pattern in patterns:
        if on_date.month not in pattern.months:
            continue
        if any(product in needle for product in pattern.products):
            return pattern
    return None


def demand_pattern_multiplier(
    category: Optional[str],
    on_date: date,
    patterns: Sequence[DemandPattern],
) -> float:
    """Multiplier of the matching pattern, or 1.0 when none applies."""
    pattern = matching_demand_pattern(category, on_date, patterns)
    return pattern.multiplier if pattern is not None else 1.0
