"""
Price rounding rules: locale price endings and currency denominations.

Locale endings (``normalize_price_ending``)
-------------------------------------------
Shoppers in the target market prefer prices ending in 0 or 5, which also
settle cleanly over mobile money. With ``r = price mod 10``:

    0 < r < 3   → round down to the 0-ending      (122.40 → 120)
    3 ≤ r ≤ 7   → move to the 5-ending            (126.00 → 125)
    r > 7       → round up to the next 0-ending   (128.20 → 130)
    r == 0      → unchanged

Prices below ``min_price`` are left alone: for a price of 2.50 the
"round down" branch would produce 0.

Denominations (``denomination_step``)
-------------------------------------
    price < 100          → 0.50
    100 ≤ price < 1000   → 5
    price ≥ 1000         → 10
"""

from __future__ import annotations

import math
from typing import Optional

from retail_forecaster.taxonomy.pricing_taxonomy import PricingRule
from retail_forecaster.utils.numeric import round_down_to, round_half_up, round_up_to

# Float noise allowance when classifying remainders and comparing bounds.
_EPS = 1e-9


def normalize_price_ending(
    price: float,
    min_price: float = 10.0,
) -> tuple[float, Optional[PricingRule]]:
    """Shift ``price`` to a locale-preferred ending.

    Returns:
        ``(new_price, rule)`` where ``rule`` is ``None`` when the price did
        not move.
    """
    if price < min_price:
        return price, None

    tens = math.floor(price / 10.0 + _EPS) * 10.0
    remainder = price - tens
    if remainder <= _EPS:
        return price, None

    if remainder < 3.0:
        new_price, rule = tens, PricingRule.LOCALE_ROUND_DOWN
    elif remainder > 7.0:
        new_price, rule = tens + 10.0, PricingRule.LOCALE_ROUND_UP
    else:
        new_price, rule = tens + 5.0, PricingRule.LOCALE_FIVE_ENDING

    if abs(new_price - price) <= _EPS:
        return price, None
    return new_price, rule


def denomination_step(price: float) -> float:
    """Currency rounding granularity for a price of this magnitude."""
    if price < 100:
        return 0.5
    if price < 1000:
        return 5.0
    return 10.0


def round_to_denomination(
    price: float,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
) -> float:
    """Round to the nearest denomination, staying inside ``[lower, upper]``.

    When nearest-rounding would cross a bound, rounds toward the inside of
    the band instead (down from ``upper``, up from ``lower``). If no
    multiple of the step fits inside the band, the bound itself is
    returned.
    """
    step = denomination_step(price)
    rounded = round_half_up(price, step)

    if upper is not None and rounded > upper + _EPS:
        rounded = round_down_to(upper, step)
        if lower is not None and rounded < lower - _EPS:
            return round(upper, 2)
    if lower is not None and rounded < lower - _EPS:
        rounded = round_up_to(lower, step)
        if upper is not None and rounded > upper + _EPS:
            return round(lower, 2)
    return round(rounded, 2)
