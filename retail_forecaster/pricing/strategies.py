"""
Calendar-driven seasonal pricing strategies.

``strategy_seasonal_factor()`` turns a product category and a date into the
``seasonal_factor`` the pricing engine multiplies by. The catalog loader
calls it for rows that carry a category but no explicit factor; callers
that already know their seasonal factor bypass it entirely.

Default strategies (``PricingConfig.strategies``)
-------------------------------------------------
    payday_boost      ×1.02  days 28-31 and 1-2     electronics, clothing, luxury_items
    school_season     ×1.15  Jan, May, Sep          stationery, uniforms, books
    harvest_discount  ×0.90  Mar, Apr, Oct, Nov     vegetables, fruits, grains

Unlike regional demand patterns, every active strategy applies and the
multipliers compose.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Optional

from retail_forecaster.config import PricingStrategy


def active_strategies(
    category: Optional[str],
    on_date: date,
    strategies: Sequence[PricingStrategy],
) -> list[PricingStrategy]:
    """Strategies whose calendar window and category keywords match."""
    if not category:
        return []
    needle = category.lower()
    active: list[PricingStrategy] = []
    for strategy in strategies:
        if strategy.months and on_date.month not in strategy.months:
            continue
        if strategy.days and on_date.day not in strategy.days:
            continue
        if any(keyword in needle for keyword in strategy.categories):
            active.append(strategy)
    return active


def strategy_seasonal_factor(
    category: Optional[str],
    on_date: date,
    strategies: Sequence[PricingStrategy],
) -> float:
    """Product of all active strategy multipliers (1.0 when none apply)."""
    factor = 1.0
    for strategy in active_strategies(category, on_date, strategies):
        factor *= strategy.multiplier
    return round(factor, 6)
