"""
Pricing taxonomy.

Two dimensions:
  - ``MarketPosition`` - the merchandising stance of a product, which
    decides how its price tracks competitors.
  - ``PricingRule``    - identifier of each adjustment rule the pricing
    engine can fire. Every reasoning entry carries one, so audit replays
    and tests can match on rule ids instead of message text.

This module has NO imports from any other ``retail_forecaster`` package.
"""

from enum import StrEnum


class MarketPosition(StrEnum):
    """Merchandising stance relative to competitors."""

    PREMIUM = "PREMIUM"
    """Stay at least 10% above the competitor mean."""

    COMPETITIVE = "COMPETITIVE"
    """Stay within 5% of the competitor mean."""

    BUDGET = "BUDGET"
    """Stay within 5% of the cheapest competitor."""


class PricingRule(StrEnum):
    """Adjustment rules, listed in pipeline order."""

    # ── Floor ─────────────────────────────────────────────────────────────────
    COST_FLOOR = "cost_floor"

    # ── Competitor positioning ────────────────────────────────────────────────
    PREMIUM_POSITIONING = "premium_positioning"
    COMPETITIVE_MATCH = "competitive_match"
    COMPETITIVE_RAISE = "competitive_raise"
    BUDGET_UNDERCUT = "budget_undercut"

    # ── Demand / inventory ────────────────────────────────────────────────────
    HIGH_DEMAND = "high_demand"
    LOW_DEMAND = "low_demand"
    FAST_MOVING = "fast_moving"
    EXCESS_INVENTORY = "excess_inventory"
    LOW_INVENTORY = "low_inventory"

    # ── Calendar ──────────────────────────────────────────────────────────────
    SEASONAL = "seasonal"

    # ── Locale ────────────────────────────────────────────────────────────────
    LOCALE_ROUND_DOWN = "locale_round_down"
    LOCALE_ROUND_UP = "locale_round_up"
    LOCALE_FIVE_ENDING = "locale_five_ending"
    MOBILE_PAYMENT_CEILING = "mobile_payment_ceiling"

    # ── Guard rails ───────────────────────────────────────────────────────────
    CHANGE_CAP = "change_cap"
