"""
Rule-based dynamic pricing.

Pipeline (each step may append a ``ReasoningEntry``)
----------------------------------------------------
    1. Cost floor        floor = cost × (1 + min_margin) × (1 + vat_rate)
    2. Competitor        position-specific nudge vs competitor mean / min
    3. Demand/inventory  independent multipliers, all may apply
    4. Seasonal          × seasonal_factor
    5. Locale endings    0 / 5 price endings; mobile payment ceiling flag
    6. Change cap        |change| ≤ max_price_change_fraction × current
    7. Denominations     0.50 / 5 / 10 steps by magnitude, inside the cap
    8. Floor guarantee   lift to the floor (rounded up) if still below it

Competitor rules compare the *current* shelf price, not the running price,
so a floor lift in step 1 does not by itself trigger a competitor nudge.

Step 8 is the only step allowed to break the change cap: a price below
cost-plus-margin-plus-tax is never recommended.

Impact projection
-----------------
    demand_change  = elasticity × pct / 100                 (elasticity −1.2)
    revenue_change = (1 + pct / 100) × (1 + demand_change) − 1
    margin_change  = (new − cost) / new − (current − cost) / current

Confidence
----------
    0.50
    + 0.20 if more than 3 competitor prices, else + 0.10 if any
    + 0.15 if demand_score > 0.7 or < 0.3
    + 0.10 if sales_velocity > 0
    + min(0.05 × fired rules, 0.15)
    capped at 0.95
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from retail_forecaster.config import PricingConfig
from retail_forecaster.errors import InvalidInput
from retail_forecaster.models.pricing import (
    ExpectedImpact,
    PricingInput,
    PricingRecommendation,
)
from retail_forecaster.pricing.reasoning import ReasoningBuilder
from retail_forecaster.pricing.rounding import (
    denomination_step,
    normalize_price_ending,
    round_to_denomination,
)
from retail_forecaster.taxonomy.pricing_taxonomy import MarketPosition, PricingRule
from retail_forecaster.utils.numeric import mean, round_half_up, round_up_to

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 0.95

_EPS = 1e-9

_LOCALE_MESSAGES: dict[PricingRule, str] = {
    PricingRule.LOCALE_ROUND_DOWN:  "Rounded down to a 0 ending for local price preference",
    PricingRule.LOCALE_ROUND_UP:    "Rounded up to a 0 ending for local price preference",
    PricingRule.LOCALE_FIVE_ENDING: "Adjusted to a 5 ending for local price preference",
}


class PricingEngine:
    """Recommends a revised price for one product per call.

    Holds only its frozen ``PricingConfig``; safe to share across threads.
    """

    def __init__(self, config: Optional[PricingConfig] = None) -> None:
        self.config = config or PricingConfig()

    def min_price(self, cost_price: float) -> float:
        """Cost plus minimum margin plus sales tax."""
        return cost_price * (1 + self.config.min_margin) * (1 + self.config.vat_rate)

    def recommend_price(self, data: PricingInput) -> PricingRecommendation:
        """Run the pricing pipeline for one product.

        Raises:
            InvalidInput: If prices, scores or levels are out of range.
        """
        self._validate(data)
        cfg = self.config
        reasons = ReasoningBuilder()
        current = data.current_price
        price = current

        # ── 1. Cost floor ─────────────────────────────────────────────────────
        floor = self.min_price(data.cost_price)
        if price < floor:
            reasons.add_multiplier(
                PricingRule.COST_FLOOR,
                f"Adjusted to maintain minimum {cfg.min_margin * 100:.0f}% margin",
                floor / price,
            )
            price = floor

        # ── 2. Competitor positioning ─────────────────────────────────────────
        competitor = _competitor_adjustment(
            current, data.competitor_prices, data.market_position
        )
        if competitor is not None:
            rule, message, multiplier = competitor
            price *= multiplier
            reasons.add_multiplier(rule, message, multiplier)

        # ── 3. Demand / inventory ─────────────────────────────────────────────
        for rule, message, multiplier in _demand_adjustments(data):
            price *= multiplier
            reasons.add_multiplier(rule, message, multiplier)

        # ── 4. Seasonal ───────────────────────────────────────────────────────
        if data.seasonal_factor != 1.0:
            price *= data.seasonal_factor
            reasons.add_multiplier(
                PricingRule.SEASONAL,
                f"Seasonal adjustment: {(data.seasonal_factor - 1) * 100:.1f}%",
                data.seasonal_factor,
            )

        # ── 5. Locale endings ─────────────────────────────────────────────────
        normalized, locale_rule = normalize_price_ending(
            price, cfg.locale_rounding_min_price
        )
        if locale_rule is not None:
            reasons.add(
                locale_rule,
                _LOCALE_MESSAGES[locale_rule],
                delta=round(normalized / price - 1.0, 6),
            )
            price = normalized

        if price > cfg.mobile_payment_ceiling:
            reasons.add(
                PricingRule.MOBILE_PAYMENT_CEILING,
                f"Price exceeds the {cfg.mobile_payment_ceiling:,.0f} mobile payment "
                "limit - consider a payment plan",
            )

        # ── 6. Change cap ─────────────────────────────────────────────────────
        max_change = current * cfg.max_price_change_fraction
        lower, upper = current - max_change, current + max_change
        change = price - current
        if abs(change) > max_change + _EPS:
            price = upper if change > 0 else lower
            reasons.add(
                PricingRule.CHANGE_CAP,
                f"Limited price change to {cfg.max_price_change_fraction * 100:.0f}% maximum",
                delta=math.copysign(cfg.max_price_change_fraction, change),
            )

        # ── 7. Denominations ──────────────────────────────────────────────────
        price = round_to_denomination(price, lower=lower, upper=upper)

        # ── 8. Floor guarantee ────────────────────────────────────────────────
        if price < floor:
            step = denomination_step(floor)
            lifted = round(round_up_to(floor, step), 2)
            if lifted < floor:
                lifted = round(lifted + step, 2)
            reasons.add_multiplier(
                PricingRule.COST_FLOOR,
                f"Raised to {lifted:.2f} to keep the minimum "
                f"{cfg.min_margin * 100:.0f}% margin after tax",
                lifted / price,
            )
            price = lifted

        price_change = round(price - current, 2)
        pct = price_change / current * 100

        confidence = self._confidence(data, len(reasons))
        logger.debug(
            "Pricing product=%s current=%.2f recommended=%.2f rules=%d",
            data.product_id, current, price, len(reasons),
        )

        return PricingRecommendation(
            product_id=data.product_id,
            current_price=current,
            recommended_price=price,
            price_change=price_change,
            price_change_percentage=round(pct, 4),
            reasoning=reasons.build(),
            confidence=confidence,
            expected_impact=self._expected_impact(data, price, pct),
        )

    # ── Scoring ───────────────────────────────────────────────────────────────

    def _expected_impact(
        self,
        data: PricingInput,
        new_price: float,
        pct: float,
    ) -> ExpectedImpact:
        demand_change = self.config.price_elasticity * (pct / 100)
        revenue_change = (1 + pct / 100) * (1 + demand_change) - 1
        new_margin = (new_price - data.cost_price) / new_price
        old_margin = (data.current_price - data.cost_price) / data.current_price
        return ExpectedImpact(
            demand_change=_round2(demand_change),
            revenue_change=_round2(revenue_change),
            margin_change=_round2(new_margin - old_margin),
        )

    @staticmethod
    def _confidence(data: PricingInput, reason_count: int) -> float:
        confidence = 0.5
        if len(data.competitor_prices) > 3:
            confidence += 0.2
        elif data.competitor_prices:
            confidence += 0.1
        if data.demand_score > 0.7 or data.demand_score < 0.3:
            confidence += 0.15
        if data.sales_velocity > 0:
            confidence += 0.1
        confidence += min(reason_count * 0.05, 0.15)
        return round(min(confidence, MAX_CONFIDENCE), 4)

    # ── Validation ────────────────────────────────────────────────────────────

    @staticmethod
    def _validate(data: PricingInput) -> None:
        pid = data.product_id
        for name in ("current_price", "cost_price"):
            value = getattr(data, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidInput(
                    f"{name} must be positive, got {value}.",
                    product_id=pid, field=name,
                )
        bad = [p for p in data.competitor_prices if not math.isfinite(p) or p <= 0]
        if bad:
            raise InvalidInput(
                f"competitor_prices must all be positive, got {bad}.",
                product_id=pid, field="competitor_prices",
            )
        if not 0.0 <= data.demand_score <= 1.0:
            raise InvalidInput(
                f"demand_score must be in [0, 1], got {data.demand_score}.",
                product_id=pid, field="demand_score",
            )
        if data.inventory_level < 0:
            raise InvalidInput(
                f"inventory_level must be non-negative, got {data.inventory_level}.",
                product_id=pid, field="inventory_level",
            )
        if not math.isfinite(data.sales_velocity) or data.sales_velocity < 0:
            raise InvalidInput(
                f"sales_velocity must be non-negative, got {data.sales_velocity}.",
                product_id=pid, field="sales_velocity",
            )
        if not math.isfinite(data.seasonal_factor) or data.seasonal_factor <= 0:
            raise InvalidInput(
                f"seasonal_factor must be positive, got {data.seasonal_factor}.",
                product_id=pid, field="seasonal_factor",
            )


# ── Rule tables ───────────────────────────────────────────────────────────────

def _competitor_adjustment(
    current_price: float,
    competitor_prices: list[float],
    position: MarketPosition,
) -> Optional[tuple[PricingRule, str, float]]:
    if not competitor_prices:
        return None

    avg = mean(competitor_prices)
    cheapest = min(competitor_prices)

    if position == MarketPosition.PREMIUM:
        if current_price < avg * 1.1:
            return (
                PricingRule.PREMIUM_POSITIONING,
                "Adjusted upward to maintain premium positioning",
                1.05,
            )
    elif position == MarketPosition.COMPETITIVE:
        if current_price > avg * 1.05:
            return (
                PricingRule.COMPETITIVE_MATCH,
                "Adjusted to match competitive pricing",
                0.97,
            )
        if current_price < avg * 0.95:
            return (
                PricingRule.COMPETITIVE_RAISE,
                "Adjusted upward to competitive range",
                1.03,
            )
    elif position == MarketPosition.BUDGET:
        if current_price > cheapest * 1.05:
            return (
                PricingRule.BUDGET_UNDERCUT,
                "Adjusted to maintain budget positioning",
                0.95,
            )
    return None


def _demand_adjustments(data: PricingInput) -> list[tuple[PricingRule, str, float]]:
    fired: list[tuple[PricingRule, str, float]] = []

    if data.demand_score > 0.8:
        fired.append((
            PricingRule.HIGH_DEMAND,
            "High demand detected - price increase recommended",
            1.05,
        ))
    elif data.demand_score < 0.3:
        fired.append((
            PricingRule.LOW_DEMAND,
            "Low demand - price reduction to stimulate sales",
            0.95,
        ))

    if data.sales_velocity > 10:
        fired.append((
            PricingRule.FAST_MOVING,
            "Fast-moving inventory - slight price increase",
            1.03,
        ))

    if data.inventory_level > 100:
        fired.append((
            PricingRule.EXCESS_INVENTORY,
            "High inventory levels - price reduction to clear stock",
            0.97,
        ))
    elif data.inventory_level < 10:
        fired.append((
            PricingRule.LOW_INVENTORY,
            "Low inventory - slight price increase",
            1.02,
        ))

    return fired


def _round2(value: float) -> float:
    return round(round_half_up(value * 100) / 100, 2)
