"""
Dynamic pricing input and output models.

``PricingRecommendation.reasoning`` is an ordered tuple of
``ReasoningEntry`` values, one per rule that fired, in the order the
engine applied them. The order is part of the contract: audit replays walk
the tuple front to back.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retail_forecaster.taxonomy.pricing_taxonomy import MarketPosition, PricingRule


class PricingInput(BaseModel):
    """Price, cost and market context for one product.

    Attributes:
        product_id: Opaque product identifier.
        current_price: Current shelf price.
        cost_price: Unit cost.
        competitor_prices: Observed competitor prices (may be empty).
        demand_score: Demand strength in [0, 1].
        inventory_level: Units on hand.
        sales_velocity: Units sold per day.
        seasonal_factor: Caller-supplied seasonal multiplier (> 0).
        market_position: Merchandising stance.
        category: Product category (used only to derive a seasonal factor).
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    current_price: float
    cost_price: float
    competitor_prices: list[float] = Field(default_factory=list)
    demand_score: float
    inventory_level: int
    sales_velocity: float
    seasonal_factor: float = 1.0
    market_position: MarketPosition
    category: Optional[str] = None


class ReasoningEntry(BaseModel):
    """One fired pricing rule.

    Attributes:
        rule: Rule identifier.
        message: Human-readable justification.
        delta: Fractional price change applied by the rule (``-0.05`` for a
            5% cut), or ``None`` for informational flags.
    """

    model_config = ConfigDict(frozen=True)

    rule: PricingRule
    message: str
    delta: Optional[float] = None


class ExpectedImpact(BaseModel):
    """Projected business impact of a price change, as fractions."""

    model_config = ConfigDict(frozen=True)

    demand_change: float
    revenue_change: float
    margin_change: float


class PricingRecommendation(BaseModel):
    """Recommended price with audit trail and projected impact.

    Attributes:
        product_id: Product the recommendation belongs to.
        current_price: Price at the time of the call.
        recommended_price: Proposed new price.
        price_change: ``recommended_price - current_price``.
        price_change_percentage: Change as a percentage of ``current_price``.
        reasoning: Fired rules in application order.
        confidence: Recommendation confidence in [0, 0.95].
        expected_impact: Elasticity-based impact projection.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    current_price: float
    recommended_price: float
    price_change: float
    price_change_percentage: float
    reasoning: tuple[ReasoningEntry, ...] = ()
    confidence: float
    expected_impact: ExpectedImpact

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 0.95:
            raise ValueError(f"confidence must be in [0.0, 0.95], got {v}.")
        return v

    @property
    def reasoning_messages(self) -> list[str]:
        """Plain justification strings, in application order."""
        return [entry.message for entry in self.reasoning]

    @property
    def fired_rules(self) -> list[PricingRule]:
        """Rule ids, in application order."""
        return [entry.rule for entry in self.reasoning]
