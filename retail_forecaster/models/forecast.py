"""
Demand forecast input and output models.

``ForecastInput`` is one product's history and context for a single
``ForecastEngine.forecast()`` call. Range checks (empty history, negative
inventory, non-positive lead time) belong to the engine, which raises
``InvalidInput``; the model only enforces types, so a malformed item can
still travel through a batch and fail on its own.

``ForecastResult`` is the engine's output. Both models are frozen - a
result is produced once per call and persisted append-only.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from retail_forecaster.taxonomy.forecast_taxonomy import RiskLevel


class ExternalFactors(BaseModel):
    """Optional contextual demand signals.

    Attributes:
        weather: Weather favourability score in [0, 1], or ``None``.
        holidays: Whether the horizon contains holidays. ``None`` means the
            caller did not say; the engine may infer it from the calendar.
        events: Free-form labels of local events (context only).
        economic_indicators: Economic sentiment score in [0, 1], or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    weather: Optional[float] = None
    holidays: Optional[bool] = None
    events: list[str] = Field(default_factory=list)
    economic_indicators: Optional[float] = None


class ForecastInput(BaseModel):
    """Sales history and context for one product.

    Attributes:
        product_id: Opaque product identifier.
        historical_sales: Units sold per period, most recent last.
        seasonal_factors: Caller-supplied seasonal weights (context only).
        external_factors: Weather / holiday / economic signals.
        current_inventory: Units on hand.
        lead_time: Days between reorder and replenishment.
        category: Product category, used for regional demand patterns.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    historical_sales: list[float]
    seasonal_factors: list[float] = Field(default_factory=list)
    external_factors: ExternalFactors = Field(default_factory=ExternalFactors)
    current_inventory: int
    lead_time: int
    category: Optional[str] = None


class ForecastResult(BaseModel):
    """Demand projection for one product over the forecast horizon.

    Attributes:
        product_id: Product the forecast belongs to.
        predicted_demand: Units expected over the horizon.
        confidence_score: Forecast confidence in [0, 1].
        recommended_order_quantity: Units to order now (never negative).
        reorder_point: Inventory level that should trigger replenishment.
        forecast_period: Horizon label, e.g. ``"30_DAYS"``.
        risk_level: Stock-out risk classification.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    predicted_demand: int
    confidence_score: float
    recommended_order_quantity: int
    reorder_point: int
    forecast_period: str = "30_DAYS"
    risk_level: RiskLevel

    @model_validator(mode="after")
    def validate_result_ranges(self) -> "ForecastResult":
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(
                f"confidence_score must be in [0.0, 1.0], got {self.confidence_score}."
            )
        if self.predicted_demand < 0:
            raise ValueError("predicted_demand must be non-negative.")
        if self.recommended_order_quantity < 0:
            raise ValueError("recommended_order_quantity must be non-negative.")
        if self.reorder_point < 0:
            raise ValueError("reorder_point must be non-negative.")
        return self
