"""
Heuristic demand forecasting over a fixed horizon.

Forecast formula
----------------
    demand = moving_average(sales, 7)
           × monthly_weight[reference_month]
           × external_factor
           × demand_pattern_multiplier
           × (1 + trend)

Component explanations
----------------------
moving_average:
    Mean of the last ``moving_average_window`` periods, or the whole series
    when it is shorter.

monthly_weight:
    Fixed 12-entry table from ``ForecastConfig.monthly_weights`` selected by
    the reference month. The caller's ``seasonal_factors`` do not feed it.

external_factor (each absent or zero signal contributes 1.0):
    holidays           → × holiday_multiplier (1.2)
    weather w ∈ [0,1]  → × (0.8 + 0.4w)      range [0.8, 1.2]
    economic e ∈ [0,1] → × (0.9 + 0.2e)      range [0.9, 1.1]

demand_pattern_multiplier:
    Regional pattern for the product category (see ``forecasting.calendar``).

trend:
    (mean(second half) − mean(first half)) / mean(first half), split at
    ``len // 2``. Zero with fewer than 2 points or a zero first-half mean.

Derived outputs
---------------
    confidence   = clamp(1 − CV, 0.1, 0.95)     0.5 if < 2 points, 0.1 if mean 0
    safety_stock = z × std × sqrt(lead_time / horizon)
    reorder      = demand × lead_time / horizon + safety_stock
    order_qty    = max(round(demand) − inventory, 0)

Risk (ratio = inventory / demand, unrounded):
    1. LOW    : ratio > 1.5 and confidence > 0.8
    2. MEDIUM : ratio > 0.8 and confidence > 0.6
    3. HIGH   : otherwise, and always when demand is exactly 0
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from retail_forecaster.config import ForecastConfig
from retail_forecaster.errors import InvalidInput
from retail_forecaster.forecasting.calendar import (
    demand_pattern_multiplier,
    holidays_in_horizon,
)
from retail_forecaster.models.forecast import ExternalFactors, ForecastInput, ForecastResult
from retail_forecaster.taxonomy.forecast_taxonomy import RiskLevel
from retail_forecaster.utils.numeric import (
    clamp,
    coefficient_of_variation,
    mean,
    moving_average,
    population_std,
    round_half_up,
)
from retail_forecaster.utils.time_utils import today_utc

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95
SHORT_SERIES_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ForecastComponents:
    """Intermediate values of one forecast, before boundary rounding.

    Attributes:
        base_level:        Moving average of recent sales.
        seasonal_weight:   Monthly weight for the reference month.
        external_factor:   Combined holiday / weather / economic multiplier.
        pattern_factor:    Regional demand pattern multiplier.
        trend:             Relative change between series halves.
        predicted_demand:  Unrounded demand over the horizon.
        confidence:        Confidence score in [0.1, 0.95] (or 0.5).
        safety_stock:      Buffer units for the lead time.
        reorder_point:     Unrounded reorder point.
    """

    base_level:       float
    seasonal_weight:  float
    external_factor:  float
    pattern_factor:   float
    trend:            float
    predicted_demand: float
    confidence:       float
    safety_stock:     float
    reorder_point:    float


class ForecastEngine:
    """Projects product demand over ``config.forecast_horizon_days``.

    The engine holds only its frozen config and clock; every call is
    independent, so one instance can be shared across worker threads.

    Args:
        config: Forecast parameters (weights, horizon, z-score).
        clock:  Zero-argument callable returning "today". Used when
            ``forecast()`` is not given an explicit ``reference_date``.
    """

    def __init__(
        self,
        config: Optional[ForecastConfig] = None,
        clock: Callable[[], date] = today_utc,
    ) -> None:
        self.config = config or ForecastConfig()
        self.clock = clock

    @property
    def forecast_period(self) -> str:
        return f"{self.config.forecast_horizon_days}_DAYS"

    def forecast(
        self,
        data: ForecastInput,
        reference_date: Optional[date] = None,
    ) -> ForecastResult:
        """Produce a demand forecast for one product.

        Args:
            data: Sales history and context.
            reference_date: Date the forecast is made on; selects the
                monthly weight. Defaults to ``self.clock()``.

        Returns:
            ``ForecastResult`` with integer units and a risk level.

        Raises:
            InvalidInput: If the input fails validation.
        """
        ref = reference_date or self.clock()
        components = self.compute_components(data, ref)

        demand = int(round_half_up(components.predicted_demand))
        order_qty = max(demand - data.current_inventory, 0)
        risk = self._assess_risk(
            data.current_inventory, components.predicted_demand, components.confidence
        )

        logger.debug(
            "Forecast product=%s demand=%d confidence=%.3f risk=%s",
            data.product_id, demand, components.confidence, risk,
        )

        return ForecastResult(
            product_id=data.product_id,
            predicted_demand=demand,
            confidence_score=components.confidence,
            recommended_order_quantity=order_qty,
            reorder_point=int(round_half_up(components.reorder_point)),
            forecast_period=self.forecast_period,
            risk_level=risk,
        )

    def compute_components(
        self,
        data: ForecastInput,
        reference_date: date,
    ) -> ForecastComponents:
        """Validate ``data`` and compute every intermediate forecast value."""
        self._validate(data)
        sales = data.historical_sales
        horizon = self.config.forecast_horizon_days

        base_level = moving_average(sales, self.config.moving_average_window)
        seasonal_weight = self.config.monthly_weights[reference_date.month - 1]
        external_factor = self._external_factor(data.external_factors, reference_date)
        pattern_factor = demand_pattern_multiplier(
            data.category, reference_date, self.config.demand_patterns
        )
        trend = _trend(sales)

        predicted = base_level * seasonal_weight * external_factor * pattern_factor
        predicted *= 1.0 + trend

        std = population_std(sales)
        safety_stock = (
            self.config.service_level_z_score * std * math.sqrt(data.lead_time / horizon)
        )
        reorder_point = predicted * data.lead_time / horizon + safety_stock

        return ForecastComponents(
            base_level=base_level,
            seasonal_weight=seasonal_weight,
            external_factor=external_factor,
            pattern_factor=pattern_factor,
            trend=trend,
            predicted_demand=predicted,
            confidence=_confidence(sales),
            safety_stock=safety_stock,
            reorder_point=reorder_point,
        )

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _external_factor(self, factors: ExternalFactors, reference_date: date) -> float:
        adjustment = 1.0

        holidays = factors.holidays
        if holidays is None and self.config.infer_holidays:
            holidays = holidays_in_horizon(
                reference_date,
                self.config.forecast_horizon_days,
                self.config.public_holidays,
            )
        if holidays:
            adjustment *= self.config.holiday_multiplier

        # A score of 0 counts as absent
        if factors.weather:
            adjustment *= 0.8 + factors.weather * 0.4

        if factors.economic_indicators:
            adjustment *= 0.9 + factors.economic_indicators * 0.2

        return adjustment

    @staticmethod
    def _assess_risk(inventory: int, demand: float, confidence: float) -> RiskLevel:
        if demand == 0:
            return RiskLevel.HIGH
        ratio = inventory / demand
        if ratio > 1.5 and confidence > 0.8:
            return RiskLevel.LOW
        if ratio > 0.8 and confidence > 0.6:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    @staticmethod
    def _validate(data: ForecastInput) -> None:
        pid = data.product_id
        if not data.historical_sales:
            raise InvalidInput(
                "historical_sales must contain at least one period.",
                product_id=pid, field="historical_sales",
            )
        for value in data.historical_sales:
            if not math.isfinite(value) or value < 0:
                raise InvalidInput(
                    f"historical_sales values must be finite and non-negative, got {value}.",
                    product_id=pid, field="historical_sales",
                )
        if data.current_inventory < 0:
            raise InvalidInput(
                f"current_inventory must be non-negative, got {data.current_inventory}.",
                product_id=pid, field="current_inventory",
            )
        if data.lead_time <= 0:
            raise InvalidInput(
                f"lead_time must be positive, got {data.lead_time}.",
                product_id=pid, field="lead_time",
            )
        factors = data.external_factors
        for name in ("weather", "economic_indicators"):
            value = getattr(factors, name)
            if value is not None and not 0.0 <= value <= 1.0:
                raise InvalidInput(
                    f"external_factors.{name} must be in [0, 1], got {value}.",
                    product_id=pid, field=f"external_factors.{name}",
                )


# ── Series statistics ─────────────────────────────────────────────────────────

def _trend(sales: list[float]) -> float:
    if len(sales) < 2:
        return 0.0
    mid = len(sales) // 2
    first_mean = mean(sales[:mid])
    if first_mean == 0:
        return 0.0
    return (mean(sales[mid:]) - first_mean) / first_mean


def _confidence(sales: list[float]) -> float:
    if len(sales) < 2:
        return SHORT_SERIES_CONFIDENCE
    cv = coefficient_of_variation(sales)
    if math.isinf(cv):
        return MIN_CONFIDENCE
    return clamp(1.0 - cv, MIN_CONFIDENCE, MAX_CONFIDENCE)
