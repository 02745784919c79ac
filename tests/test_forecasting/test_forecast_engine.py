"""Tests for ForecastEngine: formula steps, risk classification and validation."""

from __future__ import annotations

from datetime import date

import pytest

from retail_forecaster.config import DemandPattern, ForecastConfig
from retail_forecaster.errors import InvalidInput
from retail_forecaster.forecasting.engine import ForecastEngine
from retail_forecaster.models.forecast import ExternalFactors, ForecastInput
from retail_forecaster.taxonomy.forecast_taxonomy import RiskLevel

MARCH = date(2025, 3, 3)        # weight 1.0
DECEMBER = date(2025, 12, 1)    # weight 1.3


def _input(sales, inventory=0, lead_time=7, **kwargs) -> ForecastInput:
    return ForecastInput(
        product_id="SKU-1",
        historical_sales=sales,
        current_inventory=inventory,
        lead_time=lead_time,
        **kwargs,
    )


# ── Fifteen-period history ────────────────────────────────────────────────────

class TestFifteenPeriodHistory:
    def test_demand_and_quantities(self, sample_forecast_input, reference_date):
        result = ForecastEngine().forecast(sample_forecast_input, reference_date)
        # 353/7 = 50.43 moving average, trend +5.77%, March weight 1.0
        assert result.predicted_demand == 53
        assert result.recommended_order_quantity == 38
        assert result.reorder_point == 18
        assert result.forecast_period == "30_DAYS"

    def test_risk_is_high_when_inventory_far_below_demand(
        self, sample_forecast_input, reference_date
    ):
        result = ForecastEngine().forecast(sample_forecast_input, reference_date)
        assert result.risk_level == RiskLevel.HIGH

    def test_confidence_from_coefficient_of_variation(
        self, sample_forecast_input, reference_date
    ):
        result = ForecastEngine().forecast(sample_forecast_input, reference_date)
        assert result.confidence_score == pytest.approx(0.857, abs=2e-3)

    def test_components(self, sample_forecast_input, reference_date):
        c = ForecastEngine().compute_components(sample_forecast_input, reference_date)
        assert c.base_level == pytest.approx(353 / 7)
        assert c.seasonal_weight == 1.0
        assert c.external_factor == 1.0
        assert c.pattern_factor == 1.0
        assert c.trend == pytest.approx(0.057721, abs=1e-6)
        assert c.predicted_demand == pytest.approx(53.339, abs=1e-3)

    def test_deterministic(self, sample_forecast_input, reference_date):
        engine = ForecastEngine()
        assert engine.forecast(sample_forecast_input, reference_date) == engine.forecast(
            sample_forecast_input, reference_date
        )


# ── Formula steps ─────────────────────────────────────────────────────────────

class TestForecastSteps:
    def test_moving_average_uses_whole_series_when_short(self):
        result = ForecastEngine().forecast(_input([10, 10, 20, 20]), MARCH)
        # mean 15, trend (20 - 10) / 10 = 1.0
        assert result.predicted_demand == 30

    def test_monthly_weight_selected_by_reference_month(self):
        result = ForecastEngine().forecast(_input([10] * 7), DECEMBER)
        assert result.predicted_demand == 13

    def test_caller_seasonal_factors_do_not_replace_monthly_weight(self):
        data = _input([10] * 7, seasonal_factors=[5.0] * 12)
        assert ForecastEngine().forecast(data, MARCH).predicted_demand == 10

    def test_clock_used_when_no_reference_date(self):
        engine = ForecastEngine(clock=lambda: DECEMBER)
        assert engine.forecast(_input([10] * 7)).predicted_demand == 13

    def test_holiday_multiplier(self):
        data = _input([10] * 7, external_factors=ExternalFactors(holidays=True))
        assert ForecastEngine().forecast(data, MARCH).predicted_demand == 12

    def test_weather_extremes(self):
        hot = _input([10] * 7, external_factors=ExternalFactors(weather=1.0))
        mild = _input([10] * 7, external_factors=ExternalFactors(weather=0.25))
        engine = ForecastEngine()
        assert engine.forecast(hot, MARCH).predicted_demand == 12
        assert engine.forecast(mild, MARCH).predicted_demand == 9

    def test_zero_scores_are_neutral(self):
        data = _input(
            [10] * 7,
            external_factors=ExternalFactors(weather=0.0, economic_indicators=0.0),
        )
        c = ForecastEngine().compute_components(data, MARCH)
        assert c.external_factor == 1.0
        assert ForecastEngine().forecast(data, MARCH).predicted_demand == 10

    def test_economic_indicator(self):
        data = _input([10] * 7, external_factors=ExternalFactors(economic_indicators=1.0))
        assert ForecastEngine().forecast(data, MARCH).predicted_demand == 11

    def test_events_are_context_only(self):
        data = _input([10] * 7, external_factors=ExternalFactors(events=["market_day"]))
        assert ForecastEngine().forecast(data, MARCH).predicted_demand == 10

    def test_zero_first_half_mean_gives_no_trend(self):
        # mean 2.5 rounds half-up to 3
        result = ForecastEngine().forecast(_input([0, 0, 5, 5]), MARCH)
        assert result.predicted_demand == 3

    def test_single_point_series(self):
        result = ForecastEngine().forecast(_input([10], inventory=0), MARCH)
        assert result.predicted_demand == 10
        assert result.confidence_score == 0.5
        assert result.reorder_point == 2   # 10 * 7/30, no safety stock

    def test_all_zero_sales(self):
        result = ForecastEngine().forecast(_input([0, 0, 0], inventory=4), MARCH)
        assert result.predicted_demand == 0
        assert result.recommended_order_quantity == 0
        assert result.confidence_score == pytest.approx(0.1)
        assert result.risk_level == RiskLevel.HIGH

    def test_order_quantity_never_negative(self):
        result = ForecastEngine().forecast(_input([10] * 7, inventory=500), MARCH)
        assert result.recommended_order_quantity == 0

    def test_horizon_sets_period_label(self):
        engine = ForecastEngine(ForecastConfig(forecast_horizon_days=14))
        assert engine.forecast(_input([10] * 7), MARCH).forecast_period == "14_DAYS"


class TestDemandPatterns:
    def test_christmas_pattern_for_vegetables_in_december(self):
        data = _input([10] * 7, category="fresh_vegetables")
        result = ForecastEngine().forecast(data, DECEMBER)
        assert result.predicted_demand == 26   # 10 x 1.3 x 2.0

    def test_staples_unadjusted_outside_listed_patterns(self):
        # October weight 1.1, no default pattern covers maize
        data = _input([10] * 7, category="maize")
        assert ForecastEngine().forecast(data, date(2025, 10, 1)).predicted_demand == 11

    def test_configured_pattern_can_lower_demand(self):
        config = ForecastConfig(
            demand_patterns=(
                DemandPattern(name="harvest", months=(3,), products=("maize",), multiplier=0.7),
            )
        )
        data = _input([10] * 7, category="maize")
        assert ForecastEngine(config).forecast(data, MARCH).predicted_demand == 7

    def test_unmatched_category(self):
        data = _input([10] * 7, category="hardware")
        assert ForecastEngine().forecast(data, DECEMBER).predicted_demand == 13


class TestHolidayInference:
    def test_disabled_by_default(self):
        result = ForecastEngine().forecast(_input([10] * 7), date(2025, 12, 20))
        assert result.predicted_demand == 13

    def test_inferred_from_public_holidays(self):
        engine = ForecastEngine(ForecastConfig(infer_holidays=True))
        result = engine.forecast(_input([10] * 7), date(2025, 12, 20))
        assert result.predicted_demand == 16   # 10 x 1.3 x 1.2 = 15.6

    def test_explicit_flag_wins_over_inference(self):
        engine = ForecastEngine(ForecastConfig(infer_holidays=True))
        data = _input([10] * 7, external_factors=ExternalFactors(holidays=False))
        assert engine.forecast(data, date(2025, 12, 20)).predicted_demand == 13


# ── Risk ──────────────────────────────────────────────────────────────────────

class TestRiskLevels:
    @pytest.mark.parametrize(
        "inventory, expected",
        [(20, RiskLevel.LOW), (10, RiskLevel.MEDIUM), (5, RiskLevel.HIGH)],
    )
    def test_inventory_ratio_bands(self, inventory, expected):
        # Constant series: confidence 0.95, demand 10
        result = ForecastEngine().forecast(_input([10] * 7, inventory=inventory), MARCH)
        assert result.risk_level == expected

    def test_ratio_uses_unrounded_demand(self):
        # 15 / 9.6 = 1.5625 clears the LOW band; 15 / round(9.6) would not
        result = ForecastEngine().forecast(_input([9.6] * 7, inventory=15), MARCH)
        assert result.predicted_demand == 10
        assert result.risk_level == RiskLevel.LOW

    def test_small_nonzero_demand_is_not_forced_high(self):
        # 0.4 rounds to 0 but the unrounded ratio is still meaningful
        result = ForecastEngine().forecast(_input([0.4] * 7, inventory=5), MARCH)
        assert result.predicted_demand == 0
        assert result.risk_level == RiskLevel.LOW

    def test_low_confidence_is_never_low_risk(self):
        # High variability keeps confidence at the 0.1 floor
        result = ForecastEngine().forecast(_input([0, 0, 0, 0, 0, 0, 70], inventory=100), MARCH)
        assert result.confidence_score == pytest.approx(0.1)
        assert result.risk_level == RiskLevel.HIGH


# ── Validation ────────────────────────────────────────────────────────────────

class TestValidation:
    def test_empty_history_rejected(self):
        with pytest.raises(InvalidInput) as exc_info:
            ForecastEngine().forecast(_input([]), MARCH)
        assert exc_info.value.field == "historical_sales"
        assert exc_info.value.product_id == "SKU-1"

    def test_negative_sales_rejected(self):
        with pytest.raises(InvalidInput):
            ForecastEngine().forecast(_input([5, -1, 3]), MARCH)

    def test_nan_sales_rejected(self):
        with pytest.raises(InvalidInput):
            ForecastEngine().forecast(_input([5, float("nan")]), MARCH)

    def test_negative_inventory_rejected(self):
        with pytest.raises(InvalidInput) as exc_info:
            ForecastEngine().forecast(_input([5], inventory=-1), MARCH)
        assert exc_info.value.field == "current_inventory"

    def test_non_positive_lead_time_rejected(self):
        with pytest.raises(InvalidInput) as exc_info:
            ForecastEngine().forecast(_input([5], lead_time=0), MARCH)
        assert exc_info.value.field == "lead_time"

    def test_weather_out_of_range_rejected(self):
        data = _input([5], external_factors=ExternalFactors(weather=1.5))
        with pytest.raises(InvalidInput) as exc_info:
            ForecastEngine().forecast(data, MARCH)
        assert exc_info.value.field == "external_factors.weather"

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            ForecastEngine().forecast(_input([]), MARCH)
