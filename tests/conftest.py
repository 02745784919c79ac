"""
Shared pytest fixtures for the Retail Forecaster test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``db_file``: A schema-initialized SQLite file under ``tmp_path`` for
    code that opens its own connections (sinks, stages, CLI).
  - Sample engine inputs and a fixed reference date.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from retail_forecaster.db.connection import get_connection
from retail_forecaster.db.schema import apply_schema
from retail_forecaster.models.forecast import ForecastInput, ForecastResult
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.pricing import PricingInput
from retail_forecaster.models.tenant import TenantContext
from retail_forecaster.taxonomy.forecast_taxonomy import RiskLevel
from retail_forecaster.taxonomy.pricing_taxonomy import MarketPosition

STEADY_SALES = [45, 52, 38, 61, 47, 55, 42, 58, 49, 53, 41, 56, 48, 62, 44]


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def db_file(tmp_path: Path) -> str:
    """Path to an on-disk SQLite database with the schema applied."""
    path = str(tmp_path / "db" / "test.db")
    with get_connection(path) as conn:
        apply_schema(conn)
    return path


# ── Sample domain objects ─────────────────────────────────────────────────────

@pytest.fixture
def reference_date() -> date:
    """A March date: monthly weight 1.0, no default holidays in 30 days."""
    return date(2025, 3, 3)


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(tenant_id="acme")


@pytest.fixture
def sample_forecast_input() -> ForecastInput:
    """Fifteen periods of steady sales, inventory 15, lead time 7."""
    return ForecastInput(
        product_id="SKU-A",
        historical_sales=STEADY_SALES,
        current_inventory=15,
        lead_time=7,
    )


@pytest.fixture
def sample_forecast_result() -> ForecastResult:
    return ForecastResult(
        product_id="SKU-A",
        predicted_demand=53,
        confidence_score=0.857,
        recommended_order_quantity=38,
        reorder_point=18,
        forecast_period="30_DAYS",
        risk_level=RiskLevel.HIGH,
    )


@pytest.fixture
def sample_pricing_input() -> PricingInput:
    """Floor-bound pricing input: current 150, cost 120, competitor mean 150."""
    return PricingInput(
        product_id="SKU-B",
        current_price=150.0,
        cost_price=120.0,
        competitor_prices=[145.0, 155.0, 148.0, 152.0],
        demand_score=0.5,
        inventory_level=50,
        sales_velocity=5.0,
        market_position=MarketPosition.COMPETITIVE,
    )


@pytest.fixture
def sample_run_metadata() -> RunMetadata:
    """A valid mutable ``RunMetadata`` for testing."""
    return RunMetadata(
        run_slug="test-run-uuid-0001",
        pipeline_stage="forecast",
        tenant_id="acme",
        status="started",
        config_snapshot={"database": {"db_path": ":memory:"}, "debug": True},
        started_at=datetime(2025, 3, 3, 8, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_pricing_input():
    """Factory for neutral ``PricingInput`` values that fire no rules by default."""

    def _make(product_id: str, **overrides) -> PricingInput:
        fields = dict(
            product_id=product_id,
            current_price=100.0,
            cost_price=50.0,
            competitor_prices=[],
            demand_score=0.5,
            inventory_level=50,
            sales_velocity=5.0,
            market_position=MarketPosition.COMPETITIVE,
        )
        fields.update(overrides)
        return PricingInput(**fields)

    return _make
