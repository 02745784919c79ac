"""
Forecast batch stage.

Loads a catalog file, forecasts every product with ``ForecastEngine``, and
persists the results for one tenant through ``SQLiteResultSink``.

Usage::

    stage = ForecastStage(config=app_config)
    run = stage.run(
        tenant=TenantContext(tenant_id="acme"),
        input_path=Path("catalog.json"),
        reference_date=date(2025, 3, 1),
    )
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from retail_forecaster.db.sink import SQLiteResultSink
from retail_forecaster.forecasting.engine import ForecastEngine
from retail_forecaster.ingestion.catalog import load_forecast_inputs
from retail_forecaster.models.forecast import ForecastResult
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.tenant import TenantContext
from retail_forecaster.pipeline.base import PipelineStage
from retail_forecaster.pipeline.orchestrator import BatchOrchestrator, BatchResult
from retail_forecaster.pricing.engine import PricingEngine
from retail_forecaster.utils.time_utils import today_utc

logger = logging.getLogger(__name__)


class ForecastStage(PipelineStage):
    """Batch demand forecasting for one tenant's catalog."""

    stage_name = "forecast"

    def _execute(
        self,
        run: RunMetadata,
        tenant: TenantContext,
        input_path: Path,
        reference_date: Optional[date] = None,
        **kwargs,
    ) -> BatchResult[ForecastResult]:
        inputs = load_forecast_inputs(input_path)
        db = self.config.database
        orchestrator = BatchOrchestrator(
            forecast_engine=ForecastEngine(self.config.forecast),
            pricing_engine=PricingEngine(self.config.pricing),
            sink=SQLiteResultSink(self.db_path, db.wal_mode, db.busy_timeout_ms),
            config=self.config.batch,
        )
        return orchestrator.run_forecasts(
            inputs, tenant, reference_date=reference_date or today_utc(), run_id=run.run_id,
        )
