"""
Pricing batch stage.

Loads a catalog file, prices every product with ``PricingEngine``, and
persists the recommendations for one tenant through ``SQLiteResultSink``.
Rows without a ``seasonal_factor`` take one from the configured pricing
strategies on ``reference_date``.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from retail_forecaster.db.sink import SQLiteResultSink
from retail_forecaster.forecasting.engine import ForecastEngine
from retail_forecaster.ingestion.catalog import load_pricing_inputs
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.pricing import PricingRecommendation
from retail_forecaster.models.tenant import TenantContext
from retail_forecaster.pipeline.base import PipelineStage
from retail_forecaster.pipeline.orchestrator import BatchOrchestrator, BatchResult
from retail_forecaster.pricing.engine import PricingEngine
from retail_forecaster.utils.time_utils import today_utc

logger = logging.getLogger(__name__)


class PricingStage(PipelineStage):
    """Batch price recommendations for one tenant's catalog."""

    stage_name = "pricing"

    def _execute(
        self,
        run: RunMetadata,
        tenant: TenantContext,
        input_path: Path,
        reference_date: Optional[date] = None,
        **kwargs,
    ) -> BatchResult[PricingRecommendation]:
        inputs = load_pricing_inputs(
            input_path,
            reference_date=reference_date or today_utc(),
            strategies=self.config.pricing.strategies,
        )
        db = self.config.database
        orchestrator = BatchOrchestrator(
            forecast_engine=ForecastEngine(self.config.forecast),
            pricing_engine=PricingEngine(self.config.pricing),
            sink=SQLiteResultSink(self.db_path, db.wal_mode, db.busy_timeout_ms),
            config=self.config.batch,
        )
        return orchestrator.run_pricing(inputs, tenant, run_id=run.run_id)
