"""
Repository for persisted ``ForecastResult`` rows (``inventory_forecasts``).
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from retail_forecaster.db.repositories.base import BaseRepository
from retail_forecaster.models.forecast import ForecastResult
from retail_forecaster.taxonomy.forecast_taxonomy import RiskLevel

logger = logging.getLogger(__name__)


class ForecastResultRepository(BaseRepository):
    """Append-only access to ``inventory_forecasts``."""

    def insert(
        self,
        tenant_id: str,
        result: ForecastResult,
        run_id: Optional[int] = None,
    ) -> int:
        """Insert one forecast tagged with ``tenant_id``; return its ``forecast_id``."""
        self.execute(
            """
            INSERT INTO inventory_forecasts (
                tenant_id, run_id, product_id, predicted_demand,
                confidence_score, recommended_order_quantity, reorder_point,
                forecast_period, risk_level
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                tenant_id,
                run_id,
                result.product_id,
                result.predicted_demand,
                result.confidence_score,
                result.recommended_order_quantity,
                result.reorder_point,
                result.forecast_period,
                str(result.risk_level),
            ),
        )
        return self.last_insert_rowid()

    def get_for_tenant(
        self,
        tenant_id: str,
        product_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[ForecastResult]:
        """Fetch a tenant's forecasts, newest first.

        Args:
            tenant_id: Tenant whose rows to read.
            product_id: If provided, restrict to this product.
            limit: Maximum rows to return.
        """
        if product_id:
            rows = self.fetchall(
                """
                SELECT * FROM inventory_forecasts
                WHERE tenant_id = ? AND product_id = ?
                ORDER BY forecast_id DESC LIMIT ?;
                """,
                (tenant_id, product_id, limit),
            )
        else:
            rows = self.fetchall(
                """
                SELECT * FROM inventory_forecasts
                WHERE tenant_id = ?
                ORDER BY forecast_id DESC LIMIT ?;
                """,
                (tenant_id, limit),
            )
        return [_row_to_forecast(r) for r in rows]

    def count_for_run(self, run_id: int) -> int:
        row = self.fetchone(
            "SELECT COUNT(*) AS n FROM inventory_forecasts WHERE run_id = ?;",
            (run_id,),
        )
        return int(row["n"]) if row else 0


def _row_to_forecast(row: sqlite3.Row) -> ForecastResult:
    return ForecastResult(
        product_id=row["product_id"],
        predicted_demand=row["predicted_demand"],
        confidence_score=row["confidence_score"],
        recommended_order_quantity=row["recommended_order_quantity"],
        reorder_point=row["reorder_point"],
        forecast_period=row["forecast_period"],
        risk_level=RiskLevel(row["risk_level"]),
    )
