"""
Repository for persisted ``PricingRecommendation`` rows.

The ordered reasoning trail is stored as a JSON array of
``{"rule", "message", "delta"}`` objects and restored in the same order.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from retail_forecaster.db.repositories.base import BaseRepository
from retail_forecaster.models.pricing import (
    ExpectedImpact,
    PricingRecommendation,
    ReasoningEntry,
)

logger = logging.getLogger(__name__)


class PricingRecommendationRepository(BaseRepository):
    """Append-only access to ``pricing_recommendations``."""

    def insert(
        self,
        tenant_id: str,
        rec: PricingRecommendation,
        run_id: Optional[int] = None,
    ) -> int:
        """Insert one recommendation tagged with ``tenant_id``; return its id."""
        reasoning_json = json.dumps(
            [entry.model_dump(mode="json") for entry in rec.reasoning]
        )
        self.execute(
            """
            INSERT INTO pricing_recommendations (
                tenant_id, run_id, product_id, current_price, recommended_price,
                price_change, price_change_percentage, reasoning, confidence,
                demand_change, revenue_change, margin_change
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                tenant_id,
                run_id,
                rec.product_id,
                rec.current_price,
                rec.recommended_price,
                rec.price_change,
                rec.price_change_percentage,
                reasoning_json,
                rec.confidence,
                rec.expected_impact.demand_change,
                rec.expected_impact.revenue_change,
                rec.expected_impact.margin_change,
            ),
        )
        return self.last_insert_rowid()

    def get_for_tenant(
        self,
        tenant_id: str,
        product_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[PricingRecommendation]:
        """Fetch a tenant's recommendations, newest first."""
        if product_id:
            rows = self.fetchall(
                """
                SELECT * FROM pricing_recommendations
                WHERE tenant_id = ? AND product_id = ?
                ORDER BY recommendation_id DESC LIMIT ?;
                """,
                (tenant_id, product_id, limit),
            )
        else:
            rows = self.fetchall(
                """
                SELECT * FROM pricing_recommendations
                WHERE tenant_id = ?
                ORDER BY recommendation_id DESC LIMIT ?;
                """,
                (tenant_id, limit),
            )
        return [_row_to_recommendation(r) for r in rows]


def _row_to_recommendation(row: sqlite3.Row) -> PricingRecommendation:
    return PricingRecommendation(
        product_id=row["product_id"],
        current_price=row["current_price"],
        recommended_price=row["recommended_price"],
        price_change=row["price_change"],
        price_change_percentage=row["price_change_percentage"],
        reasoning=tuple(ReasoningEntry(**e) for e in json.loads(row["reasoning"])),
        confidence=row["confidence"],
        expected_impact=ExpectedImpact(
            demand_change=row["demand_change"],
            revenue_change=row["revenue_change"],
            margin_change=row["margin_change"],
        ),
    )
