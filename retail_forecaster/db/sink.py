"""
Persistence sinks for batch results.

A sink accepts a whole batch of ``ForecastResult`` or
``PricingRecommendation`` values for one tenant and reports an outcome per
record. Writes are append-only, and a record that fails never undoes a
record already written. Retrying is the orchestrator's job; sinks make a
single attempt per call.

Implementations
---------------
``SQLiteResultSink``  - writes through the repositories, one SAVEPOINT per
                        record, one connection per call.
``MemoryResultSink``  - keeps records in lists; used for dry runs and as a
                        test double.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional, Protocol

from retail_forecaster.db.connection import get_connection
from retail_forecaster.db.repositories.forecast_repo import ForecastResultRepository
from retail_forecaster.db.repositories.pricing_repo import PricingRecommendationRepository
from retail_forecaster.models.forecast import ForecastResult
from retail_forecaster.models.pricing import PricingRecommendation
from retail_forecaster.models.tenant import TenantContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistOutcome:
    """Result of writing one record.

    Attributes:
        product_id: Product the record belongs to.
        record_id:  Assigned storage id on success.
        error:      Failure description, or ``None`` on success.
    """

    product_id: str
    record_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResultSink(Protocol):
    """Boundary the orchestrator writes batch results through."""

    def write_forecasts(
        self,
        tenant: TenantContext,
        results: Sequence[ForecastResult],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]: ...

    def write_recommendations(
        self,
        tenant: TenantContext,
        results: Sequence[PricingRecommendation],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]: ...


class SQLiteResultSink:
    """Writes results to the SQLite result tables.

    Args:
        db_path: SQLite database path (schema must already be applied).
        wal_mode: Passed to ``get_connection``.
        busy_timeout_ms: Passed to ``get_connection``.
    """

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    def write_forecasts(
        self,
        tenant: TenantContext,
        results: Sequence[ForecastResult],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]:
        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            repo = ForecastResultRepository(conn)
            return [_write_one(repo, tenant.tenant_id, r, run_id) for r in results]

    def write_recommendations(
        self,
        tenant: TenantContext,
        results: Sequence[PricingRecommendation],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]:
        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            repo = PricingRecommendationRepository(conn)
            return [_write_one(repo, tenant.tenant_id, r, run_id) for r in results]


def _write_one(
    repo: ForecastResultRepository | PricingRecommendationRepository,
    tenant_id: str,
    result: ForecastResult | PricingRecommendation,
    run_id: Optional[int],
) -> PersistOutcome:
    product_id = result.product_id
    try:
        with repo.savepoint():
            record_id = repo.insert(tenant_id, result, run_id)
    except Exception as exc:
        logger.warning("Failed to persist record for product=%s: %s", product_id, exc)
        return PersistOutcome(product_id=product_id, error=str(exc))
    return PersistOutcome(product_id=product_id, record_id=record_id)


@dataclass
class MemoryResultSink:
    """In-memory sink. Records are appended as ``(tenant_id, run_id, result)``."""

    forecasts: list[tuple[str, Optional[int], ForecastResult]] = field(default_factory=list)
    recommendations: list[tuple[str, Optional[int], PricingRecommendation]] = field(
        default_factory=list
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def write_forecasts(
        self,
        tenant: TenantContext,
        results: Sequence[ForecastResult],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]:
        with self._lock:
            start = len(self.forecasts)
            self.forecasts.extend((tenant.tenant_id, run_id, r) for r in results)
        return [
            PersistOutcome(product_id=r.product_id, record_id=start + i + 1)
            for i, r in enumerate(results)
        ]

    def write_recommendations(
        self,
        tenant: TenantContext,
        results: Sequence[PricingRecommendation],
        run_id: Optional[int] = None,
    ) -> list[PersistOutcome]:
        with self._lock:
            start = len(self.recommendations)
            self.recommendations.extend((tenant.tenant_id, run_id, r) for r in results)
        return [
            PersistOutcome(product_id=r.product_id, record_id=start + i + 1)
            for i, r in enumerate(results)
        ]
