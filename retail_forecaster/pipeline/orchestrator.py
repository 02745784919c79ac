"""
Batch orchestration for the forecasting and pricing engines.

The ``BatchOrchestrator`` maps one engine over a product collection and
hands every success to a ``ResultSink`` for a single tenant:

  Step 1 - Fan out:   Submit one task per input to a bounded thread pool.
  Step 2 - Collect:   Wait for every item; each yields an ``ItemResult``.
  Step 3 - Persist:   Write all successes to the sink in one call.
  Step 4 - Retry:     Re-send only the records the sink rejected, with
                      exponential backoff, up to ``persist_retries`` times.

Failure isolation
-----------------
- Invalid item:        ``InvalidInput`` captured on that item's result; the
                       rest of the batch is unaffected. An input that is
                       already an ``InvalidInput`` (an unparsable catalog
                       row) fails in place without reaching the engine.
- Rejected record:     Retried without recomputation; still failing after
                       the last retry → ``PersistenceFailure`` on that item.
- Unexpected error:    Engine bugs (anything other than ``InvalidInput``)
                       propagate to the caller.

Results keep input order regardless of completion order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, Optional, TypeVar

from retail_forecaster.config import BatchConfig
from retail_forecaster.db.sink import PersistOutcome, ResultSink
from retail_forecaster.errors import InvalidInput, PersistenceFailure
from retail_forecaster.forecasting.engine import ForecastEngine
from retail_forecaster.models.forecast import ForecastInput, ForecastResult
from retail_forecaster.models.pricing import PricingInput, PricingRecommendation
from retail_forecaster.models.tenant import TenantContext
from retail_forecaster.pricing.engine import PricingEngine

logger = logging.getLogger(__name__)

T = TypeVar("T", ForecastResult, PricingRecommendation)


# ── Result types ──────────────────────────────────────────────────────────────

@dataclass
class ItemResult(Generic[T]):
    """Outcome of one batch item.

    Attributes:
        product_id: Product the item was for.
        index:      Position of the item in the input sequence.
        value:      Engine output on success.
        error:      ``InvalidInput`` or ``PersistenceFailure`` on failure.
        record_id:  Storage id assigned by the sink, if persisted.
    """

    product_id: str
    index:      int
    value:      Optional[T] = None
    error:      Optional[Exception] = None
    record_id:  Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult(Generic[T]):
    """Complete result of one batch, in input order."""

    tenant_id: str
    items:     list[ItemResult[T]] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult[T]]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> list[ItemResult[T]]:
        return [item for item in self.items if not item.ok]

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def status(self) -> str:
        """``"success"``, ``"partial"`` or ``"failed"``.

        An empty batch counts as a success.
        """
        if not self.failed:
            return "success"
        if self.succeeded:
            return "partial"
        return "failed"

    @property
    def values(self) -> list[T]:
        return [item.value for item in self.succeeded]


# ── Orchestrator ──────────────────────────────────────────────────────────────

class BatchOrchestrator:
    """Runs an engine across a batch and persists the successes.

    Args:
        forecast_engine: Engine used by ``run_forecasts``.
        pricing_engine:  Engine used by ``run_pricing``.
        sink:            Where successful results are written.
        config:          Worker and retry settings.
        sleep:           Called with the backoff delay in seconds between
            persistence attempts. Tests pass a recorder.
    """

    def __init__(
        self,
        forecast_engine: ForecastEngine,
        pricing_engine: PricingEngine,
        sink: ResultSink,
        config: Optional[BatchConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.forecast_engine = forecast_engine
        self.pricing_engine = pricing_engine
        self.sink = sink
        self.config = config or BatchConfig()
        self.sleep = sleep

    def run_forecasts(
        self,
        inputs: Sequence[ForecastInput | InvalidInput],
        tenant: TenantContext,
        reference_date: Optional[date] = None,
        run_id: Optional[int] = None,
    ) -> BatchResult[ForecastResult]:
        """Forecast every input and persist the successes for ``tenant``.

        Args:
            inputs: Products to forecast.
            tenant: Tenant the results are stored under.
            reference_date: Shared forecast date; resolved once from the
                engine clock when omitted so every item sees the same month.
            run_id: Run the persisted rows are linked to.
        """
        ref = reference_date or self.forecast_engine.clock()
        result = self._compute(
            inputs, tenant, lambda data: self.forecast_engine.forecast(data, ref),
            kind="forecast",
        )
        self._persist(result, tenant, self.sink.write_forecasts, run_id)
        self._log_finish(result, kind="forecast")
        return result

    def run_pricing(
        self,
        inputs: Sequence[PricingInput | InvalidInput],
        tenant: TenantContext,
        run_id: Optional[int] = None,
    ) -> BatchResult[PricingRecommendation]:
        """Price every input and persist the successes for ``tenant``."""
        result = self._compute(
            inputs, tenant, self.pricing_engine.recommend_price, kind="pricing",
        )
        self._persist(result, tenant, self.sink.write_recommendations, run_id)
        self._log_finish(result, kind="pricing")
        return result

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _compute(
        self,
        inputs: Sequence[Any],
        tenant: TenantContext,
        fn: Callable[[Any], T],
        kind: str,
    ) -> BatchResult[T]:
        logger.info(
            "Batch %s starting | tenant=%s items=%d workers=%d",
            kind, tenant.tenant_id, len(inputs), self.config.max_workers,
            extra={"tenant_id": tenant.tenant_id},
        )
        result: BatchResult[T] = BatchResult(tenant_id=tenant.tenant_id)
        if not inputs:
            return result

        def _one(index: int, data: Any) -> ItemResult[T]:
            if isinstance(data, InvalidInput):
                return ItemResult(
                    product_id=data.product_id or f"row-{index + 1}", index=index, error=data,
                )
            try:
                return ItemResult(product_id=data.product_id, index=index, value=fn(data))
            except InvalidInput as exc:
                return ItemResult(product_id=data.product_id, index=index, error=exc)

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [pool.submit(_one, i, data) for i, data in enumerate(inputs)]
            result.items = [f.result() for f in futures]

        for item in result.failed:
            logger.warning(
                "Item %d failed: %s", item.index, item.error,
                extra={"product_id": item.product_id, "tenant_id": tenant.tenant_id},
            )
        return result

    def _persist(
        self,
        result: BatchResult[T],
        tenant: TenantContext,
        write: Callable[[TenantContext, list[T], Optional[int]], list[PersistOutcome]],
        run_id: Optional[int],
    ) -> None:
        pending = result.succeeded
        attempts = 0
        last_errors: dict[int, str] = {}

        while pending and attempts <= self.config.persist_retries:
            if attempts:
                delay = self.config.persist_backoff_seconds * 2 ** (attempts - 1)
                logger.info(
                    "Retrying %d record(s) in %.2fs (attempt %d)",
                    len(pending), delay, attempts + 1,
                )
                self.sleep(delay)
            attempts += 1

            try:
                outcomes = write(tenant, [item.value for item in pending], run_id)
            except Exception as exc:
                logger.warning("Sink write failed: %s", exc)
                outcomes = [
                    PersistOutcome(product_id=item.product_id, error=str(exc))
                    for item in pending
                ]

            if len(outcomes) < len(pending):
                logger.warning(
                    "Sink returned %d outcome(s) for %d record(s)",
                    len(outcomes), len(pending),
                )
                outcomes = list(outcomes) + [
                    PersistOutcome(product_id=item.product_id, error="no outcome returned by sink")
                    for item in pending[len(outcomes):]
                ]

            still_pending: list[ItemResult[T]] = []
            for item, outcome in zip(pending, outcomes):
                if outcome.ok:
                    item.record_id = outcome.record_id
                else:
                    last_errors[item.index] = outcome.error or "unknown error"
                    still_pending.append(item)
            pending = still_pending

        for item in pending:
            item.error = PersistenceFailure(
                f"Could not persist result: {last_errors[item.index]}",
                product_id=item.product_id,
                attempts=attempts,
            )
            logger.warning(
                "Item %d not persisted after %d attempt(s)", item.index, attempts,
                extra={"product_id": item.product_id, "tenant_id": tenant.tenant_id},
            )

    @staticmethod
    def _log_finish(result: BatchResult[Any], kind: str) -> None:
        logger.info(
            "Batch %s finished | tenant=%s status=%s succeeded=%d failed=%d",
            kind, result.tenant_id, result.status,
            result.success_count, result.failure_count,
            extra={"tenant_id": result.tenant_id},
        )
