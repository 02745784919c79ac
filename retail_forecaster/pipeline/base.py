"""
Abstract base class for batch pipeline stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(**kwargs)`` is the sole public API.
  3. ``run()`` writes a ``RunMetadata`` record with ``status='started'``,
     calls ``_execute()``, and updates the record with the final status and
     item counts.
  4. ``_execute()`` is the stage-specific implementation and returns the
     ``BatchResult`` it produced.

The run record is written before any work so persisted results can link
to it through ``run_id``. Exceptions from ``_execute()`` are recorded on
the run and re-raised.

Usage::

    stage = ForecastStage(config=app_config)
    run = stage.run(input_path=Path("catalog.json"), tenant=TenantContext(tenant_id="acme"))
    print(run.status, stage.last_result.failure_count)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import uuid4

from retail_forecaster.config import AppConfig
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.tenant import TenantContext
from retail_forecaster.pipeline.orchestrator import BatchResult
from retail_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

_MAX_ERRORS_IN_MESSAGE = 5


class PipelineStage(ABC):
    """Abstract base for batch stages.

    Subclasses must:
      1. Set ``stage_name`` class variable.
      2. Implement ``_execute(run, tenant, **kwargs) -> BatchResult``.

    Attributes:
        stage_name: String identifier matching a valid ``RunMetadata.pipeline_stage``.
        config: The application configuration for this run.
        db_path: Path to the SQLite database (defaults to ``config.database.db_path``).
        last_result: ``BatchResult`` from the most recent successful ``_execute``.
    """

    stage_name: str

    def __init__(
        self,
        config: AppConfig,
        db_path: Optional[str] = None,
    ) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path
        self.last_result: Optional[BatchResult[Any]] = None

    def run(self, tenant: Optional[TenantContext] = None, **kwargs) -> RunMetadata:
        """Execute this stage for ``tenant``.

        Args:
            tenant: Tenant to persist results for. Defaults to
                ``config.tenant.default_tenant_id``.
            **kwargs: Stage-specific keyword arguments passed to ``_execute()``.

        Returns:
            ``RunMetadata`` with final ``status``, item counts and
            ``finished_at`` set. ``status`` mirrors the batch: ``success``,
            ``partial`` or ``failed``.

        Raises:
            Exception: Re-raises any exception from ``_execute()`` after
                recording ``status='failed'`` in the run record.
        """
        tenant = tenant or TenantContext(tenant_id=self.config.tenant.default_tenant_id)
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            tenant_id=tenant.tenant_id,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        logger.info(
            "Stage [%s] starting | tenant=%s run_slug=%s",
            self.stage_name, tenant.tenant_id, run.run_slug,
        )
        self._persist_run(run)

        try:
            result = self._execute(run=run, tenant=tenant, **kwargs)
        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = utcnow()
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
            )
            self._persist_run(run)
            raise

        self.last_result = result
        run.status = result.status
        run.items_processed = result.success_count
        run.items_failed = result.failure_count
        if result.failed:
            run.error_message = _summarize_errors(result)
        run.finished_at = utcnow()
        logger.info(
            "Stage [%s] completed | status=%s processed=%d failed=%d | run_slug=%s",
            self.stage_name, run.status, run.items_processed, run.items_failed,
            run.run_slug,
        )
        self._persist_run(run)
        return run

    @abstractmethod
    def _execute(
        self,
        run: RunMetadata,
        tenant: TenantContext,
        **kwargs,
    ) -> BatchResult[Any]:
        """Stage-specific implementation.

        Args:
            run: The in-progress ``RunMetadata`` record (``run_id`` is set
                when the initial write succeeded).
            tenant: Tenant to persist results for.
            **kwargs: Stage-specific parameters.
        """
        ...

    def _persist_run(self, run: RunMetadata) -> None:
        """Insert or update the ``RunMetadata`` record.

        Errors are logged, not raised, so a failing audit write never masks
        the stage's own outcome.
        """
        try:
            from retail_forecaster.db.connection import get_connection
            from retail_forecaster.db.repositories.run_repo import RunMetadataRepository

            db = self.config.database
            with get_connection(self.db_path, db.wal_mode, db.busy_timeout_ms) as conn:
                repo = RunMetadataRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata for run_slug=%s: %s",
                run.run_slug, exc,
            )


def _summarize_errors(result: BatchResult[Any]) -> str:
    failed = result.failed
    parts = [f"{item.product_id}: {item.error}" for item in failed[:_MAX_ERRORS_IN_MESSAGE]]
    if len(failed) > _MAX_ERRORS_IN_MESSAGE:
        parts.append(f"... and {len(failed) - _MAX_ERRORS_IN_MESSAGE} more")
    return "; ".join(parts)
