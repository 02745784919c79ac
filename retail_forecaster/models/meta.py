"""
Pipeline run metadata - the audit backbone for batch runs.

``RunMetadata`` records every batch forecast or pricing run: which tenant
it ran for, how many items succeeded and failed, and a complete
``config_snapshot`` (full AppConfig as a dict) so any run can be reproduced
by restoring that config and re-running against the same catalog file.

``RunMetadata`` is the **only** Pydantic model in the system that is NOT
frozen - its ``status``, counters, ``error_message``, and ``finished_at``
fields are updated as the stage executes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_PIPELINE_STAGES = frozenset({"forecast", "pricing"})
VALID_RUN_STATUSES = frozenset({"started", "success", "partial", "failed"})


class RunMetadata(BaseModel):
    """Pipeline execution audit record.

    Attributes:
        run_id: Auto-assigned DB PK; ``None`` before insertion.
        run_slug: UUID4 string uniquely identifying this run.
        pipeline_stage: Which stage produced this run record.
        tenant_id: Tenant the run's results were persisted for.
        status: Current execution status.
        config_snapshot: Full ``AppConfig.model_dump()`` at run start time.
        items_processed: Items whose results were computed and persisted.
        items_failed: Items rejected as invalid or not persisted.
        error_message: Error description if ``status`` is not ``"success"``.
        started_at: UTC datetime when the run began.
        finished_at: UTC datetime when the run completed or failed.
    """

    model_config = ConfigDict(frozen=False)

    run_id: Optional[int] = None
    run_slug: str
    pipeline_stage: str
    tenant_id: Optional[str] = None
    status: str = "started"
    config_snapshot: dict[str, Any]
    items_processed: int = 0
    items_failed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v
