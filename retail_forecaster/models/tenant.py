"""
Tenant scoping context.

The engines are tenant-agnostic; only the batch orchestrator and the
persistence sink see a ``TenantContext``, which tags every stored record.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class TenantContext(BaseModel):
    """Identifies the tenant that owns persisted results."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str

    @field_validator("tenant_id")
    @classmethod
    def validate_tenant_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("tenant_id must not be empty.")
        return v.strip()
