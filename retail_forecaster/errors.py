"""
Error taxonomy shared by the engines and the batch orchestrator.

``InvalidInput``
    Raised synchronously by ``ForecastEngine`` and ``PricingEngine`` before
    any computation when a field is malformed or out of range. Never
    coerced into NaN or zero. The catalog loader returns one in place of
    each row it cannot parse.

``PersistenceFailure``
    Attached to a batch item by ``BatchOrchestrator`` when its record could
    not be written after all retries. The computed value is still available,
    so the caller can retry the write without recomputing.
"""

from __future__ import annotations

from typing import Optional


class InvalidInput(ValueError):
    """A forecast or pricing input failed validation.

    Attributes:
        product_id: Product the input belongs to, when known.
        field:      Name of the offending field, when known.
    """

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.product_id = product_id
        self.field = field


class PersistenceFailure(RuntimeError):
    """A computed result could not be written to the persistence sink.

    Attributes:
        product_id: Product whose record failed.
        attempts:   Number of write attempts made.
    """

    def __init__(self, message: str, product_id: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.product_id = product_id
        self.attempts = attempts
