"""
Append-only builder for the pricing audit trail.

Each pricing step records the rule it fired through ``ReasoningBuilder``
instead of concatenating strings, so the finished
``PricingRecommendation.reasoning`` tuple is a sequence of structured
``(rule, message, delta)`` entries in application order.
"""

from __future__ import annotations

from typing import Optional

from retail_forecaster.models.pricing import ReasoningEntry
from retail_forecaster.taxonomy.pricing_taxonomy import PricingRule


class ReasoningBuilder:
    """Collects ``ReasoningEntry`` values; entries can only be appended."""

    def __init__(self) -> None:
        self._entries: list[ReasoningEntry] = []

    def add(
        self,
        rule: PricingRule,
        message: str,
        delta: Optional[float] = None,
    ) -> None:
        self._entries.append(ReasoningEntry(rule=rule, message=message, delta=delta))

    def add_multiplier(self, rule: PricingRule, message: str, multiplier: float) -> None:
        """Record a multiplicative rule; ``delta`` is ``multiplier - 1``."""
        self.add(rule, message, delta=round(multiplier - 1.0, 6))

    def __len__(self) -> int:
        return len(self._entries)

    def build(self) -> tuple[ReasoningEntry, ...]:
        return tuple(self._entries)
