"""Tests for the append-only reasoning builder."""

from __future__ import annotations

import pytest

from retail_forecaster.pricing.reasoning import ReasoningBuilder
from retail_forecaster.taxonomy.pricing_taxonomy import PricingRule


class TestReasoningBuilder:
    def test_entries_keep_insertion_order(self):
        builder = ReasoningBuilder()
        builder.add_multiplier(PricingRule.HIGH_DEMAND, "up", 1.05)
        builder.add(PricingRule.MOBILE_PAYMENT_CEILING, "flag")
        builder.add_multiplier(PricingRule.LOW_INVENTORY, "up again", 1.02)
        entries = builder.build()
        assert [e.rule for e in entries] == [
            PricingRule.HIGH_DEMAND,
            PricingRule.MOBILE_PAYMENT_CEILING,
            PricingRule.LOW_INVENTORY,
        ]
        assert len(builder) == 3

    def test_multiplier_delta(self):
        builder = ReasoningBuilder()
        builder.add_multiplier(PricingRule.BUDGET_UNDERCUT, "down", 0.95)
        assert builder.build()[0].delta == pytest.approx(-0.05)

    def test_informational_entry_has_no_delta(self):
        builder = ReasoningBuilder()
        builder.add(PricingRule.MOBILE_PAYMENT_CEILING, "flag")
        assert builder.build()[0].delta is None

    def test_build_returns_immutable_snapshot(self):
        builder = ReasoningBuilder()
        builder.add(PricingRule.SEASONAL, "season", delta=0.1)
        snapshot = builder.build()
        builder.add(PricingRule.CHANGE_CAP, "cap", delta=0.2)
        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1
