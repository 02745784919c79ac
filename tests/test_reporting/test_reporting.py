"""Tests for retail_forecaster.reporting - terminal formatters and exports."""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from retail_forecaster.errors import InvalidInput, PersistenceFailure
from retail_forecaster.models.pricing import (
    ExpectedImpact,
    PricingRecommendation,
    ReasoningEntry,
)
from retail_forecaster.pipeline.orchestrator import BatchResult, ItemResult
from retail_forecaster.reporting.export import (
    batch_report,
    export_to_csv,
    export_to_json,
    flatten_forecasts_for_export,
    flatten_recommendations_for_export,
)
from retail_forecaster.reporting.formatters import (
    format_batch_summary,
    format_forecast_table,
    format_recommendation_table,
    format_run_table,
)
from retail_forecaster.taxonomy.pricing_taxonomy import PricingRule


@pytest.fixture
def recommendation() -> PricingRecommendation:
    return PricingRecommendation(
        product_id="SKU-C",
        current_price=100.0,
        recommended_price=95.0,
        price_change=-5.0,
        price_change_percentage=-5.0,
        reasoning=(
            ReasoningEntry(
                rule=PricingRule.BUDGET_UNDERCUT,
                message="Price set to undercut the cheapest competitor",
                delta=-0.05,
            ),
            ReasoningEntry(
                rule=PricingRule.LOCALE_FIVE_ENDING,
                message="Rounded to a price ending in 5",
            ),
        ),
        confidence=0.8,
        expected_impact=ExpectedImpact(
            demand_change=0.06, revenue_change=0.007, margin_change=-0.1,
        ),
    )


@pytest.fixture
def mixed_batch(sample_forecast_result) -> BatchResult:
    return BatchResult(
        tenant_id="acme",
        items=[
            ItemResult(product_id="SKU-A", index=0, value=sample_forecast_result, record_id=7),
            ItemResult(
                product_id="SKU-X", index=1,
                error=InvalidInput("historical_sales must not be empty", product_id="SKU-X"),
            ),
            ItemResult(
                product_id="SKU-Y", index=2, value=sample_forecast_result,
                error=PersistenceFailure("disk full", product_id="SKU-Y", attempts=3),
            ),
        ],
    )


# ── Formatters ─────────────────────────────────────────────────────────────────

class TestFormatters:
    def test_forecast_table(self, sample_forecast_result):
        out = format_forecast_table([sample_forecast_result])
        row = out.splitlines()[2]
        assert "SKU-A" in row
        assert "53" in row
        assert "HIGH" in row
        assert "0.86" in row

    def test_empty_tables(self):
        assert "(no forecasts)" in format_forecast_table([])
        assert "(no recommendations)" in format_recommendation_table([])
        assert "(no runs recorded)" in format_run_table([])

    def test_recommendation_reasoning_in_order(self, recommendation):
        lines = format_recommendation_table([recommendation]).splitlines()
        assert "-5.0%" in lines[2]
        assert "budget_undercut" in lines[3]
        assert "-5.0%" in lines[3]
        assert "locale_five_ending" in lines[4]
        assert lines[5].strip().startswith("impact: demand +0.06")

    def test_recommendation_without_reasoning(self, recommendation):
        out = format_recommendation_table([recommendation], show_reasoning=False)
        assert "budget_undercut" not in out
        assert len(out.splitlines()) == 3

    def test_batch_summary_lists_failures(self, mixed_batch, sample_run_metadata):
        out = format_batch_summary(mixed_batch, sample_run_metadata)
        assert "Status:    partial" in out
        assert "Succeeded: 1" in out
        assert "Failed:    2" in out
        assert "test-run-uuid-0001 (forecast)" in out
        assert "[1] SKU-X: InvalidInput" in out
        assert "[2] SKU-Y: PersistenceFailure: disk full" in out

    def test_run_table(self, sample_run_metadata):
        sample_run_metadata.run_id = 4
        sample_run_metadata.status = "success"
        sample_run_metadata.items_processed = 12
        row = format_run_table([sample_run_metadata]).splitlines()[2]
        assert row.split()[:4] == ["4", "forecast", "success", "12"]
        assert "2025-03-03 08:00:00" in row


# ── Exports ────────────────────────────────────────────────────────────────────

class TestBatchReport:
    def test_items_keep_order_and_errors(self, mixed_batch):
        report = batch_report(mixed_batch)
        assert report["status"] == "partial"
        assert (report["succeeded"], report["failed"]) == (1, 2)
        assert [i["product_id"] for i in report["items"]] == ["SKU-A", "SKU-X", "SKU-Y"]

        ok, invalid, unsaved = report["items"]
        assert ok["ok"] is True
        assert ok["record_id"] == 7
        assert ok["result"]["risk_level"] == "HIGH"
        assert "error" not in ok
        assert invalid["error"]["type"] == "InvalidInput"
        assert "result" not in invalid
        assert unsaved["error"]["type"] == "PersistenceFailure"
        assert unsaved["result"]["predicted_demand"] == 53

    def test_run_fields(self, mixed_batch, sample_run_metadata):
        sample_run_metadata.run_id = 9
        report = batch_report(mixed_batch, sample_run_metadata)
        assert report["run_id"] == 9
        assert report["run_slug"] == "test-run-uuid-0001"
        assert report["pipeline_stage"] == "forecast"

    def test_json_file(self, mixed_batch, tmp_path: Path):
        out = export_to_json(batch_report(mixed_batch), tmp_path / "reports" / "batch.json")
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["tenant_id"] == "acme"
        assert len(data["items"]) == 3


class TestCsvExport:
    def test_recommendation_rows(self, recommendation, tmp_path: Path):
        rows = flatten_recommendations_for_export([recommendation])
        assert rows[0]["rules"] == "budget_undercut|locale_five_ending"
        assert rows[0]["margin_change"] == -0.1

        out = export_to_csv(rows, tmp_path / "prices.csv")
        with out.open(encoding="utf-8") as f:
            [record] = list(csv.DictReader(f))
        assert record["product_id"] == "SKU-C"
        assert record["recommended_price"] == "95.0"

    def test_forecast_rows(self, sample_forecast_result):
        [row] = flatten_forecasts_for_export([sample_forecast_result])
        assert row["risk_level"] == "HIGH"
        assert row["reorder_point"] == 18

    def test_custom_fieldnames(self, tmp_path: Path):
        out = export_to_csv([{"a": 1, "b": 2, "c": 3}], tmp_path / "cols.csv", fieldnames=["c", "a"])
        with out.open(encoding="utf-8") as f:
            assert f.readline().strip() == "c,a"

    def test_empty_records(self, tmp_path: Path):
        out = export_to_csv([], tmp_path / "empty.csv")
        assert out.read_text(encoding="utf-8") == ""
