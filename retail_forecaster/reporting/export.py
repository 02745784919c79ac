"""
Export helpers for batch results.

The ``export_to_*`` functions write to disk and return the written ``Path``;
the ``flatten_*`` helpers turn stored results into CSV-ready rows for
``show-results --export``.

``batch_report()`` is the main adapter: it turns a ``BatchResult`` into a
JSON-ready dict with one entry per item in input order. Successful items
carry the serialized result; failed items carry the error type and
message, so a consumer can tell invalid input from a persistence failure
and retry only the latter.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Optional

from retail_forecaster.models.forecast import ForecastResult
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.pricing import PricingRecommendation
from retail_forecaster.pipeline.orchestrator import BatchResult


def batch_report(
    result: BatchResult[Any],
    run: Optional[RunMetadata] = None,
) -> dict[str, Any]:
    """Build a JSON-ready report for ``result``."""
    items: list[dict[str, Any]] = []
    for item in result.items:
        entry: dict[str, Any] = {
            "index": item.index,
            "product_id": item.product_id,
            "ok": item.ok,
            "record_id": item.record_id,
        }
        if item.value is not None:
            entry["result"] = item.value.model_dump(mode="json")
        if item.error is not None:
            entry["error"] = {"type": type(item.error).__name__, "message": str(item.error)}
        items.append(entry)

    report: dict[str, Any] = {
        "tenant_id": result.tenant_id,
        "status": result.status,
        "succeeded": result.success_count,
        "failed": result.failure_count,
        "items": items,
    }
    if run is not None:
        report["run_slug"] = run.run_slug
        report["run_id"] = run.run_id
        report["pipeline_stage"] = run.pipeline_stage
    return report


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file (parent dirs created)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def flatten_forecasts_for_export(results: list[ForecastResult]) -> list[dict[str, Any]]:
    """One flat row per forecast."""
    return [r.model_dump(mode="json") for r in results]


def flatten_recommendations_for_export(
    results: list[PricingRecommendation],
) -> list[dict[str, Any]]:
    """One flat row per recommendation; rule ids joined with ``|``."""
    return [
        {
            "product_id": r.product_id,
            "current_price": r.current_price,
            "recommended_price": r.recommended_price,
            "price_change": r.price_change,
            "price_change_percentage": r.price_change_percentage,
            "confidence": r.confidence,
            "demand_change": r.expected_impact.demand_change,
            "revenue_change": r.expected_impact.revenue_change,
            "margin_change": r.expected_impact.margin_change,
            "rules": "|".join(rule.value for rule in r.fired_rules),
        }
        for r in results
    ]


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file (parent dirs created).

    With no records an empty file is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path
