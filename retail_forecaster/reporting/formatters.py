"""
ASCII terminal formatters for CLI commands.

All formatters accept models or batch results and return plain multi-line
strings suitable for ``typer.echo()``. No third-party dependencies.

Pricing output lists the fired rules below each product in the order the
engine applied them::

    Product     Current  Recommended   Change  Conf
    ----------------------------------------------
    SKU-1        150.00       165.00   +10.0%  0.80
        cost_floor              +6.7%  Adjusted to maintain minimum 15% margin
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from retail_forecaster.models.forecast import ForecastResult
from retail_forecaster.models.meta import RunMetadata
from retail_forecaster.models.pricing import PricingRecommendation
from retail_forecaster.pipeline.orchestrator import BatchResult


# ── Forecasts ─────────────────────────────────────────────────────────────────


def format_forecast_table(results: Sequence[ForecastResult]) -> str:
    """Format forecasts as one row per product."""
    header = (
        f"  {'Product':<20}  {'Demand':>7}  {'Order':>7}  {'Reorder':>7}  "
        f"{'Conf':>5}  {'Risk':<6}  {'Period':<8}"
    )
    lines = [header, "  " + "-" * (len(header) - 2)]
    if not results:
        lines.append("  (no forecasts)")
        return "\n".join(lines)
    for r in results:
        lines.append(
            f"  {r.product_id[:20]:<20}  {r.predicted_demand:>7}  "
            f"{r.recommended_order_quantity:>7}  {r.reorder_point:>7}  "
            f"{r.confidence_score:>5.2f}  {r.risk_level.value:<6}  {r.forecast_period:<8}"
        )
    return "\n".join(lines)


# ── Pricing ───────────────────────────────────────────────────────────────────


def format_recommendation_table(
    results: Sequence[PricingRecommendation],
    show_reasoning: bool = True,
) -> str:
    """Format price recommendations, optionally with their reasoning trail."""
    header = (
        f"  {'Product':<20}  {'Current':>10}  {'Recommended':>11}  "
        f"{'Change':>8}  {'Conf':>5}"
    )
    lines = [header, "  " + "-" * (len(header) - 2)]
    if not results:
        lines.append("  (no recommendations)")
        return "\n".join(lines)
    for r in results:
        lines.append(
            f"  {r.product_id[:20]:<20}  {r.current_price:>10.2f}  "
            f"{r.recommended_price:>11.2f}  {r.price_change_percentage:>+7.1f}%  "
            f"{r.confidence:>5.2f}"
        )
        if show_reasoning:
            for entry in r.reasoning:
                delta = f"{entry.delta:+.1%}" if entry.delta is not None else ""
                lines.append(f"      {entry.rule.value:<24}  {delta:>7}  {entry.message}")
            impact = r.expected_impact
            lines.append(
                f"      impact: demand {impact.demand_change:+.2f}  "
                f"revenue {impact.revenue_change:+.2f}  margin {impact.margin_change:+.2f}"
            )
    return "\n".join(lines)


# ── Batches ───────────────────────────────────────────────────────────────────


def format_batch_summary(result: BatchResult[Any], run: RunMetadata | None = None) -> str:
    """Summarize a batch: counts, status and one line per failed item."""
    lines: list[str] = [
        "",
        "=== Batch Summary ===",
        f"  Tenant:    {result.tenant_id}",
    ]
    if run is not None:
        lines.append(f"  Run:       {run.run_slug} ({run.pipeline_stage})")
    lines.extend([
        f"  Status:    {result.status}",
        f"  Succeeded: {result.success_count}",
        f"  Failed:    {result.failure_count}",
    ])
    if result.failed:
        lines.append("")
        lines.append("  Failures:")
        for item in result.failed:
            lines.append(
                f"    [{item.index}] {item.product_id}: "
                f"{type(item.error).__name__}: {item.error}"
            )
    return "\n".join(lines)


def format_run_table(runs: Sequence[RunMetadata]) -> str:
    """Format recent run audit records, most recent first."""
    header = (
        f"  {'Run':>5}  {'Stage':<8}  {'Status':<8}  {'OK':>5}  {'Failed':>6}  "
        f"{'Started':<20}"
    )
    lines = [header, "  " + "-" * (len(header) - 2)]
    if not runs:
        lines.append("  (no runs recorded)")
        return "\n".join(lines)
    for run in runs:
        started = run.started_at.strftime("%Y-%m-%d %H:%M:%S")
        lines.append(
            f"  {run.run_id or '':>5}  {run.pipeline_stage:<8}  {run.status:<8}  "
            f"{run.items_processed:>5}  {run.items_failed:>6}  {started:<20}"
        )
    return "\n".join(lines)
