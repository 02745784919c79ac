"""
Retail Forecaster CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, single forecast, batch stage, etc.).
  5. Report result to stdout.

Install and run::

    pip install -e .
    retail-forecaster --help
    retail-forecaster init-db
    retail-forecaster validate-config
    retail-forecaster forecast --product-id SKU-1 --sales 12,15,9,14 --inventory 20 --lead-time 7
    retail-forecaster price --product-id SKU-1 --current-price 150 --cost-price 120 \\
        --competitors 145,155 --demand-score 0.5 --inventory 50 --velocity 5
    retail-forecaster run-forecast-batch --input catalog.json --tenant acme
    retail-forecaster run-pricing-batch --input catalog.csv --tenant acme
    retail-forecaster show-results --tenant acme
    retail-forecaster show-results --tenant acme --kind pricing --export prices.csv
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="retail-forecaster",
    help="Retail demand forecasting and dynamic pricing CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from retail_forecaster.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from retail_forecaster.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_date_or_exit(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        typer.echo(f"[ERROR] Invalid date '{value}' (expected YYYY-MM-DD).", err=True)
        raise typer.Exit(code=1)


def _parse_floats_or_exit(value: Optional[str], option: str) -> list[float]:
    if not value:
        return []
    try:
        return [float(v) for v in value.split(",") if v.strip()]
    except ValueError:
        typer.echo(
            f"[ERROR] {option} must be a comma-separated list of numbers, got '{value}'.",
            err=True,
        )
        raise typer.Exit(code=1)


def _tenant_or_exit(tenant_id: Optional[str], config):
    from pydantic import ValidationError

    from retail_forecaster.models.tenant import TenantContext

    try:
        return TenantContext(tenant_id=tenant_id or config.tenant.default_tenant_id)
    except ValidationError:
        typer.echo("[ERROR] --tenant must not be empty.", err=True)
        raise typer.Exit(code=1)


def _ensure_schema(db_path: str, config) -> None:
    from retail_forecaster.db.connection import get_connection
    from retail_forecaster.db.schema import apply_schema

    with get_connection(
        db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times: all DDL uses IF NOT EXISTS.
    """
    from retail_forecaster.db.schema import ALL_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")
    _ensure_schema(target_path, config)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Forecast horizon:  {config.forecast.forecast_horizon_days} days")
    typer.echo(f"  Demand patterns:   {', '.join(p.name for p in config.forecast.demand_patterns)}")
    typer.echo(f"  Minimum margin:    {config.pricing.min_margin:.0%}")
    typer.echo(f"  VAT rate:          {config.pricing.vat_rate:.0%}")
    typer.echo(f"  Max price change:  {config.pricing.max_price_change_fraction:.0%}")
    typer.echo(f"  Pricing strategies:{', '.join(s.name for s in config.pricing.strategies)}")
    typer.echo(f"  Batch workers:     {config.batch.max_workers}")
    typer.echo(f"  Default tenant:    {config.tenant.default_tenant_id}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("forecast")
def forecast(
    product_id: str = typer.Option(..., "--product-id", help="Product identifier."),
    sales: str = typer.Option(
        ...,
        "--sales",
        help="Historical sales per period, oldest first (e.g. 12,15,9,14).",
    ),
    inventory: int = typer.Option(..., "--inventory", help="Units currently on hand."),
    lead_time: int = typer.Option(..., "--lead-time", help="Replenishment lead time in days."),
    category: Optional[str] = typer.Option(
        None, "--category", help="Product category (enables regional demand patterns).",
    ),
    weather: Optional[float] = typer.Option(None, "--weather", help="Weather score in [0, 1]."),
    economic: Optional[float] = typer.Option(
        None, "--economic", help="Economic indicator score in [0, 1].",
    ),
    holidays: Optional[bool] = typer.Option(
        None, "--holidays/--no-holidays", help="Whether the horizon contains holidays.",
    ),
    on_date: Optional[str] = typer.Option(
        None, "--date", help="Reference date (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Forecast demand for a single product (nothing is persisted)."""
    from pydantic import ValidationError

    from retail_forecaster.errors import InvalidInput
    from retail_forecaster.forecasting.engine import ForecastEngine
    from retail_forecaster.models.forecast import ExternalFactors, ForecastInput
    from retail_forecaster.reporting.formatters import format_forecast_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    reference_date = _parse_date_or_exit(on_date)

    try:
        data = ForecastInput(
            product_id=product_id,
            historical_sales=_parse_floats_or_exit(sales, "--sales"),
            current_inventory=inventory,
            lead_time=lead_time,
            category=category,
            external_factors=ExternalFactors(
                weather=weather, economic_indicators=economic, holidays=holidays,
            ),
        )
        result = ForecastEngine(config.forecast).forecast(data, reference_date)
    except (InvalidInput, ValidationError) as exc:
        typer.echo(f"[ERROR] Invalid input: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        typer.echo(format_forecast_table([result]))


@app.command("price")
def price(
    product_id: str = typer.Option(..., "--product-id", help="Product identifier."),
    current_price: float = typer.Option(..., "--current-price", help="Current shelf price."),
    cost_price: float = typer.Option(..., "--cost-price", help="Unit cost."),
    competitors: Optional[str] = typer.Option(
        None, "--competitors", help="Competitor prices (e.g. 145,155,148).",
    ),
    demand_score: float = typer.Option(..., "--demand-score", help="Demand score in [0, 1]."),
    inventory: int = typer.Option(..., "--inventory", help="Units currently on hand."),
    velocity: float = typer.Option(..., "--velocity", help="Units sold per day."),
    position: str = typer.Option(
        "COMPETITIVE",
        "--position",
        help="Market position: PREMIUM, COMPETITIVE or BUDGET.",
    ),
    seasonal_factor: Optional[float] = typer.Option(
        None,
        "--seasonal-factor",
        help="Seasonal multiplier. Derived from pricing strategies when omitted.",
    ),
    category: Optional[str] = typer.Option(
        None, "--category", help="Product category (used for pricing strategies).",
    ),
    on_date: Optional[str] = typer.Option(
        None, "--date", help="Date for pricing strategies (YYYY-MM-DD). Defaults to today.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Recommend a price for a single product (nothing is persisted)."""
    from pydantic import ValidationError

    from retail_forecaster.errors import InvalidInput
    from retail_forecaster.models.pricing import PricingInput
    from retail_forecaster.pricing.engine import PricingEngine
    from retail_forecaster.pricing.strategies import strategy_seasonal_factor
    from retail_forecaster.reporting.formatters import format_recommendation_table
    from retail_forecaster.utils.time_utils import today_utc

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    reference_date = _parse_date_or_exit(on_date) or today_utc()

    if seasonal_factor is None:
        seasonal_factor = strategy_seasonal_factor(
            category, reference_date, config.pricing.strategies
        )

    try:
        data = PricingInput(
            product_id=product_id,
            current_price=current_price,
            cost_price=cost_price,
            competitor_prices=_parse_floats_or_exit(competitors, "--competitors"),
            demand_score=demand_score,
            inventory_level=inventory,
            sales_velocity=velocity,
            seasonal_factor=seasonal_factor,
            market_position=position.upper(),
            category=category,
        )
        result = PricingEngine(config.pricing).recommend_price(data)
    except (InvalidInput, ValidationError) as exc:
        typer.echo(f"[ERROR] Invalid input: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        typer.echo(format_recommendation_table([result]))


def _run_batch_stage(
    stage_cls,
    input_path: str,
    tenant_id: Optional[str],
    db_path: Optional[str],
    on_date: Optional[str],
    report_path: Optional[str],
    config_path: Optional[str],
) -> None:
    from retail_forecaster.reporting.export import batch_report, export_to_json
    from retail_forecaster.reporting.formatters import format_batch_summary

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    source = Path(input_path)
    if not source.exists():
        typer.echo(f"[ERROR] Input file not found: {source}", err=True)
        raise typer.Exit(code=1)

    tenant = _tenant_or_exit(tenant_id, config)
    reference_date = _parse_date_or_exit(on_date)
    target_db = db_path or config.database.db_path
    _ensure_schema(target_db, config)

    typer.echo(
        f"{stage_cls.stage_name} batch | tenant={tenant.tenant_id} | "
        f"input={source} | db={target_db}"
    )

    stage = stage_cls(config=config, db_path=target_db)
    try:
        run = stage.run(tenant=tenant, input_path=source, reference_date=reference_date)
    except Exception as exc:
        typer.echo(f"[ERROR] {stage_cls.stage_name} batch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    result = stage.last_result
    typer.echo(format_batch_summary(result, run))

    if report_path:
        written = export_to_json(batch_report(result, run), Path(report_path))
        typer.echo(f"  Report written to: {written}")

    typer.echo("")
    if run.status == "failed" and result.items:
        typer.echo("[FAILED] No items were processed successfully.", err=True)
        raise typer.Exit(code=1)
    if run.status == "partial":
        typer.echo(f"[OK] Batch complete with {run.items_failed} failed item(s).")
    else:
        typer.echo("[OK] Batch complete.")


@app.command("run-forecast-batch")
def run_forecast_batch(
    input_path: str = typer.Option(
        ..., "--input", "-i", help="Catalog file (.json or .csv) of forecast inputs.",
    ),
    tenant_id: Optional[str] = typer.Option(
        None, "--tenant", help="Tenant id. Uses config default if omitted.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    on_date: Optional[str] = typer.Option(
        None, "--date", help="Reference date (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    report_path: Optional[str] = typer.Option(
        None, "--report", help="Write a JSON batch report to this path.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Forecast every product in a catalog file and persist the results.

    \b
    Invalid rows fail individually; the rest of the batch is still
    forecast and stored. Exits with code 1 only when every item fails.
    """
    from retail_forecaster.pipeline.forecast import ForecastStage

    _run_batch_stage(
        ForecastStage, input_path, tenant_id, db_path, on_date, report_path, config_path
    )


@app.command("run-pricing-batch")
def run_pricing_batch(
    input_path: str = typer.Option(
        ..., "--input", "-i", help="Catalog file (.json or .csv) of pricing inputs.",
    ),
    tenant_id: Optional[str] = typer.Option(
        None, "--tenant", help="Tenant id. Uses config default if omitted.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    on_date: Optional[str] = typer.Option(
        None, "--date", help="Date for pricing strategies (YYYY-MM-DD). Defaults to today.",
    ),
    report_path: Optional[str] = typer.Option(
        None, "--report", help="Write a JSON batch report to this path.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Recommend prices for every product in a catalog file and persist them."""
    from retail_forecaster.pipeline.pricing import PricingStage

    _run_batch_stage(
        PricingStage, input_path, tenant_id, db_path, on_date, report_path, config_path
    )


@app.command("show-results")
def show_results(
    tenant_id: Optional[str] = typer.Option(
        None, "--tenant", help="Tenant id. Uses config default if omitted.",
    ),
    kind: str = typer.Option(
        "all", "--kind", help="What to show: forecasts, pricing, runs or all.",
    ),
    product_id: Optional[str] = typer.Option(
        None, "--product-id", help="Only show results for this product.",
    ),
    limit: int = typer.Option(20, "--limit", help="Maximum rows per section."),
    export_path: Optional[str] = typer.Option(
        None,
        "--export",
        help="Also write the shown rows to this CSV file (--kind forecasts or pricing).",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Show the most recent persisted results for a tenant."""
    from retail_forecaster.db.connection import get_connection
    from retail_forecaster.db.repositories.forecast_repo import ForecastResultRepository
    from retail_forecaster.db.repositories.pricing_repo import PricingRecommendationRepository
    from retail_forecaster.db.repositories.run_repo import RunMetadataRepository
    from retail_forecaster.reporting.export import (
        export_to_csv,
        flatten_forecasts_for_export,
        flatten_recommendations_for_export,
    )
    from retail_forecaster.reporting.formatters import (
        format_forecast_table,
        format_recommendation_table,
        format_run_table,
    )

    valid_kinds = ("forecasts", "pricing", "runs", "all")
    if kind not in valid_kinds:
        typer.echo(f"[ERROR] --kind must be one of {', '.join(valid_kinds)}.", err=True)
        raise typer.Exit(code=1)
    if export_path and kind not in ("forecasts", "pricing"):
        typer.echo("[ERROR] --export needs --kind forecasts or --kind pricing.", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    tenant = _tenant_or_exit(tenant_id, config)
    target_db = db_path or config.database.db_path

    if not Path(target_db).exists():
        typer.echo(f"[ERROR] Database not found: {target_db} (run 'init-db' first)", err=True)
        raise typer.Exit(code=1)

    rows: list[dict] = []
    with get_connection(
        target_db,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        typer.echo(f"Results for tenant: {tenant.tenant_id}")
        if kind in ("forecasts", "all"):
            forecasts = ForecastResultRepository(conn).get_for_tenant(
                tenant.tenant_id, product_id=product_id, limit=limit
            )
            rows = flatten_forecasts_for_export(forecasts)
            typer.echo("")
            typer.echo("=== Forecasts ===")
            typer.echo(format_forecast_table(forecasts))
        if kind in ("pricing", "all"):
            recs = PricingRecommendationRepository(conn).get_for_tenant(
                tenant.tenant_id, product_id=product_id, limit=limit
            )
            rows = flatten_recommendations_for_export(recs)
            typer.echo("")
            typer.echo("=== Price Recommendations ===")
            typer.echo(format_recommendation_table(recs))
        if kind in ("runs", "all"):
            runs = RunMetadataRepository(conn).get_recent_runs(tenant.tenant_id, limit=limit)
            typer.echo("")
            typer.echo("=== Recent Runs ===")
            typer.echo(format_run_table(runs))

    if export_path:
        written = export_to_csv(rows, Path(export_path))
        typer.echo("")
        typer.echo(f"  {len(rows)} row(s) exported to: {written}")


if __name__ == "__main__":
    app()
