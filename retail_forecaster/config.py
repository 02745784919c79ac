"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      - committed static defaults
  2. ``config/local.toml``        - optional local overrides (gitignored)
  3. ``.env``                     - local secrets and env overrides (gitignored)
  4. Environment variables        - ``RETAIL_FORECASTER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Engines receive their own frozen sub-config (``ForecastConfig``,
``PricingConfig``) at construction; rate tables and weights are never
module-level mutable state, so per-tenant overrides are just a different
config instance.
"""

from __future__ import annotations

import os
import tomllib
from datetime import date
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/retail_forecaster.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/retail_forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class DemandPattern(BaseModel):
    """A regional demand pattern applied to matching product categories.

    Attributes:
        name: Pattern label, e.g. ``"christmas"``.
        months: Calendar months (1-12) during which the pattern is active.
        products: Category keywords; a category matches when it contains any.
        multiplier: Demand multiplier applied while active.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    months: tuple[int, ...]
    products: tuple[str, ...]
    multiplier: float

    @field_validator("months")
    @classmethod
    def validate_months(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        bad = [m for m in v if not 1 <= m <= 12]
        if bad:
            raise ValueError(f"months must be in [1, 12], got {bad}.")
        return v


_DEFAULT_DEMAND_PATTERNS: tuple[DemandPattern, ...] = (
    DemandPattern(
        name="ramadan", months=(3, 4),
        products=("dates", "rice", "cooking_oil"), multiplier=1.5,
    ),
    DemandPattern(
        name="christmas", months=(12,),
        products=("meat", "vegetables", "beverages"), multiplier=2.0,
    ),
    DemandPattern(
        name="school_holidays", months=(4, 8, 12),
        products=("snacks", "stationery", "uniforms"), multiplier=1.3,
    ),
)

_DEFAULT_PUBLIC_HOLIDAYS: tuple[date, ...] = (
    date(2025, 1, 1),    # New Year
    date(2025, 4, 18),   # Good Friday
    date(2025, 4, 21),   # Easter Monday
    date(2025, 5, 1),    # Labour Day
    date(2025, 6, 1),    # Madaraka Day
    date(2025, 10, 20),  # Mashujaa Day
    date(2025, 12, 12),  # Jamhuri Day
    date(2025, 12, 25),  # Christmas
    date(2025, 12, 26),  # Boxing Day
)


class ForecastConfig(BaseModel):
    """Demand forecasting parameters.

    ``monthly_weights`` holds one multiplier per calendar month, January
    first. The caller-supplied ``seasonal_factors`` on a ``ForecastInput``
    never replace this table.
    """

    model_config = ConfigDict(frozen=True)

    forecast_horizon_days: int = 30
    moving_average_window: int = 7
    service_level_z_score: float = 1.65
    monthly_weights: tuple[float, ...] = (
        0.8, 0.9, 1.0, 1.1, 1.0, 0.9, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3,
    )
    holiday_multiplier: float = 1.2
    infer_holidays: bool = False
    public_holidays: tuple[date, ...] = _DEFAULT_PUBLIC_HOLIDAYS
    demand_patterns: tuple[DemandPattern, ...] = _DEFAULT_DEMAND_PATTERNS

    @field_validator("monthly_weights")
    @classmethod
    def validate_monthly_weights(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if len(v) != 12:
            raise ValueError(f"monthly_weights must have 12 entries, got {len(v)}.")
        if any(w <= 0 for w in v):
            raise ValueError("monthly_weights must all be positive.")
        return v

    @field_validator("forecast_horizon_days", "moving_average_window")
    @classmethod
    def validate_positive_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}.")
        return v


class PricingStrategy(BaseModel):
    """A calendar-driven seasonal pricing strategy.

    Active when the date's month is in ``months`` (or ``months`` is empty)
    and its day-of-month is in ``days`` (or ``days`` is empty), for
    categories containing any of ``categories``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    multiplier: float
    categories: tuple[str, ...]
    months: tuple[int, ...] = ()
    days: tuple[int, ...] = ()


_DEFAULT_PRICING_STRATEGIES: tuple[PricingStrategy, ...] = (
    PricingStrategy(
        name="payday_boost", multiplier=1.02,
        categories=("electronics", "clothing", "luxury_items"),
        days=(28, 29, 30, 31, 1, 2),
    ),
    PricingStrategy(
        name="school_season", multiplier=1.15,
        categories=("stationery", "uniforms", "books"),
        months=(1, 5, 9),
    ),
    PricingStrategy(
        name="harvest_discount", multiplier=0.9,
        categories=("vegetables", "fruits", "grains"),
        months=(3, 4, 10, 11),
    ),
)


class PricingConfig(BaseModel):
    """Dynamic pricing parameters.

    ``vat_rate`` is the sales-tax rate folded into the cost floor;
    ``mobile_payment_ceiling`` is the single-transaction limit above which
    a recommendation is flagged.
    """

    model_config = ConfigDict(frozen=True)

    min_margin: float = 0.15
    vat_rate: float = 0.16
    max_price_change_fraction: float = 0.20
    mobile_payment_ceiling: float = 70_000.0
    price_elasticity: float = -1.2
    locale_rounding_min_price: float = 10.0
    strategies: tuple[PricingStrategy, ...] = _DEFAULT_PRICING_STRATEGIES

    @field_validator("min_margin", "vat_rate")
    @classmethod
    def validate_non_negative_rate(cls, v: float) -> float:
        if v < 0.0:
            raise ValueError(f"rate must be non-negative, got {v}.")
        return v

    @field_validator("max_price_change_fraction")
    @classmethod
    def validate_change_fraction(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"max_price_change_fraction must be in (0.0, 1.0), got {v}.")
        return v


class BatchConfig(BaseModel):
    """Batch orchestration settings."""

    model_config = ConfigDict(frozen=True)

    max_workers: int = 4
    persist_retries: int = 2
    persist_backoff_seconds: float = 0.5

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}.")
        return v


class TenantConfig(BaseModel):
    """Tenant scoping defaults for CLI runs."""

    model_config = ConfigDict(frozen=True)

    default_tenant_id: str = "default"


class AppConfig(BaseModel):
    """Complete application configuration - the single source of truth.

    All pipeline stages and CLI commands receive an ``AppConfig`` instance.
    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    forecast: ForecastConfig = ForecastConfig()
    pricing: PricingConfig = PricingConfig()
    batch: BatchConfig = BatchConfig()
    tenant: TenantConfig = TenantConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply RETAIL_FORECASTER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply RETAIL_FORECASTER_* env vars to the raw config dict.

    Supported overrides:
      RETAIL_FORECASTER_DB_PATH      → raw["database"]["db_path"]
      RETAIL_FORECASTER_LOG_LEVEL    → raw["logging"]["level"]
      RETAIL_FORECASTER_VAT_RATE     → raw["pricing"]["vat_rate"]
      RETAIL_FORECASTER_MAX_WORKERS  → raw["batch"]["max_workers"]
      RETAIL_FORECASTER_DEBUG        → raw["debug"]
    """
    if db_path := os.environ.get("RETAIL_FORECASTER_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("RETAIL_FORECASTER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if vat_rate := os.environ.get("RETAIL_FORECASTER_VAT_RATE"):
        raw.setdefault("pricing", {})["vat_rate"] = float(vat_rate)

    if max_workers := os.environ.get("RETAIL_FORECASTER_MAX_WORKERS"):
        raw.setdefault("batch", {})["max_workers"] = int(max_workers)

    if debug := os.environ.get("RETAIL_FORECASTER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        forecast=ForecastConfig(**raw.get("forecast", {})),
        pricing=PricingConfig(**raw.get("pricing", {})),
        batch=BatchConfig(**raw.get("batch", {})),
        tenant=TenantConfig(**raw.get("tenant", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
