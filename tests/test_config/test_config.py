"""
Tests for retail_forecaster.config - layered configuration loading.

Covers:
  - Model defaults and validators
  - load_config(): committed default.toml, explicit path, local.toml merge,
    RETAIL_FORECASTER_* environment overrides, missing file
  - _deep_merge()
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from retail_forecaster.config import (
    AppConfig,
    BatchConfig,
    DemandPattern,
    ForecastConfig,
    LoggingConfig,
    PricingConfig,
    _deep_merge,
    load_config,
)

_ENV_VARS = (
    "RETAIL_FORECASTER_DB_PATH",
    "RETAIL_FORECASTER_LOG_LEVEL",
    "RETAIL_FORECASTER_VAT_RATE",
    "RETAIL_FORECASTER_MAX_WORKERS",
    "RETAIL_FORECASTER_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_toml(tmp_path: Path, content: str, name: str = "app.toml") -> Path:
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    return p


# ── Models ─────────────────────────────────────────────────────────────────────

class TestConfigModels:
    def test_forecast_defaults(self):
        cfg = ForecastConfig()
        assert cfg.forecast_horizon_days == 30
        assert cfg.moving_average_window == 7
        assert cfg.service_level_z_score == 1.65
        assert len(cfg.monthly_weights) == 12
        assert cfg.monthly_weights[11] == 1.3
        assert cfg.infer_holidays is False
        assert date(2025, 12, 25) in cfg.public_holidays

    def test_pricing_defaults(self):
        cfg = PricingConfig()
        assert cfg.min_margin == 0.15
        assert cfg.vat_rate == 0.16
        assert cfg.max_price_change_fraction == 0.20
        assert [s.name for s in cfg.strategies] == [
            "payday_boost", "school_season", "harvest_discount",
        ]

    def test_monthly_weights_length(self):
        with pytest.raises(ValidationError):
            ForecastConfig(monthly_weights=[1.0] * 11)

    def test_monthly_weights_positive(self):
        with pytest.raises(ValidationError):
            ForecastConfig(monthly_weights=[1.0] * 11 + [0.0])

    def test_demand_pattern_months(self):
        with pytest.raises(ValidationError):
            DemandPattern(name="x", months=[13], products=["rice"], multiplier=1.1)

    def test_change_fraction_bounds(self):
        with pytest.raises(ValidationError):
            PricingConfig(max_price_change_fraction=1.0)

    def test_negative_vat_rejected(self):
        with pytest.raises(ValidationError):
            PricingConfig(vat_rate=-0.01)

    def test_workers_at_least_one(self):
        with pytest.raises(ValidationError):
            BatchConfig(max_workers=0)

    def test_log_level_normalized(self):
        assert LoggingConfig(level="warning").level == "WARNING"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_app_config_frozen(self):
        cfg = AppConfig()
        with pytest.raises(ValidationError):
            cfg.debug = True

    def test_rate_tables_cannot_be_mutated_in_place(self):
        forecast = ForecastConfig(monthly_weights=[1.0] * 12)
        assert isinstance(forecast.monthly_weights, tuple)
        with pytest.raises(TypeError):
            forecast.monthly_weights[0] = 5.0
        with pytest.raises(AttributeError):
            forecast.demand_patterns.append(forecast.demand_patterns[0])
        with pytest.raises(AttributeError):
            PricingConfig().strategies[0].categories.append("tea")

    def test_default_patterns(self):
        names = [p.name for p in ForecastConfig().demand_patterns]
        assert names == ["ramadan", "christmas", "school_holidays"]


# ── load_config ────────────────────────────────────────────────────────────────

class TestLoadConfig:
    def test_committed_defaults_match_models(self):
        cfg = load_config()
        assert cfg.forecast == ForecastConfig()
        assert cfg.pricing == PricingConfig()
        assert cfg.batch == BatchConfig()
        assert cfg.tenant.default_tenant_id == "default"
        assert cfg.debug is False

    def test_explicit_path_partial_sections(self, tmp_path):
        path = _write_toml(tmp_path, """
[project]
debug = true

[pricing]
vat_rate = 0.0

[tenant]
default_tenant_id = "acme"
""")
        cfg = load_config(path)
        assert cfg.debug is True
        assert cfg.pricing.vat_rate == 0.0
        assert cfg.pricing.min_margin == 0.15
        assert cfg.tenant.default_tenant_id == "acme"

    def test_local_toml_overrides(self, tmp_path):
        path = _write_toml(tmp_path, "[batch]\nmax_workers = 2\npersist_retries = 1\n")
        _write_toml(tmp_path, "[batch]\nmax_workers = 8\n", name="local.toml")
        cfg = load_config(path)
        assert cfg.batch.max_workers == 8
        assert cfg.batch.persist_retries == 1

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write_toml(tmp_path, "[database]\ndb_path = \"a.db\"\n")
        monkeypatch.setenv("RETAIL_FORECASTER_DB_PATH", str(tmp_path / "b.db"))
        monkeypatch.setenv("RETAIL_FORECASTER_LOG_LEVEL", "debug")
        monkeypatch.setenv("RETAIL_FORECASTER_VAT_RATE", "0.1")
        monkeypatch.setenv("RETAIL_FORECASTER_MAX_WORKERS", "3")
        monkeypatch.setenv("RETAIL_FORECASTER_DEBUG", "yes")
        cfg = load_config(path)
        assert cfg.database.db_path == str(tmp_path / "b.db")
        assert cfg.logging.level == "DEBUG"
        assert cfg.pricing.vat_rate == 0.1
        assert cfg.batch.max_workers == 3
        assert cfg.debug is True

    def test_invalid_values_raise(self, tmp_path):
        path = _write_toml(tmp_path, "[forecast]\nmonthly_weights = [1.0, 1.0]\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_snapshot_is_json_safe(self):
        snapshot = load_config().model_dump(mode="json")
        assert snapshot["forecast"]["public_holidays"][0] == "2025-01-01"


class TestDeepMerge:
    def test_nested_merge(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = _deep_merge(base, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base["a"]["y"] == 2

    def test_non_dict_replaces(self):
        assert _deep_merge({"a": {"x": 1}}, {"a": 5}) == {"a": 5}
