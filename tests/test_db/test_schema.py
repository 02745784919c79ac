"""Tests for schema creation and idempotency."""

from __future__ import annotations

import sqlite3

import pytest

from retail_forecaster.db.connection import get_connection
from retail_forecaster.db.schema import ALL_TABLE_NAMES, apply_schema, get_existing_tables


class TestSchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for name in ALL_TABLE_NAMES:
            assert name in tables

    def test_apply_schema_is_idempotent(self, in_memory_db):
        apply_schema(in_memory_db)
        apply_schema(in_memory_db)
        assert set(ALL_TABLE_NAMES) <= set(get_existing_tables(in_memory_db))

    def test_risk_level_check_constraint(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                """
                INSERT INTO inventory_forecasts (
                    tenant_id, product_id, predicted_demand, confidence_score,
                    recommended_order_quantity, reorder_point, forecast_period, risk_level
                ) VALUES ('t', 'p', 1, 0.5, 0, 0, '30_DAYS', 'EXTREME');
                """
            )

    def test_run_foreign_key_enforced(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                """
                INSERT INTO inventory_forecasts (
                    tenant_id, run_id, product_id, predicted_demand, confidence_score,
                    recommended_order_quantity, reorder_point, forecast_period, risk_level
                ) VALUES ('t', 999, 'p', 1, 0.5, 0, 0, '30_DAYS', 'LOW');
                """
            )


class TestConnection:
    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "app.db"
        with get_connection(str(path)) as conn:
            apply_schema(conn)
        assert path.exists()

    def test_rolls_back_on_error(self, tmp_path):
        path = str(tmp_path / "app.db")
        with get_connection(path) as conn:
            apply_schema(conn)
        with pytest.raises(RuntimeError):
            with get_connection(path) as conn:
                conn.execute(
                    "INSERT INTO run_metadata (run_slug, pipeline_stage, config_snapshot) "
                    "VALUES ('r1', 'forecast', '{}');"
                )
                raise RuntimeError("boom")
        with get_connection(path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM run_metadata;").fetchone()[0]
        assert count == 0
