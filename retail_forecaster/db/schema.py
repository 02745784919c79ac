"""
SQLite schema DDL for persisted engine results.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Tables:
  1. run_metadata             (no FKs)      batch run audit log
  2. inventory_forecasts      (→ run_metadata)
  3. pricing_recommendations  (→ run_metadata)

Result tables are append-only: a re-run inserts new rows rather than
updating old ones. Every result row carries ``tenant_id``; the engines
never see it.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    pipeline_stage  TEXT    NOT NULL,
    tenant_id       TEXT,
    status          TEXT    NOT NULL DEFAULT 'started',
    config_snapshot TEXT    NOT NULL,
    items_processed INTEGER NOT NULL DEFAULT 0,
    items_failed    INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    finished_at     TEXT
);
"""

_DDL_INVENTORY_FORECASTS = """
CREATE TABLE IF NOT EXISTS inventory_forecasts (
    forecast_id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id                   TEXT    NOT NULL,
    run_id                      INTEGER REFERENCES run_metadata(run_id),
    product_id                  TEXT    NOT NULL,
    predicted_demand            INTEGER NOT NULL CHECK (predicted_demand >= 0),
    confidence_score            REAL    NOT NULL
                                CHECK (confidence_score BETWEEN 0.0 AND 1.0),
    recommended_order_quantity  INTEGER NOT NULL CHECK (recommended_order_quantity >= 0),
    reorder_point               INTEGER NOT NULL CHECK (reorder_point >= 0),
    forecast_period             TEXT    NOT NULL,
    risk_level                  TEXT    NOT NULL CHECK (risk_level IN ('LOW', 'MEDIUM', 'HIGH')),
    created_at                  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_INVENTORY_FORECASTS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_forecasts_tenant_product
    ON inventory_forecasts(tenant_id, product_id);
CREATE INDEX IF NOT EXISTS idx_forecasts_run
    ON inventory_forecasts(run_id);
"""

_DDL_PRICING_RECOMMENDATIONS = """
CREATE TABLE IF NOT EXISTS pricing_recommendations (
    recommendation_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    tenant_id                TEXT    NOT NULL,
    run_id                   INTEGER REFERENCES run_metadata(run_id),
    product_id               TEXT    NOT NULL,
    current_price            REAL    NOT NULL CHECK (current_price > 0),
    recommended_price        REAL    NOT NULL CHECK (recommended_price > 0),
    price_change             REAL    NOT NULL,
    price_change_percentage  REAL    NOT NULL,
    reasoning                TEXT    NOT NULL,
    confidence               REAL    NOT NULL CHECK (confidence BETWEEN 0.0 AND 1.0),
    demand_change            REAL    NOT NULL,
    revenue_change           REAL    NOT NULL,
    margin_change            REAL    NOT NULL,
    created_at               TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_PRICING_RECOMMENDATIONS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_pricing_tenant_product
    ON pricing_recommendations(tenant_id, product_id);
CREATE INDEX IF NOT EXISTS idx_pricing_run
    ON pricing_recommendations(run_id);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_RUN_METADATA,
    _DDL_INVENTORY_FORECASTS,
    _DDL_INVENTORY_FORECASTS_INDEXES,
    _DDL_PRICING_RECOMMENDATIONS,
    _DDL_PRICING_RECOMMENDATIONS_INDEXES,
]

ALL_TABLE_NAMES = [
    "run_metadata",
    "inventory_forecasts",
    "pricing_recommendations",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``. Idempotent.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
