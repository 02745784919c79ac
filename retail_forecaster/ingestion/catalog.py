"""
Catalog file loader for batch runs.

Reads a product catalog export into ``ForecastInput`` or ``PricingInput``
objects. Two formats are accepted, chosen by file extension:

``.json``
    A list of objects. Keys may be snake_case (``current_price``) or the
    admin console's camelCase (``currentPrice``). Forecast rows may nest
    ``external_factors`` as an object.

``.csv``
    Comma delimited with a header row. List columns are pipe separated
    (``12|15|9``); empty cells mean "not given".

Forecast columns
    Required: product_id, historical_sales, current_inventory, lead_time
    Optional: category, seasonal_factors, weather, holidays,
              economic_indicators, events

Pricing columns
    Required: product_id, current_price, cost_price, demand_score,
              inventory_level, sales_velocity, market_position
    Optional: competitor_prices, seasonal_factor, category

A pricing row without ``seasonal_factor`` gets one from the configured
pricing strategies for its category and the reference date.

Only types are checked here. Range checks (zero cost, empty history) are
left to the engines so one bad product fails on its own inside the batch.

The loaders return one entry per row, in file order. A row that fails to
parse (a non-numeric price, a missing field) is returned as an
``InvalidInput`` in its place, carrying the row's ``product_id`` or
``"row-<n>"`` when it has none; ``BatchOrchestrator`` reports it as a failed
item. Problems with the file itself (missing file, unknown extension,
missing CSV columns, JSON that is not a list) still raise.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from collections.abc import Callable, Sequence
from datetime import date
from pathlib import Path
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from retail_forecaster.config import PricingStrategy
from retail_forecaster.errors import InvalidInput
from retail_forecaster.models.forecast import ExternalFactors, ForecastInput
from retail_forecaster.models.pricing import PricingInput
from retail_forecaster.pricing.strategies import strategy_seasonal_factor

logger = logging.getLogger(__name__)

REQUIRED_FORECAST_COLUMNS = frozenset({
    "product_id", "historical_sales", "current_inventory", "lead_time",
})
REQUIRED_PRICING_COLUMNS = frozenset({
    "product_id", "current_price", "cost_price", "demand_score",
    "inventory_level", "sales_velocity", "market_position",
})

_EXTERNAL_FACTOR_KEYS = ("weather", "holidays", "events", "economic_indicators")
_FLOAT_LIST_COLUMNS = frozenset({"historical_sales", "seasonal_factors", "competitor_prices"})
_TRUE_VALUES = frozenset({"true", "1", "yes", "t", "y"})
_FALSE_VALUES = frozenset({"false", "0", "no", "f", "n"})
_MAX_ERRORS_LOGGED = 10

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

M = TypeVar("M", bound=BaseModel)


def load_forecast_inputs(path: Path) -> list[ForecastInput | InvalidInput]:
    """Parse a catalog file into ``ForecastInput`` objects.

    Rows that fail to parse come back as ``InvalidInput`` in their place.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On an unsupported extension or missing columns.
    """
    records, prepare = _read_records(path, REQUIRED_FORECAST_COLUMNS)
    return _parse_all(
        path, records, lambda record: _record_to_forecast_input(prepare(record))
    )


def load_pricing_inputs(
    path: Path,
    reference_date: date,
    strategies: Sequence[PricingStrategy] = (),
) -> list[PricingInput | InvalidInput]:
    """Parse a catalog file into ``PricingInput`` objects.

    Args:
        path: JSON or CSV catalog file.
        reference_date: Date used to evaluate seasonal strategies.
        strategies: Strategies consulted for rows without ``seasonal_factor``.

    Returns:
        One entry per row; unparsable rows as ``InvalidInput``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On an unsupported extension or missing columns.
    """
    records, prepare = _read_records(path, REQUIRED_PRICING_COLUMNS)
    return _parse_all(
        path,
        records,
        lambda record: _record_to_pricing_input(prepare(record), reference_date, strategies),
    )


# ── Reading ────────────────────────────────────────────────────────────────────

_Prepare = Callable[[dict[str, Any]], dict[str, Any]]


def _read_records(
    path: Path,
    required: frozenset[str],
) -> tuple[list[Any], _Prepare]:
    """Read raw records plus the per-row normalizer for their format."""
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        return _read_json(path), _snake_case_keys
    if suffix == ".csv":
        return _read_csv(path, required), _clean_csv_row
    raise ValueError(f"Unsupported catalog format '{suffix}' (expected .json or .csv): {path}")


def _read_json(path: Path) -> list[Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"JSON catalog must be a list of objects: {path}")
    return data


def _read_csv(path: Path, required: frozenset[str]) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = {name.strip() for name in reader.fieldnames}
        missing = required - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )
        return list(reader)


def _clean_csv_row(row: dict[str, Optional[str]]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, raw in row.items():
        if key is None:
            continue
        key = key.strip()
        value = (raw or "").strip()
        if not value:
            continue
        if key in _FLOAT_LIST_COLUMNS:
            cleaned[key] = [float(v) for v in value.split("|") if v.strip()]
        elif key == "events":
            cleaned[key] = [v.strip() for v in value.split("|") if v.strip()]
        elif key == "holidays":
            cleaned[key] = _parse_bool(value)
        else:
            cleaned[key] = value
    return cleaned


def _parse_all(
    path: Path,
    records: list[Any],
    convert: Callable[[dict[str, Any]], M],
) -> list[M | InvalidInput]:
    if not records:
        logger.warning("Catalog is empty: %s", path)
        return []

    rows: list[M | InvalidInput] = []
    rejected = 0
    for i, record in enumerate(records):
        try:
            if not isinstance(record, dict):
                raise ValueError(f"expected an object, got {type(record).__name__}")
            rows.append(convert(record))
        except (ValueError, ValidationError) as exc:
            rows.append(_row_error(i + 1, record, exc))
            rejected += 1
            if rejected <= _MAX_ERRORS_LOGGED:
                logger.warning("Row %d of %s rejected: %s", i + 1, path.name, exc)

    if rejected > _MAX_ERRORS_LOGGED:
        logger.warning(
            "... and %d more rejected row(s) in %s", rejected - _MAX_ERRORS_LOGGED, path.name
        )
    logger.info(
        "Parsed %d catalog rows from %s (%d rejected)",
        len(rows) - rejected, path.name, rejected,
    )
    return rows


def _row_error(row: int, record: Any, exc: Exception) -> InvalidInput:
    product_id = None
    if isinstance(record, dict):
        raw_id = record.get("product_id", record.get("productId"))
        if isinstance(raw_id, str) and raw_id.strip():
            product_id = raw_id.strip()

    field = None
    if isinstance(exc, ValidationError) and exc.errors():
        field = ".".join(str(part) for part in exc.errors()[0]["loc"]) or None
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
            for err in exc.errors()
        )
    else:
        message = str(exc)

    return InvalidInput(
        f"Row {row}: {message}",
        product_id=product_id or f"row-{row}",
        field=field,
    )


# ── Conversion ─────────────────────────────────────────────────────────────────

def _record_to_forecast_input(record: dict[str, Any]) -> ForecastInput:
    data = dict(record)
    nested = data.pop("external_factors", None) or {}
    if not isinstance(nested, dict):
        raise ValueError("external_factors must be an object.")
    factors = {_snake_case(k): v for k, v in nested.items()}
    for key in _EXTERNAL_FACTOR_KEYS:
        if key in data:
            factors[key] = data.pop(key)
    return ForecastInput(external_factors=ExternalFactors(**factors), **data)


def _record_to_pricing_input(
    record: dict[str, Any],
    reference_date: date,
    strategies: Sequence[PricingStrategy],
) -> PricingInput:
    data = dict(record)
    if data.get("seasonal_factor") is None:
        data["seasonal_factor"] = strategy_seasonal_factor(
            data.get("category"), reference_date, strategies
        )
    if isinstance(data.get("market_position"), str):
        data["market_position"] = data["market_position"].strip().upper()
    return PricingInput(**data)


def _snake_case_keys(record: dict[str, Any]) -> dict[str, Any]:
    return {_snake_case(k): v for k, v in record.items()}


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot parse '{value}' as a boolean.")
