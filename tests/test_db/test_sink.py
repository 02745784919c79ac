"""Tests for the SQLite and in-memory result sinks."""

from __future__ import annotations

from retail_forecaster.db.connection import get_connection
from retail_forecaster.db.repositories.forecast_repo import ForecastResultRepository
from retail_forecaster.db.repositories.pricing_repo import PricingRecommendationRepository
from retail_forecaster.db.sink import MemoryResultSink, SQLiteResultSink
from retail_forecaster.pricing.engine import PricingEngine


class TestSQLiteResultSink:
    def test_writes_forecasts(self, db_file, tenant, sample_forecast_result):
        sink = SQLiteResultSink(db_file)
        outcomes = sink.write_forecasts(tenant, [sample_forecast_result])
        assert [o.ok for o in outcomes] == [True]
        assert outcomes[0].record_id is not None
        with get_connection(db_file) as conn:
            assert len(ForecastResultRepository(conn).get_for_tenant("acme")) == 1

    def test_bad_record_does_not_undo_others(self, db_file, tenant, sample_forecast_result):
        bad = sample_forecast_result.model_copy(
            update={"product_id": "SKU-BAD", "confidence_score": 1.5}
        )
        other = sample_forecast_result.model_copy(update={"product_id": "SKU-C"})
        outcomes = SQLiteResultSink(db_file).write_forecasts(
            tenant, [sample_forecast_result, bad, other]
        )

        assert [o.product_id for o in outcomes] == ["SKU-A", "SKU-BAD", "SKU-C"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert "CHECK" in outcomes[1].error
        with get_connection(db_file) as conn:
            stored = ForecastResultRepository(conn).get_for_tenant("acme")
        assert sorted(r.product_id for r in stored) == ["SKU-A", "SKU-C"]

    def test_writes_recommendations(self, db_file, tenant, sample_pricing_input):
        rec = PricingEngine().recommend_price(sample_pricing_input)
        bad = rec.model_copy(update={"product_id": "SKU-NEG", "recommended_price": -1.0})
        outcomes = SQLiteResultSink(db_file).write_recommendations(tenant, [bad, rec])
        assert [o.ok for o in outcomes] == [False, True]
        with get_connection(db_file) as conn:
            stored = PricingRecommendationRepository(conn).get_for_tenant("acme")
        assert [r.product_id for r in stored] == ["SKU-B"]


class TestMemoryResultSink:
    def test_records_tenant_and_run(self, tenant, sample_forecast_result):
        sink = MemoryResultSink()
        outcomes = sink.write_forecasts(tenant, [sample_forecast_result], run_id=3)
        assert outcomes[0].record_id == 1
        assert sink.forecasts == [("acme", 3, sample_forecast_result)]

    def test_record_ids_increase(self, tenant, sample_pricing_input):
        rec = PricingEngine().recommend_price(sample_pricing_input)
        sink = MemoryResultSink()
        sink.write_recommendations(tenant, [rec])
        outcomes = sink.write_recommendations(tenant, [rec, rec])
        assert [o.record_id for o in outcomes] == [2, 3]
