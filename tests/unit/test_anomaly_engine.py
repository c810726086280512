"""
Unit tests for anomaly detection engine.
"""

import logging
from datetime import date

import pytest

from costwatch.anomaly.engine import (
    AnomalyEngine,
    calculate_historical_months,
    create_anomaly_engine,
)
from costwatch.anomaly.registry import get_check_by_id
from costwatch.anomaly.schema import AnomalySeverity, BudgetContext, DetectionOptions
from costwatch.core.config import AnomalySettings
from costwatch.core.exceptions import ConfigurationError
from costwatch.data.schema import CostType


@pytest.fixture
def flat_history(monthly_history):
    """Thirteen months of 1000.0 electricity, May 2023 to May 2024."""
    return monthly_history(date(2023, 5, 1), [1000.0] * 13)


def _june_budget(amount=2000.0):
    return BudgetContext(
        id="budget-june", cost_type=CostType.ELECTRICITY, year=2024, month=6, amount=amount
    )


class TestHistoricalMonths:
    def test_empty(self):
        assert calculate_historical_months([]) == 0

    def test_thirty_day_blocks(self, monthly_history):
        assert calculate_historical_months(monthly_history(date(2023, 5, 1), [1.0] * 13)) == 12
        # 335 days between June 2023 and May 2024
        assert calculate_historical_months(monthly_history(date(2023, 6, 1), [1.0] * 12)) == 11

    def test_order_independent(self, make_historical):
        records = [
            make_historical("b", date(2024, 3, 1), 1.0),
            make_historical("a", date(2024, 1, 1), 1.0),
        ]
        assert calculate_historical_months(records) == 2


class TestDetect:
    def test_yoy_only(self, make_record, make_context, flat_history):
        engine = AnomalyEngine()

        result = engine.detect(make_record(amount=1250.0), make_context(flat_history))

        assert result.cost_record_id == "cr-current"
        assert [a.type for a in result.anomalies] == ["yoy_deviation"]
        anomaly = result.anomalies[0]
        assert anomaly.severity == AnomalySeverity.WARNING
        assert anomaly.cost_record_id == "cr-current"
        assert anomaly.details["deviation_percent"] == pytest.approx(25.0)
        assert anomaly.is_backfill is False
        assert result.alertable_anomalies == [anomaly]

    def test_trace_covers_every_selected_check(self, make_record, make_context, flat_history):
        result = AnomalyEngine().detect(make_record(amount=1250.0), make_context(flat_history))

        assert [t.check_id for t in result.check_results] == [
            "yoy_deviation",
            "mom_deviation",
            "price_per_unit_spike",
            "statistical_outlier",
            "duplicate_detection",
            "missing_period",
            "seasonal_anomaly",
            "budget_exceeded",
        ]
        assert not any(t.skipped for t in result.check_results)

    def test_anomalies_in_registration_order(self, make_record, make_context, flat_history):
        context = make_context(flat_history, budget=_june_budget())

        result = AnomalyEngine().detect(make_record(amount=2500.0), context)

        assert [a.type for a in result.anomalies] == [
            "yoy_deviation",
            "mom_deviation",
            "seasonal_anomaly",
            "budget_exceeded",
        ]
        severities = {a.type: a.severity for a in result.anomalies}
        assert severities["yoy_deviation"] == AnomalySeverity.CRITICAL
        assert severities["seasonal_anomaly"] == AnomalySeverity.INFO
        assert severities["budget_exceeded"] == AnomalySeverity.CRITICAL
        assert len(result.alertable_anomalies) == 3

    def test_insufficient_history_is_skipped(self, make_record, make_context, monthly_history):
        history = monthly_history(date(2024, 3, 1), [1000.0] * 3)

        result = AnomalyEngine().detect(make_record(amount=5000.0), make_context(history))

        traces = {t.check_id: t for t in result.check_results}
        assert traces["yoy_deviation"].skipped
        assert traces["yoy_deviation"].skip_reason == (
            "insufficient historical data (2 months, need 12)"
        )
        assert traces["price_per_unit_spike"].skipped
        assert traces["statistical_outlier"].skipped
        assert traces["seasonal_anomaly"].skipped
        assert not traces["mom_deviation"].skipped
        assert not traces["missing_period"].skipped
        assert not traces["duplicate_detection"].skipped
        assert not traces["budget_exceeded"].skipped
        assert [a.type for a in result.anomalies] == ["mom_deviation"]

    def test_scenario_e_no_history(self, make_record, make_context):
        result = AnomalyEngine().detect(make_record(amount=1300.0), make_context())

        skipped = [t for t in result.check_results if t.skipped]
        assert [t.check_id for t in skipped] == [
            "yoy_deviation",
            "mom_deviation",
            "price_per_unit_spike",
            "statistical_outlier",
            "missing_period",
            "seasonal_anomaly",
        ]
        assert all(t.skip_reason.startswith("insufficient historical data") for t in skipped)
        assert result.anomalies == ()

    def test_empty_history_runs_ungated_checks_only(self, make_record, make_context):
        context = make_context(budget=_june_budget(1000.0))

        result = AnomalyEngine().detect(make_record(amount=1200.0), context)

        ran = [t.check_id for t in result.check_results if not t.skipped]
        assert ran == ["duplicate_detection", "budget_exceeded"]
        assert [a.type for a in result.anomalies] == ["budget_exceeded"]

    def test_history_requirement_override(self, make_record, make_historical, make_context):
        settings = {"min_historical_months": {"yoy_deviation": 0, "mom_deviation": 3}}
        history = [make_historical("may", date(2024, 5, 1), 500.0)]

        result = AnomalyEngine(settings).detect(make_record(), make_context(history))

        traces = {t.check_id: t for t in result.check_results}
        assert not traces["yoy_deviation"].skipped
        assert traces["mom_deviation"].skipped
        assert traces["mom_deviation"].skip_reason == (
            "insufficient historical data (0 months, need 3)"
        )

    def test_failing_check_is_isolated(
        self, make_record, make_context, flat_history, monkeypatch, caplog
    ):
        def boom(record, context):
            raise RuntimeError("boom")

        monkeypatch.setattr(get_check_by_id("mom_deviation"), "evaluate", boom)

        with caplog.at_level(logging.ERROR, logger="costwatch.anomaly.engine"):
            result = AnomalyEngine().detect(make_record(amount=1250.0), make_context(flat_history))

        traces = {t.check_id: t for t in result.check_results}
        assert traces["mom_deviation"].skipped
        assert traces["mom_deviation"].skip_reason == "check failed: boom"
        assert not traces["mom_deviation"].result.triggered
        assert [a.type for a in result.anomalies] == ["yoy_deviation"]
        assert any("mom_deviation" in r.getMessage() for r in caplog.records)

    def test_backfill_is_not_alertable(self, make_record, make_context, flat_history):
        result = AnomalyEngine().detect(
            make_record(amount=1250.0), make_context(flat_history), {"is_backfill": True}
        )

        assert result.is_backfill
        assert [a.is_backfill for a in result.anomalies] == [True]
        assert result.alertable_anomalies == []

    def test_info_is_not_alertable(self, make_record, make_context):
        context = make_context(budget=_june_budget(1000.0))

        result = AnomalyEngine().detect(make_record(amount=950.0), context)

        assert [a.severity for a in result.anomalies] == [AnomalySeverity.INFO]
        assert result.alertable_anomalies == []

    def test_check_id_filter(self, make_record, make_context, flat_history):
        options = DetectionOptions(check_ids=("yoy_deviation", "seasonal_anomaly"))

        result = AnomalyEngine().detect(make_record(amount=2500.0), make_context(flat_history), options)

        assert [t.check_id for t in result.check_results] == ["yoy_deviation", "seasonal_anomaly"]
        assert [a.type for a in result.anomalies] == ["yoy_deviation", "seasonal_anomaly"]

    def test_engine_settings_override_context_settings(self, make_record, make_context, flat_history):
        lenient = AnomalySettings(alert_thresholds={"yoy_deviation_percent": 90.0})
        context = make_context(flat_history, settings=lenient)

        result = AnomalyEngine().detect(make_record(amount=1250.0), context)

        assert [a.type for a in result.anomalies] == ["yoy_deviation"]

    def test_deterministic(self, make_record, make_context, flat_history):
        engine = AnomalyEngine()
        record = make_record(amount=2500.0)
        context = make_context(flat_history, budget=_june_budget())

        first = engine.detect(record, context).model_dump_json()
        second = engine.detect(record, context).model_dump_json()

        assert first == second


class TestSettings:
    def test_custom_thresholds(self, make_record, make_context, flat_history):
        engine = create_anomaly_engine({"alert_thresholds": {"yoy_deviation_percent": 30.0}})

        result = engine.detect(make_record(amount=1250.0), make_context(flat_history))

        assert result.anomalies == ()
        assert engine.get_settings().alert_thresholds.mom_deviation_percent == 30.0

    def test_update_settings_replaces_snapshot(self):
        engine = AnomalyEngine({})
        before = engine.settings

        engine.update_settings({"alert_thresholds": {"z_score_threshold": 3.0}})

        assert engine.settings is not before
        assert before.alert_thresholds.z_score_threshold == 2.0
        assert engine.settings.alert_thresholds.z_score_threshold == 3.0

    def test_settings_snapshot_cannot_change_engine(self):
        engine = AnomalyEngine({"min_historical_months": {"yoy_deviation": 12}})
        snapshot = engine.get_settings()

        with pytest.raises(TypeError):
            snapshot.min_historical_months["yoy_deviation"] = 0

        assert engine.settings.min_historical_months == {"yoy_deviation": 12}

    def test_invalid_update_keeps_settings(self):
        engine = AnomalyEngine({})
        before = engine.settings

        with pytest.raises(ConfigurationError):
            engine.update_settings({"digest_hour": 99})

        assert engine.settings is before

    def test_disable_and_enable_check(self, make_record, make_context, flat_history):
        engine = AnomalyEngine({})

        engine.disable_check("yoy_deviation")
        engine.disable_check("yoy_deviation")
        assert not engine.is_check_enabled("yoy_deviation")

        result = engine.detect(make_record(amount=1250.0), make_context(flat_history))
        assert "yoy_deviation" not in [t.check_id for t in result.check_results]
        assert result.anomalies == ()

        engine.enable_check("yoy_deviation")
        engine.enable_check("yoy_deviation")
        assert engine.is_check_enabled("yoy_deviation")
        assert engine.settings.enabled_checks.count("yoy_deviation") == 1

        result = engine.detect(make_record(amount=1250.0), make_context(flat_history))
        assert result.check_results[0].check_id == "yoy_deviation"
