"""
Unit tests for the cost record and detection schemas.
"""

import json
import pytest
from datetime import date
from pydantic import ValidationError

from costwatch.anomaly.schema import (
    AnomalySeverity,
    BudgetContext,
    CheckResult,
    DetectedAnomaly,
    DetectionResult,
)
from costwatch.data.schema import CostRecord, CostType


class TestCostRecord:
    """Test CostRecord validation."""

    def _valid(self, **overrides):
        data = {
            "id": "cr-1",
            "location_id": "loc-1",
            "supplier_id": "sup-1",
            "cost_type": "electricity",
            "amount": 100.0,
            "period_start": date(2024, 1, 1),
            "period_end": date(2024, 1, 31),
        }
        data.update(overrides)
        return data

    def test_valid_record(self):
        record = CostRecord(**self._valid())

        assert record.cost_type == CostType.ELECTRICITY
        assert record.quantity is None

    def test_single_day_period(self):
        record = CostRecord(**self._valid(period_end=date(2024, 1, 1)))
        assert record.period_start == record.period_end

    def test_period_end_before_start(self):
        with pytest.raises(ValidationError):
            CostRecord(**self._valid(period_end=date(2023, 12, 31)))

    def test_empty_id(self):
        with pytest.raises(ValidationError):
            CostRecord(**self._valid(id=""))

    def test_unknown_cost_type(self):
        with pytest.raises(ValidationError):
            CostRecord(**self._valid(cost_type="unicorns"))

    def test_immutable(self):
        record = CostRecord(**self._valid())
        with pytest.raises(ValidationError):
            record.amount = 5.0


class TestDetectionSchema:
    def test_not_triggered(self):
        result = CheckResult.not_triggered()
        assert result.triggered is False
        assert result.severity is None
        assert result.details is None

    def test_budget_month_range(self):
        with pytest.raises(ValidationError):
            BudgetContext(id="b", cost_type="electricity", year=2024, month=0, amount=1.0)

    def test_alertable_anomalies(self):
        def anomaly(check_id, severity, is_backfill=False):
            return DetectedAnomaly(
                cost_record_id="cr-1",
                type=check_id,
                severity=severity,
                message="m",
                is_backfill=is_backfill,
            )

        result = DetectionResult(
            cost_record_id="cr-1",
            anomalies=[
                anomaly("yoy_deviation", AnomalySeverity.CRITICAL),
                anomaly("seasonal_anomaly", AnomalySeverity.INFO),
                anomaly("budget_exceeded", AnomalySeverity.WARNING),
                anomaly("mom_deviation", AnomalySeverity.WARNING, is_backfill=True),
            ],
        )

        assert [a.type for a in result.alertable_anomalies] == ["yoy_deviation", "budget_exceeded"]

    def test_result_serializes_to_json(self):
        data = json.loads(DetectionResult(cost_record_id="cr-1").model_dump_json())
        assert data == {
            "cost_record_id": "cr-1",
            "anomalies": [],
            "check_results": [],
            "is_backfill": False,
        }
