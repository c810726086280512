"""
Pytest configuration and shared fixtures.

Provides factories for records, historical series and check contexts so each
test only spells out the values it is about.
"""

import calendar
from datetime import date
from typing import Iterable, List, Optional

import pytest

from costwatch.anomaly.schema import (
    BudgetContext,
    CheckContext,
    CostRecordToCheck,
    HistoricalCostRecord,
    LocationContext,
    SupplierContext,
)
from costwatch.core.config import AnomalySettings
from costwatch.data.schema import CostType


def add_months(day: date, months: int) -> date:
    """First day of the month `months` after day's month."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def month_end(day: date) -> date:
    return date(day.year, day.month, calendar.monthrange(day.year, day.month)[1])


def _make_record(**overrides) -> CostRecordToCheck:
    data = {
        "id": "cr-current",
        "location_id": "loc-1",
        "supplier_id": "sup-1",
        "cost_type": CostType.ELECTRICITY,
        "amount": 1000.0,
        "period_start": date(2024, 6, 1),
        "period_end": date(2024, 6, 30),
    }
    data.update(overrides)
    return CostRecordToCheck(**data)


def _make_historical(
    record_id: str,
    period_start: date,
    amount: float,
    **overrides,
) -> HistoricalCostRecord:
    data = {
        "id": record_id,
        "cost_type": CostType.ELECTRICITY,
        "amount": amount,
        "period_start": period_start,
        "period_end": month_end(period_start),
        "supplier_id": "sup-1",
    }
    data.update(overrides)
    return HistoricalCostRecord(**data)


def _make_monthly_history(
    start: date,
    amounts: Iterable[float],
    prices: Optional[Iterable[Optional[float]]] = None,
    **overrides,
) -> List[HistoricalCostRecord]:
    amounts = list(amounts)
    prices = list(prices) if prices is not None else [None] * len(amounts)
    history = []
    for i, (amount, price) in enumerate(zip(amounts, prices)):
        period_start = add_months(start, i)
        extra = dict(overrides)
        if price is not None:
            extra.setdefault("price_per_unit", price)
            extra.setdefault("quantity", amount / price)
            extra.setdefault("unit", "kWh")
        history.append(
            _make_historical(f"hist-{period_start.isoformat()}", period_start, amount, **extra)
        )
    return history


def _make_context(
    history: Iterable[HistoricalCostRecord] = (),
    settings: Optional[AnomalySettings] = None,
    budget: Optional[BudgetContext] = None,
) -> CheckContext:
    return CheckContext(
        location=LocationContext(id="loc-1", name="Head office", type="office"),
        supplier=SupplierContext(id="sup-1", name="Stadtwerke", category="energy_electricity"),
        historical_records=tuple(history),
        budget=budget,
        settings=settings or AnomalySettings(),
    )


@pytest.fixture
def make_record():
    """Factory for the record under evaluation (electricity, June 2024, 1000.0)."""
    return _make_record


@pytest.fixture
def make_historical():
    """Factory for a single historical record of supplier sup-1."""
    return _make_historical


@pytest.fixture
def monthly_history():
    """Factory for one historical record per month starting at `start`."""
    return _make_monthly_history


@pytest.fixture
def make_context():
    """Factory for a CheckContext around a history."""
    return _make_context


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
