"""
Period comparison checks.

- Year-over-year deviation: same calendar month of the previous year
- Month-over-month deviation: most recent earlier record
- Price per unit spike: current unit price vs. the recent average

All three compare the current value with a single baseline derived from
the historical records of the same cost type.
"""

from __future__ import annotations

from typing import Optional

from costwatch.data.schema import CostType

from .base import AnomalyCheck
from .schema import CheckContext, CheckResult, CostRecordToCheck, HistoricalCostRecord
from .severity import escalate
from .stats import format_signed, mean, percent_deviation


class YoYDeviationCheck(AnomalyCheck):
    """
    Compares the record with the same month of the previous year.

    Triggers when |deviation| exceeds yoy_deviation_percent (default 20%).
    """

    id = "yoy_deviation"
    name = "Year-over-year deviation"
    description = "Compares with the same month of the previous year"
    min_historical_months = 12

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        last_year = next(
            (
                r for r in context.historical_records
                if r.cost_type == record.cost_type
                and r.period_start.month == record.period_start.month
                and r.period_start.year == record.period_start.year - 1
            ),
            None,
        )
        if last_year is None:
            return CheckResult.not_triggered()

        threshold = context.settings.alert_thresholds.yoy_deviation_percent
        return _compare_amounts(
            record,
            last_year,
            threshold,
            label="vs. same month last year",
            method="yoy_comparison",
        )


class MoMDeviationCheck(AnomalyCheck):
    """
    Compares the record with the most recent earlier record of the same cost type.

    Triggers when |deviation| exceeds mom_deviation_percent (default 30%).
    """

    id = "mom_deviation"
    name = "Month-over-month deviation"
    description = "Compares with the previous billing period"
    min_historical_months = 1

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        earlier = [
            r for r in context.historical_records
            if r.cost_type == record.cost_type and r.period_start < record.period_start
        ]
        if not earlier:
            return CheckResult.not_triggered()

        last_month = max(earlier, key=lambda r: r.period_start)
        threshold = context.settings.alert_thresholds.mom_deviation_percent
        return _compare_amounts(
            record,
            last_month,
            threshold,
            label="vs. previous month",
            method="mom_comparison",
        )


def _compare_amounts(
    record: CostRecordToCheck,
    baseline: HistoricalCostRecord,
    threshold: float,
    label: str,
    method: str,
) -> CheckResult:
    deviation = percent_deviation(record.amount, baseline.amount)
    if deviation is None or abs(deviation) <= threshold:
        return CheckResult.not_triggered()

    deviation_absolute = record.amount - baseline.amount
    sign = "+" if deviation > 0 else ""
    return CheckResult(
        triggered=True,
        severity=escalate(abs(deviation), threshold),
        message=(
            f"{format_signed(deviation)}% {label} "
            f"({sign}€{deviation_absolute:.2f})"
        ),
        details={
            "expected_value": baseline.amount,
            "actual_value": record.amount,
            "deviation_percent": deviation,
            "deviation_absolute": deviation_absolute,
            "comparison_period": baseline.period_start.isoformat(),
            "comparison_record_id": baseline.id,
            "threshold": threshold,
            "method": method,
        },
    )


# Cost types that have meaningful price per unit values
PRICE_PER_UNIT_COST_TYPES = frozenset({
    CostType.ELECTRICITY,
    CostType.NATURAL_GAS,
    CostType.WATER,
    CostType.FUEL_DIESEL,
    CostType.FUEL_PETROL,
    CostType.DISTRICT_HEATING,
})

PRICE_WINDOW = 6
PRICE_MIN_SAMPLES = 3


class PricePerUnitSpikeCheck(AnomalyCheck):
    """
    Detects unit price increases against the average of the last six records.

    One-sided: price decreases never trigger.
    """

    id = "price_per_unit_spike"
    name = "Price per unit spike"
    description = "Detects unusual increases of the price per unit"
    applicable_cost_types = PRICE_PER_UNIT_COST_TYPES
    min_historical_months = 3

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        if not record.price_per_unit or not record.quantity:
            return CheckResult.not_triggered()

        recent = sorted(
            (
                r for r in context.historical_records
                if r.cost_type == record.cost_type
                and r.price_per_unit is not None
                and r.price_per_unit > 0
                and r.period_start < record.period_start
            ),
            key=lambda r: r.period_start,
            reverse=True,
        )[:PRICE_WINDOW]

        if len(recent) < PRICE_MIN_SAMPLES:
            return CheckResult.not_triggered()

        avg_price = mean([r.price_per_unit for r in recent])
        deviation = percent_deviation(record.price_per_unit, avg_price)
        threshold = context.settings.alert_thresholds.price_per_unit_deviation_percent

        if deviation is None or deviation <= threshold:
            return CheckResult.not_triggered()

        price_increase = record.price_per_unit - avg_price
        return CheckResult(
            triggered=True,
            severity=escalate(deviation, threshold),
            message=(
                f"Price per unit +{deviation:.1f}% above {len(recent)}-period average "
                f"(+€{price_increase:.4f}/{_unit_label(record.unit)})"
            ),
            details={
                "expected_value": avg_price,
                "actual_value": record.price_per_unit,
                "deviation_percent": deviation,
                "price_increase": price_increase,
                "unit": record.unit,
                "samples_used": len(recent),
                "threshold": threshold,
                "method": "price_per_unit_avg",
            },
        )


def _unit_label(unit: Optional[str]) -> str:
    return unit or "unit"
