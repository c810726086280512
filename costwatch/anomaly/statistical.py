"""
Statistical checks over the amount history.

- Statistical outlier: z-score of the amount against all earlier amounts
- Seasonal anomaly: amount vs. the historical average scaled by a fixed
  monthly seasonal multiplier
"""

from __future__ import annotations

from typing import Dict, List

from costwatch.data.schema import CostType

from .base import AnomalyCheck
from .schema import AnomalySeverity, CheckContext, CheckResult, CostRecordToCheck
from .stats import format_signed, mean, population_std, z_score

OUTLIER_MIN_SAMPLES = 6
OUTLIER_CRITICAL_Z = 3.0


def _earlier_amounts(record: CostRecordToCheck, context: CheckContext) -> List[float]:
    return [
        r.amount for r in context.historical_records
        if r.cost_type == record.cost_type and r.period_start < record.period_start
    ]


class StatisticalOutlierCheck(AnomalyCheck):
    """
    Z-score outlier check.

    Needs at least six earlier amounts. Critical beyond three standard
    deviations regardless of the configured alert threshold.
    """

    id = "statistical_outlier"
    name = "Statistical outlier"
    description = "Detects statistically unusual amounts using the z-score"
    min_historical_months = 6

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        amounts = _earlier_amounts(record, context)
        if len(amounts) < OUTLIER_MIN_SAMPLES:
            return CheckResult.not_triggered()

        center = mean(amounts)
        std = population_std(amounts, center)
        z = z_score(record.amount, center, std)
        threshold = context.settings.alert_thresholds.z_score_threshold

        if z is None or abs(z) <= threshold:
            return CheckResult.not_triggered()

        severity = (
            AnomalySeverity.CRITICAL if abs(z) > OUTLIER_CRITICAL_Z else AnomalySeverity.WARNING
        )
        return CheckResult(
            triggered=True,
            severity=severity,
            message=f"Statistically unusual: {z:.1f} standard deviations from the mean",
            details={
                "expected_value": center,
                "actual_value": record.amount,
                "z_score": z,
                "standard_deviation": std,
                "deviation_absolute": record.amount - center,
                "samples_used": len(amounts),
                "threshold": threshold,
                "method": "zscore",
            },
        )


# Relative consumption by calendar month (January first); 1.0 is the yearly average
_HEATING_PATTERN = [1.4, 1.3, 1.1, 0.8, 0.6, 0.5, 0.5, 0.5, 0.6, 0.9, 1.2, 1.4]

SEASONAL_PATTERNS: Dict[CostType, List[float]] = {
    CostType.NATURAL_GAS: _HEATING_PATTERN,
    CostType.DISTRICT_HEATING: _HEATING_PATTERN,
    # winter lighting/heating and summer cooling
    CostType.ELECTRICITY: [1.1, 1.1, 1.0, 0.9, 0.9, 1.0, 1.1, 1.1, 1.0, 0.95, 1.0, 1.1],
    # gardens and cooling in summer
    CostType.WATER: [0.9, 0.9, 1.0, 1.0, 1.1, 1.2, 1.2, 1.2, 1.1, 1.0, 0.9, 0.9],
}

SEASONAL_MIN_SAMPLES = 12
SEASONAL_THRESHOLD = 0.5


def season_name(month: int) -> str:
    """Meteorological season for a 1-based calendar month."""
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


class SeasonalAnomalyCheck(AnomalyCheck):
    """
    Detects amounts far from what the season predicts, e.g. high heating
    costs in summer. Always informational.
    """

    id = "seasonal_anomaly"
    name = "Seasonal anomaly"
    description = "Detects large deviations from the expected seasonal pattern"
    applicable_cost_types = frozenset(SEASONAL_PATTERNS)
    min_historical_months = 12

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        pattern = SEASONAL_PATTERNS.get(record.cost_type)
        if pattern is None:
            return CheckResult.not_triggered()

        amounts = _earlier_amounts(record, context)
        if len(amounts) < SEASONAL_MIN_SAMPLES:
            return CheckResult.not_triggered()

        overall_average = mean(amounts)
        if overall_average == 0:
            return CheckResult.not_triggered()

        month = record.period_start.month
        multiplier = pattern[month - 1]
        expected_amount = overall_average * multiplier
        deviation = (record.amount - expected_amount) / expected_amount

        if abs(deviation) <= SEASONAL_THRESHOLD:
            return CheckResult.not_triggered()

        season = season_name(month)
        direction = "above" if deviation > 0 else "below"
        level = "high" if deviation > 0 else "low"
        return CheckResult(
            triggered=True,
            severity=AnomalySeverity.INFO,
            message=(
                f"Unusually {level} costs for {season} "
                f"({format_signed(deviation * 100)}% {direction} seasonal expectation)"
            ),
            details={
                "expected_value": expected_amount,
                "actual_value": record.amount,
                "overall_average": overall_average,
                "seasonal_multiplier": multiplier,
                "deviation_percent": deviation * 100,
                "month": month,  # 1-12, not zero-based
                "season": season,
                "samples_used": len(amounts),
                "method": "seasonal_pattern",
            },
        )
