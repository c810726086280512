"""
Invoice integrity checks.

- Duplicate detection: same supplier, (near-)equal amount, close periods
- Missing period: gap in a recurring cost since the last billing period
"""

from __future__ import annotations

from datetime import timedelta

from costwatch.data.schema import CostType

from .base import AnomalyCheck
from .schema import (
    AnomalySeverity,
    CheckContext,
    CheckResult,
    CostRecordToCheck,
    HistoricalCostRecord,
)

DUPLICATE_WINDOW_DAYS = 45
# relative to the larger of the two amounts; the boundary itself does not match
AMOUNT_TOLERANCE = 0.01


def amounts_match(a: float, b: float) -> bool:
    diff = abs(a - b)
    if diff == 0:
        return True
    return diff / max(abs(a), abs(b)) < AMOUNT_TOLERANCE


class DuplicateDetectionCheck(AnomalyCheck):
    """
    Detects potential duplicate invoices.

    A candidate has the same supplier, an equal or nearly equal amount,
    and a period start within 45 days. Critical when a candidate also
    carries the same invoice number.
    """

    id = "duplicate_detection"
    name = "Duplicate detection"
    description = "Detects possibly duplicated invoices"

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        candidates = [r for r in context.historical_records if self._is_candidate(record, r)]
        if not candidates:
            return CheckResult.not_triggered()

        same_invoice_number = any(
            d.invoice_number and record.invoice_number
            and d.invoice_number == record.invoice_number
            for d in candidates
        )

        if same_invoice_number:
            severity = AnomalySeverity.CRITICAL
            message = "An invoice with the same invoice number already exists"
        else:
            severity = AnomalySeverity.WARNING
            message = f"{len(candidates)} possible duplicate(s) found"

        return CheckResult(
            triggered=True,
            severity=severity,
            message=message,
            details={
                "duplicate_candidates": [
                    {
                        "id": d.id,
                        "invoice_number": d.invoice_number,
                        "period_start": d.period_start.isoformat(),
                        "amount": d.amount,
                        "days_difference": abs((d.period_start - record.period_start).days),
                    }
                    for d in candidates
                ],
                "same_invoice_number": same_invoice_number,
                "method": "exact_match",
            },
        )

    @staticmethod
    def _is_candidate(record: CostRecordToCheck, other: HistoricalCostRecord) -> bool:
        if other.id == record.id:
            return False
        if other.supplier_id != record.supplier_id:
            return False
        if not amounts_match(other.amount, record.amount):
            return False
        return abs((other.period_start - record.period_start).days) <= DUPLICATE_WINDOW_DAYS


# Cost types that are expected to be invoiced on a regular cycle
RECURRING_COST_TYPES = frozenset({
    CostType.ELECTRICITY,
    CostType.NATURAL_GAS,
    CostType.DISTRICT_HEATING,
    CostType.WATER,
    CostType.TELECOM_MOBILE,
    CostType.TELECOM_LANDLINE,
    CostType.TELECOM_INTERNET,
    CostType.INSURANCE,
    CostType.RENT,
})

GAP_THRESHOLD_DAYS = 45
DAYS_PER_INVOICE = 30


class MissingPeriodCheck(AnomalyCheck):
    """
    Detects gaps in recurring costs.

    Triggers when the current period starts more than 45 days after the
    day following the end of the last billed period. Always informational.
    """

    id = "missing_period"
    name = "Missing period"
    description = "Detects gaps in recurring costs"
    applicable_cost_types = RECURRING_COST_TYPES
    min_historical_months = 2

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        earlier = [
            r for r in context.historical_records
            if r.cost_type == record.cost_type
            and r.supplier_id == record.supplier_id
            and r.period_end < record.period_start
        ]
        if not earlier:
            return CheckResult.not_triggered()

        last_record = max(earlier, key=lambda r: r.period_end)
        expected_next_start = last_record.period_end + timedelta(days=1)
        gap_days = (record.period_start - expected_next_start).days

        if gap_days <= GAP_THRESHOLD_DAYS:
            return CheckResult.not_triggered()

        estimated_missing = gap_days // DAYS_PER_INVOICE
        return CheckResult(
            triggered=True,
            severity=AnomalySeverity.INFO,
            message=(
                f"{gap_days} day gap since the last invoice "
                f"({estimated_missing} invoice(s) possibly missing)"
            ),
            details={
                "last_period_end": last_record.period_end.isoformat(),
                "last_record_id": last_record.id,
                "current_period_start": record.period_start.isoformat(),
                "expected_next_start": expected_next_start.isoformat(),
                "gap_days": gap_days,
                "estimated_missing_invoices": estimated_missing,
                "method": "period_gap",
            },
        )
