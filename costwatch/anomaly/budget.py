"""
Budget check.

Compares the month-to-date total of a cost type (including the current
record) with the monthly budget, or a yearly budget pro-rated to one month.
"""

from __future__ import annotations

from .base import AnomalyCheck
from .schema import AnomalySeverity, CheckContext, CheckResult, CostRecordToCheck
from .severity import escalate

APPROACHING_LOWER_PERCENT = 90.0
APPROACHING_UPPER_PERCENT = 100.0


class BudgetExceededCheck(AnomalyCheck):
    """
    Detects budget overruns.

    Two mutually exclusive outcomes:
    - over budget by more than budget_exceeded_percent: warning or critical
    - otherwise, 90-100% of the budget used: informational
    """

    id = "budget_exceeded"
    name = "Budget exceeded"
    description = "Detects budget overruns"

    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        budget = context.budget
        if budget is None:
            return CheckResult.not_triggered()

        if budget.month is not None:
            budget_amount = budget.amount
            budget_period = "monthly"
        else:
            budget_amount = budget.amount / 12
            budget_period = "yearly (per month)"

        if budget_amount <= 0:
            return CheckResult.not_triggered()

        month = record.period_start.month
        year = record.period_start.year
        monthly_total = sum(
            r.amount for r in context.historical_records
            if r.cost_type == record.cost_type
            and r.period_start.month == month
            and r.period_start.year == year
        ) + record.amount

        threshold = context.settings.alert_thresholds.budget_exceeded_percent
        over_budget = monthly_total - budget_amount
        over_budget_percent = (over_budget / budget_amount) * 100
        base_details = {
            "budget_amount": budget_amount,
            "budget_period": budget_period,
            "budget_id": budget.id,
            "actual_amount": monthly_total,
            "current_record_amount": record.amount,
            "month": month,
            "year": year,
        }

        if over_budget_percent > threshold:
            return CheckResult(
                triggered=True,
                severity=escalate(over_budget_percent, threshold),
                message=(
                    f"Budget exceeded by €{over_budget:.2f} "
                    f"(+{over_budget_percent:.1f}%)"
                ),
                details={
                    **base_details,
                    "over_budget_amount": over_budget,
                    "over_budget_percent": over_budget_percent,
                    "threshold": threshold,
                    "method": "budget_comparison",
                },
            )

        usage_percent = (monthly_total / budget_amount) * 100
        if APPROACHING_LOWER_PERCENT <= usage_percent <= APPROACHING_UPPER_PERCENT:
            return CheckResult(
                triggered=True,
                severity=AnomalySeverity.INFO,
                message=f"{usage_percent:.1f}% of the budget used",
                details={
                    **base_details,
                    "budget_usage_percent": usage_percent,
                    "remaining_budget": budget_amount - monthly_total,
                    "method": "budget_warning",
                },
            )

        return CheckResult.not_triggered()
