"""
Check context builder.

Assembles the CheckContext for one cost record from records and reference
data that the caller has already loaded. The selection mirrors what the
storage layer queries before detection: same location and supplier, the
record itself excluded, a bounded lookback window, newest first.

Everything here is a pure function of its inputs; "now" is never read from
the clock.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

from costwatch.anomaly.schema import (
    BudgetContext,
    CheckContext,
    ContractContext,
    CostRecordToCheck,
    HistoricalCostRecord,
    LocationContext,
    SupplierContext,
)
from costwatch.core.config import AnomalySettings, config
from costwatch.core.exceptions import ConfigurationError
from costwatch.data.schema import CostRecord, CostType

logger = logging.getLogger(__name__)


def months_before(day: date, months: int) -> date:
    """Same day of month, `months` calendar months earlier (clamped to month end)."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def select_budget(
    budgets: Iterable[BudgetContext],
    cost_type: CostType,
    year: int,
    month: int,
) -> Optional[BudgetContext]:
    """
    Pick the budget that applies to a cost type and month.

    A monthly budget for the exact month wins over a yearly budget.
    """
    yearly = None
    for budget in budgets:
        if budget.cost_type != cost_type or budget.year != year:
            continue
        if budget.month == month:
            return budget
        if budget.month is None and yearly is None:
            yearly = budget
    return yearly


def select_contract(
    contracts: Iterable[ContractContext],
    supplier_id: str,
    on: date,
) -> Optional[ContractContext]:
    """Pick the supplier contract valid on a date (latest valid_from wins)."""
    valid = [
        c for c in contracts
        if c.supplier_id == supplier_id
        and c.valid_from <= on
        and (c.valid_to is None or on <= c.valid_to)
    ]
    if not valid:
        return None
    return max(valid, key=lambda c: c.valid_from)


class CheckContextBuilder:
    """
    Builds CheckContext snapshots from loaded cost records.

    Args:
        lookback_months: History window handed to the checks
            (defaults to config.history_lookback_months)

    Raises:
        ConfigurationError: If lookback_months is below 1
    """

    def __init__(self, lookback_months: Optional[int] = None) -> None:
        if lookback_months is None:
            lookback_months = config.history_lookback_months
        if lookback_months < 1:
            raise ConfigurationError(f"lookback_months must be >= 1, got {lookback_months}")
        self.lookback_months = lookback_months

    @staticmethod
    def to_record_to_check(record: CostRecord) -> CostRecordToCheck:
        return CostRecordToCheck(
            id=record.id,
            location_id=record.location_id,
            supplier_id=record.supplier_id,
            cost_type=record.cost_type,
            amount=record.amount,
            quantity=record.quantity,
            unit=record.unit,
            price_per_unit=record.price_per_unit,
            period_start=record.period_start,
            period_end=record.period_end,
            invoice_number=record.invoice_number,
        )

    @staticmethod
    def to_historical(record: CostRecord) -> HistoricalCostRecord:
        return HistoricalCostRecord(
            id=record.id,
            cost_type=record.cost_type,
            amount=record.amount,
            quantity=record.quantity,
            unit=record.unit,
            price_per_unit=record.price_per_unit,
            period_start=record.period_start,
            period_end=record.period_end,
            supplier_id=record.supplier_id,
            invoice_number=record.invoice_number,
        )

    def select_history(
        self,
        record: CostRecord,
        records: Sequence[CostRecord],
        as_of: Optional[date] = None,
    ) -> List[HistoricalCostRecord]:
        """
        Historical records for one record, newest first.

        Args:
            record: The record under evaluation
            records: All loaded records (may include the record itself)
            as_of: End of the lookback window; defaults to the latest
                period start among the record and its candidates

        Returns:
            Records of the same location and supplier whose period starts
            within the lookback window
        """
        candidates = [
            r for r in records
            if r.id != record.id
            and r.location_id == record.location_id
            and r.supplier_id == record.supplier_id
        ]

        if as_of is None:
            as_of = max([record.period_start, *(r.period_start for r in candidates)])

        window_start = months_before(as_of, self.lookback_months)
        selected = [r for r in candidates if r.period_start >= window_start]
        selected.sort(key=lambda r: r.period_start, reverse=True)

        return [self.to_historical(r) for r in selected]

    def build(
        self,
        record: CostRecord,
        records: Sequence[CostRecord],
        settings: Optional[AnomalySettings] = None,
        location: Optional[LocationContext] = None,
        supplier: Optional[SupplierContext] = None,
        budgets: Iterable[BudgetContext] = (),
        contracts: Iterable[ContractContext] = (),
        as_of: Optional[date] = None,
    ) -> CheckContext:
        """
        Assemble the full context for one record.

        Missing location/supplier descriptors are synthesized from the ids,
        which is enough for every current check.
        """
        history = self.select_history(record, records, as_of=as_of)

        if location is None:
            location = LocationContext(id=record.location_id, name=record.location_id, type="unknown")
        if supplier is None:
            supplier = SupplierContext(id=record.supplier_id, name=record.supplier_id, category="other")

        budget = select_budget(
            budgets, record.cost_type, record.period_start.year, record.period_start.month
        )
        contract = select_contract(contracts, record.supplier_id, record.period_start)

        logger.debug(
            f"Built context for {record.id}: {len(history)} historical records, "
            f"budget={'yes' if budget else 'no'}, contract={'yes' if contract else 'no'}"
        )

        return CheckContext(
            location=location,
            supplier=supplier,
            historical_records=history,
            contract=contract,
            budget=budget,
            settings=settings if settings is not None else config.anomaly,
        )
