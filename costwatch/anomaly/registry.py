"""
Check registry.

The check set is closed and versioned with the engine: every check is
instantiated once here, in registration order, which is also the order
results appear in.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from costwatch.data.schema import CostType

from .base import AnomalyCheck
from .budget import BudgetExceededCheck
from .comparison import MoMDeviationCheck, PricePerUnitSpikeCheck, YoYDeviationCheck
from .integrity import DuplicateDetectionCheck, MissingPeriodCheck
from .statistical import SeasonalAnomalyCheck, StatisticalOutlierCheck

ALL_CHECKS: Tuple[AnomalyCheck, ...] = (
    YoYDeviationCheck(),
    MoMDeviationCheck(),
    PricePerUnitSpikeCheck(),
    StatisticalOutlierCheck(),
    DuplicateDetectionCheck(),
    MissingPeriodCheck(),
    SeasonalAnomalyCheck(),
    BudgetExceededCheck(),
)


def get_check_by_id(check_id: str) -> Optional[AnomalyCheck]:
    return next((c for c in ALL_CHECKS if c.id == check_id), None)


def get_all_check_ids() -> List[str]:
    return [c.id for c in ALL_CHECKS]


def get_checks_to_run(
    cost_type: CostType,
    enabled_checks: Iterable[str],
    check_ids: Optional[Iterable[str]] = None,
) -> List[AnomalyCheck]:
    """
    Select the checks for one record.

    Order of filters: enabled checks, then the optional check id filter,
    then cost type applicability. An empty check_ids filter means no filter.
    """
    enabled = set(enabled_checks)
    checks = [c for c in ALL_CHECKS if c.id in enabled]

    requested = set(check_ids or ())
    if requested:
        checks = [c for c in checks if c.id in requested]

    return [c for c in checks if c.applies_to(cost_type)]
