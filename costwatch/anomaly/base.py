"""
Base class for anomaly checks.

A check is a stateless rule: metadata (id, name, applicable cost types,
history requirement) plus a pure evaluate(record, context) function.
Instances are created once and shared across all detection runs, so
evaluate must not keep state on self or mutate its arguments.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, FrozenSet, Optional, Union

from costwatch.data.schema import CostType

from .schema import CheckContext, CheckResult, CostRecordToCheck

ALL_COST_TYPES = "all"


class AnomalyCheck(ABC):
    """
    Abstract base class for anomaly checks.

    Subclasses set the class attributes and implement evaluate().
    Returning CheckResult.not_triggered() means "nothing to report";
    raising is reserved for real failures, which the engine isolates.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    applicable_cost_types: ClassVar[Union[str, FrozenSet[CostType]]] = ALL_COST_TYPES
    min_historical_months: ClassVar[Optional[int]] = None

    def applies_to(self, cost_type: CostType) -> bool:
        if self.applicable_cost_types == ALL_COST_TYPES:
            return True
        return cost_type in self.applicable_cost_types

    @abstractmethod
    def evaluate(self, record: CostRecordToCheck, context: CheckContext) -> CheckResult:
        """
        Evaluate the check for one record.

        Args:
            record: The record under evaluation
            context: Historical and reference data plus active settings

        Returns:
            CheckResult (triggered or not)
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
