"""
Schema definitions for cost anomaly detection.

All inputs are immutable snapshots and all outputs are deterministic and
explainable: every anomaly carries the expected and actual values, the
deviation and the threshold that produced it.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from costwatch.core.config import AnomalySettings
from costwatch.data.schema import CostType


class AnomalySeverity(str, Enum):
    """Severity levels for anomalies, ordered by urgency."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class CostRecordToCheck(_Snapshot):
    """The cost record under evaluation."""

    id: str
    location_id: str
    supplier_id: str
    cost_type: CostType
    amount: float
    quantity: Optional[float] = None
    unit: Optional[str] = None
    price_per_unit: Optional[float] = None
    period_start: date
    period_end: date
    invoice_number: Optional[str] = None


class HistoricalCostRecord(_Snapshot):
    """Read-only projection of a past record used as a comparison baseline."""

    id: str
    cost_type: CostType
    amount: float
    quantity: Optional[float] = None
    unit: Optional[str] = None
    price_per_unit: Optional[float] = None
    period_start: date
    period_end: date
    supplier_id: str
    invoice_number: Optional[str] = None


class LocationContext(_Snapshot):
    id: str
    name: str
    type: str


class SupplierContext(_Snapshot):
    id: str
    name: str
    category: str


class ContractContext(_Snapshot):
    """
    Contract terms for the supplier.

    Fields:
    - price_per_unit: agreed price (optional)
    - min_quantity/max_quantity: agreed volume bounds (optional)
    - valid_from/valid_to: validity window (valid_to None means open-ended)
    """

    id: str
    supplier_id: str
    price_per_unit: Optional[float] = None
    min_quantity: Optional[float] = None
    max_quantity: Optional[float] = None
    valid_from: date
    valid_to: Optional[date] = None


class BudgetContext(_Snapshot):
    """
    Budget for a cost type.

    A budget with a month is a monthly budget; without one it is a yearly
    budget that the checks pro-rate to one twelfth per month.
    """

    id: str
    cost_type: CostType
    year: int
    month: Optional[int] = Field(default=None, ge=1, le=12)
    amount: float


class CheckContext(_Snapshot):
    """
    Everything a check may read besides the record itself.

    Fields:
    - location/supplier: descriptors of the record's location and supplier
    - historical_records: past records of the same location and supplier
    - contract/budget: optional reference data
    - settings: the settings snapshot active for this detection run
    """

    location: LocationContext
    supplier: SupplierContext
    historical_records: Tuple[HistoricalCostRecord, ...] = ()
    contract: Optional[ContractContext] = None
    budget: Optional[BudgetContext] = None
    settings: AnomalySettings = AnomalySettings()


class CheckResult(_Snapshot):
    """
    Outcome of a single check.

    Fields:
    - triggered: True if the check found an anomaly
    - severity/message: set when triggered
    - details: diagnostic values behind the message (full precision)
    """

    triggered: bool
    severity: Optional[AnomalySeverity] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def not_triggered(cls) -> "CheckResult":
        return cls(triggered=False)


class DetectedAnomaly(_Snapshot):
    """
    An anomaly to be stored by the caller.

    Uniqueness per (cost_record_id, type) is enforced by the storage layer.
    """

    cost_record_id: str
    type: str
    severity: AnomalySeverity
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    is_backfill: bool = False


class CheckTrace(_Snapshot):
    """Diagnostic entry for one selected check, run or skipped."""

    check_id: str
    check_name: str
    result: CheckResult
    skipped: bool = False
    skip_reason: Optional[str] = None


class DetectionOptions(_Snapshot):
    """
    Options for one detection run.

    Fields:
    - is_backfill: historical import; anomalies are stored but not alerted
    - check_ids: restrict the run to these checks (None or empty means all enabled)
    """

    is_backfill: bool = False
    check_ids: Optional[Tuple[str, ...]] = None


_ALERTABLE_SEVERITIES = (AnomalySeverity.WARNING, AnomalySeverity.CRITICAL)


class DetectionResult(_Snapshot):
    """
    Result of running the engine on one record.

    Fields:
    - cost_record_id: the record that was checked
    - anomalies: triggered anomalies in check registration order
    - check_results: trace of every selected check, including skipped ones
    - is_backfill: whether this was a backfill detection
    """

    cost_record_id: str
    anomalies: Tuple[DetectedAnomaly, ...] = ()
    check_results: Tuple[CheckTrace, ...] = ()
    is_backfill: bool = False

    @property
    def alertable_anomalies(self) -> List[DetectedAnomaly]:
        """Anomalies a live alert would be raised for."""
        return [
            a for a in self.anomalies
            if not a.is_backfill and a.severity in _ALERTABLE_SEVERITIES
        ]
