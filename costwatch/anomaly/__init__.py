"""
Anomaly module: rule-based anomaly detection for cost records.

Implements the check contract, the eight checks, the registry and the engine.
"""

from .base import AnomalyCheck
from .budget import BudgetExceededCheck
from .comparison import MoMDeviationCheck, PricePerUnitSpikeCheck, YoYDeviationCheck
from .engine import AnomalyEngine, calculate_historical_months, create_anomaly_engine
from .integrity import DuplicateDetectionCheck, MissingPeriodCheck
from .registry import ALL_CHECKS, get_all_check_ids, get_check_by_id, get_checks_to_run
from .schema import (
    AnomalySeverity,
    BudgetContext,
    CheckContext,
    CheckResult,
    CheckTrace,
    ContractContext,
    CostRecordToCheck,
    DetectedAnomaly,
    DetectionOptions,
    DetectionResult,
    HistoricalCostRecord,
    LocationContext,
    SupplierContext,
)
from .severity import escalate, highest_severity
from .statistical import SeasonalAnomalyCheck, StatisticalOutlierCheck

__all__ = [
    "AnomalyEngine",
    "create_anomaly_engine",
    "calculate_historical_months",
    "AnomalyCheck",
    "YoYDeviationCheck",
    "MoMDeviationCheck",
    "PricePerUnitSpikeCheck",
    "StatisticalOutlierCheck",
    "DuplicateDetectionCheck",
    "MissingPeriodCheck",
    "SeasonalAnomalyCheck",
    "BudgetExceededCheck",
    "ALL_CHECKS",
    "get_check_by_id",
    "get_all_check_ids",
    "get_checks_to_run",
    "AnomalySeverity",
    "CostRecordToCheck",
    "HistoricalCostRecord",
    "LocationContext",
    "SupplierContext",
    "ContractContext",
    "BudgetContext",
    "CheckContext",
    "CheckResult",
    "CheckTrace",
    "DetectedAnomaly",
    "DetectionOptions",
    "DetectionResult",
    "escalate",
    "highest_severity",
]
