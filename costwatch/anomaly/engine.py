"""
Cost anomaly detection engine.

Runs the registered checks against one cost record and its context and
assembles the triggered results into anomalies. The engine performs no I/O:
everything a check needs is pre-fetched by the caller into the context.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Mapping, Optional, Sequence, Union

from costwatch.core.config import (
    DEFAULT_ANOMALY_SETTINGS,
    AnomalySettings,
    config,
    merge_settings,
)
from costwatch.core.exceptions import CheckExecutionError

from .base import AnomalyCheck
from .registry import get_checks_to_run
from .schema import (
    CheckContext,
    CheckResult,
    CheckTrace,
    CostRecordToCheck,
    DetectedAnomaly,
    DetectionOptions,
    DetectionResult,
    HistoricalCostRecord,
)

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30

SettingsOverrides = Union[AnomalySettings, Mapping[str, Any]]


def calculate_historical_months(records: Sequence[HistoricalCostRecord]) -> int:
    """
    Coarse number of months spanned by the history.

    Whole 30-day blocks between the earliest and latest period start.
    Undercounts sparse or irregular billing.
    """
    if not records:
        return 0
    starts = [r.period_start for r in records]
    return (max(starts) - min(starts)).days // DAYS_PER_MONTH


class AnomalyEngine:
    """
    Deterministic anomaly detection engine.

    Notes:
    - Settings are an immutable snapshot; mutators swap in a new object
      under a lock, and each detect() call reads the reference once.
    - A failing check is logged and skipped; it never aborts the others.
    - Checks without enough history are skipped, not run.
    """

    def __init__(self, settings: Optional[SettingsOverrides] = None) -> None:
        if settings is None:
            self._settings = config.anomaly
        else:
            self._settings = merge_settings(DEFAULT_ANOMALY_SETTINGS, settings)
        self._lock = threading.Lock()

    @property
    def settings(self) -> AnomalySettings:
        return self._settings

    def get_settings(self) -> AnomalySettings:
        return self._settings

    def update_settings(self, overrides: SettingsOverrides) -> None:
        """
        Merge overrides into the current settings.

        Raises:
            ConfigurationError: If the merged settings are invalid; the
                current settings are kept in that case.
        """
        with self._lock:
            self._settings = merge_settings(self._settings, overrides)

    def is_check_enabled(self, check_id: str) -> bool:
        return check_id in self._settings.enabled_checks

    def enable_check(self, check_id: str) -> None:
        with self._lock:
            enabled = self._settings.enabled_checks
            if check_id in enabled:
                return
            self._settings = merge_settings(
                self._settings, {"enabled_checks": (*enabled, check_id)}
            )

    def disable_check(self, check_id: str) -> None:
        with self._lock:
            enabled = self._settings.enabled_checks
            if check_id not in enabled:
                return
            self._settings = merge_settings(
                self._settings,
                {"enabled_checks": tuple(c for c in enabled if c != check_id)},
            )

    def detect(
        self,
        record: CostRecordToCheck,
        context: CheckContext,
        options: Optional[Union[DetectionOptions, Mapping[str, Any]]] = None,
    ) -> DetectionResult:
        """
        Run anomaly detection on one cost record.

        Args:
            record: The record under evaluation
            context: Historical and reference data for the record
            options: Backfill flag and optional check id filter

        Returns:
            DetectionResult with anomalies and a per-check trace
        """
        if options is None:
            options = DetectionOptions()
        elif not isinstance(options, DetectionOptions):
            options = DetectionOptions.model_validate(options)

        settings = self._settings
        checks = get_checks_to_run(record.cost_type, settings.enabled_checks, options.check_ids)
        historical_months = calculate_historical_months(context.historical_records)
        check_context = context.model_copy(update={"settings": settings})

        traces: List[CheckTrace] = []
        anomalies: List[DetectedAnomaly] = []

        for check in checks:
            required = settings.min_historical_months.get(check.id, check.min_historical_months)
            if required and historical_months < required:
                traces.append(
                    self._skipped(
                        check,
                        f"insufficient historical data "
                        f"({historical_months} months, need {required})",
                    )
                )
                continue

            try:
                result = check.evaluate(record, check_context)
            except Exception as e:
                error = CheckExecutionError(check.id, e)
                logger.error(
                    f"Check {check.id} failed for cost record {record.id}: {error}",
                    exc_info=True,
                )
                traces.append(self._skipped(check, f"check failed: {error}"))
                continue

            traces.append(CheckTrace(check_id=check.id, check_name=check.name, result=result))

            if result.triggered and result.severity and result.message:
                anomalies.append(
                    DetectedAnomaly(
                        cost_record_id=record.id,
                        type=check.id,
                        severity=result.severity,
                        message=result.message,
                        details=dict(result.details or {}),
                        is_backfill=options.is_backfill,
                    )
                )

        logger.debug(
            f"Detection complete for {record.id}: {len(anomalies)} anomalies "
            f"from {len(traces)} checks"
        )

        return DetectionResult(
            cost_record_id=record.id,
            anomalies=anomalies,
            check_results=traces,
            is_backfill=options.is_backfill,
        )

    @staticmethod
    def _skipped(check: AnomalyCheck, reason: str) -> CheckTrace:
        return CheckTrace(
            check_id=check.id,
            check_name=check.name,
            result=CheckResult.not_triggered(),
            skipped=True,
            skip_reason=reason,
        )


def create_anomaly_engine(settings: Optional[SettingsOverrides] = None) -> AnomalyEngine:
    """Create a new anomaly engine with default or custom settings."""
    return AnomalyEngine(settings)
