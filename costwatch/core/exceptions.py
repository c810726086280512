"""
Custom exceptions for the cost anomaly detection engine.

These exceptions provide clear error semantics across the system.
Use them to distinguish between data issues, check failures, and configuration errors.
"""

from typing import Optional


class CostWatchError(Exception):
    """Base exception for all cost watchdog errors."""
    pass


class AnomalyDetectionError(CostWatchError):
    """Raised when the detection engine itself cannot run."""
    pass


class CheckExecutionError(AnomalyDetectionError):
    """
    Raised (and caught by the engine) when a single check fails.

    Carries the failing check id so the trace entry and the log line
    can name it.
    """

    def __init__(self, check_id: str, cause: Optional[BaseException] = None):
        self.check_id = check_id
        self.cause = cause
        reason = str(cause) if cause is not None and str(cause) else "Unknown error"
        super().__init__(reason)


class DataValidationError(CostWatchError):
    """Raised when input data fails validation or ingestion."""
    pass


class ConfigurationError(CostWatchError):
    """Raised when configuration is invalid or missing."""
    pass
