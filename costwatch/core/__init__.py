"""
Core module: Configuration, logging, and exception handling.
"""

from .config import (
    ALL_CHECK_IDS,
    DEFAULT_ANOMALY_SETTINGS,
    AlertThresholds,
    AnomalySettings,
    Config,
    config,
    merge_settings,
)
from .exceptions import (
    AnomalyDetectionError,
    CheckExecutionError,
    ConfigurationError,
    CostWatchError,
    DataValidationError,
)

__all__ = [
    "ALL_CHECK_IDS",
    "DEFAULT_ANOMALY_SETTINGS",
    "AlertThresholds",
    "AnomalySettings",
    "Config",
    "config",
    "merge_settings",
    "CostWatchError",
    "AnomalyDetectionError",
    "CheckExecutionError",
    "DataValidationError",
    "ConfigurationError",
]
