"""
Severity mapping for anomalies.

Maps deviation magnitudes to severity levels against configured thresholds.
"""

from __future__ import annotations

from .schema import AnomalySeverity

_ORDER = [
    AnomalySeverity.INFO,
    AnomalySeverity.WARNING,
    AnomalySeverity.CRITICAL,
]


def escalate(magnitude: float, threshold: float) -> AnomalySeverity:
    """
    Severity for a magnitude that already exceeded its threshold.

    Critical only when the magnitude is strictly greater than twice the
    threshold; exactly twice the threshold stays a warning.
    """
    if magnitude > threshold * 2:
        return AnomalySeverity.CRITICAL
    return AnomalySeverity.WARNING


def highest_severity(*severities: AnomalySeverity) -> AnomalySeverity:
    """
    Return the highest severity among inputs.

    Raises:
        ValueError: If called without severities
    """
    if not severities:
        raise ValueError("highest_severity() requires at least one severity")
    highest_index = max(_ORDER.index(s) for s in severities)
    return _ORDER[highest_index]
