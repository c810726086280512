"""
Numeric helpers shared by the checks.

Every helper that divides returns None on a zero denominator; callers treat
None as "not triggered".
"""

from __future__ import annotations

from math import sqrt
from typing import Optional, Sequence


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_std(values: Sequence[float], center: Optional[float] = None) -> float:
    """
    Population standard deviation (divides by N, not N - 1).
    """
    if not values:
        return 0.0
    if center is None:
        center = mean(values)
    variance = sum((v - center) ** 2 for v in values) / len(values)
    return sqrt(variance)


def percent_deviation(actual: float, expected: float) -> Optional[float]:
    """
    Relative deviation of actual from expected, in percent.

    Returns None when expected is zero.
    """
    if expected == 0:
        return None
    return ((actual - expected) / expected) * 100


def z_score(value: float, center: float, std: float) -> Optional[float]:
    if std == 0:
        return None
    return (value - center) / std


def format_signed(value: float, decimals: int = 1) -> str:
    """Format a number for messages with an explicit '+' for positive values."""
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{decimals}f}"
