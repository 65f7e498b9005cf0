# earth_defense/utils/helpers.py
"""Utility functions and helpers."""

import math
from typing import Iterable, Optional


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value to the [low, high] range."""
    return max(low, min(value, high))


def average(values: Iterable[float], default: float = 0.0) -> float:
    """Arithmetic mean, or default for an empty iterable."""
    values = list(values)
    if not values:
        return default
    return sum(values) / len(values)


def format_funds(amount: float) -> str:
    """Format a dollar amount the way the HUD does: $150K, $1.5M."""
    if amount >= 1000000:
        return f"${amount / 1000000:.1f}M"
    return f"${int(amount // 1000)}K"


def seconds_until(target: Optional[float], now: float) -> int:
    """Whole seconds left until target, never negative."""
    if target is None:
        return 0
    return max(0, math.floor(target - now))


def time_to_impact(distance: float, velocity: float) -> float:
    """Rough game-time estimate used by the client countdown."""
    if velocity <= 0:
        return 0.0
    return distance / (velocity * 60)
