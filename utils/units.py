"""Unit conversion and rounding helpers shared by run statistics and display."""

import math
from typing import Sequence

import numpy as np

from config.settings import MS_TO_KMH


def ms_to_kmh(speed_ms: float) -> float:
    """Convert a speed in m/s to km/h."""
    return speed_ms * MS_TO_KMH


def speeds_to_kmh(speeds_ms: Sequence[float]) -> np.ndarray:
    """Convert a speed stream in m/s to a km/h array."""
    return np.asarray(speeds_ms, dtype=float) * MS_TO_KMH


def round_half_away_from_zero(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals, ties going away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    factor = 10 ** digits
    return math.copysign(math.floor(abs(value) * factor + 0.5) / factor, value)


def round_speed(speed_kmh: float) -> float:
    """Round a km/h speed to one decimal."""
    return round_half_away_from_zero(float(speed_kmh), 1)
