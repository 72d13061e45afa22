"""Centered moving averages for speed and heading streams.

Both filters average over ``[i - window // 2, i + window // 2]`` and shrink the
window at the edges of the series instead of padding it.
"""

from typing import List, Sequence

import numpy as np
import pandas as pd

from utils.geo import normalize_heading


def _centered_span(window: int) -> int:
    # pandas centers odd windows symmetrically; even sizes widen to the next odd span
    return 2 * (window // 2) + 1


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """Smooth a linear quantity such as speed.

    Args:
        values: Samples to smooth
        window: Window size in samples; 1 or less leaves the values unchanged

    Returns:
        Smoothed values
    """
    if window <= 1:
        return list(values)

    series = pd.Series(values, dtype=float)
    # Mean of each window's own samples, not a running total
    smoothed = series.rolling(window=_centered_span(window), center=True, min_periods=1).apply(
        np.mean, raw=True
    )
    return smoothed.tolist()


def circular_moving_average(headings: Sequence[float], window: int) -> List[float]:
    """Smooth headings in degrees through the mean of their unit vectors.

    Averaging vectors keeps 359 and 1 near 0 instead of pulling them to 180.

    Args:
        headings: Headings in degrees
        window: Window size in samples; 1 or less leaves the headings unchanged

    Returns:
        Smoothed headings in [0, 360)
    """
    if window <= 1:
        return list(headings)

    radians = np.radians(np.asarray(headings, dtype=float))
    span = _centered_span(window)
    sin_sum = pd.Series(np.sin(radians)).rolling(window=span, center=True, min_periods=1).apply(
        np.sum, raw=True
    )
    cos_sum = pd.Series(np.cos(radians)).rolling(window=span, center=True, min_periods=1).apply(
        np.sum, raw=True
    )

    smoothed = np.degrees(np.arctan2(sin_sum.to_numpy(), cos_sum.to_numpy()))
    return normalize_heading(smoothed).tolist()


def circular_mean(headings: Sequence[float]) -> float:
    """Mean direction of a set of headings in degrees, in [0, 360)."""
    radians = np.radians(np.asarray(headings, dtype=float))
    mean = np.degrees(np.arctan2(np.sin(radians).sum(), np.cos(radians).sum()))
    return float(normalize_heading(mean))
