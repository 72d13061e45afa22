"""Jibe detection from GPS heading changes.

A jibe shows up as a sharp change between the mean heading of the track just
before a point and the mean heading just after it, while the rider keeps
moving.
"""

import logging
from typing import Dict, Any, List, Optional, Sequence

from config.settings import JibeDetectionDefaults
from models.activity import LatLng
from models.jibe import Jibe, JibeSize
from utils.geo import calculate_heading, angle_difference
from utils.smoothing import circular_moving_average, circular_mean
from utils.units import ms_to_kmh

logger = logging.getLogger(__name__)


def calculate_headings(latlng: Sequence[LatLng]) -> List[float]:
    """Heading between every pair of consecutive positions (N-1 values for N positions)."""
    return [
        calculate_heading(latlng[i][0], latlng[i][1], latlng[i + 1][0], latlng[i + 1][1])
        for i in range(len(latlng) - 1)
    ]


def detect_jibes(latlng: Sequence[LatLng],
                 time: Sequence[float],
                 speed: Optional[Sequence[float]] = None,
                 min_angle_change: float = JibeDetectionDefaults.MIN_ANGLE_CHANGE,
                 min_speed: float = JibeDetectionDefaults.MIN_SPEED,
                 heading_smoothing_window: int = JibeDetectionDefaults.HEADING_SMOOTHING_WINDOW,
                 comparison_window: int = JibeDetectionDefaults.COMPARISON_WINDOW,
                 min_separation: float = JibeDetectionDefaults.MIN_SEPARATION,
                 min_positions: int = JibeDetectionDefaults.MIN_POSITIONS) -> List[Jibe]:
    """Detect jibes in a GPS track.

    Args:
        latlng: (latitude, longitude) pairs in degrees
        time: Seconds since the start of the recording, aligned with latlng
        speed: Optional speed in m/s used to ignore slow turns
        min_angle_change: Minimum heading change in degrees
        min_speed: Minimum speed in km/h at the turn point
        heading_smoothing_window: Circular smoothing window applied to headings
        comparison_window: Number of headings averaged before and after a point
        min_separation: Minimum seconds between two accepted jibes
        min_positions: Tracks with fewer positions yield no jibes

    Returns:
        Jibes in track order
    """
    if len(latlng) < min_positions:
        return []

    headings = circular_moving_average(calculate_headings(latlng), heading_smoothing_window)

    window = comparison_window
    last_index = min(len(headings) - window, len(time))
    jibes: List[Jibe] = []

    for i in range(window, last_index):
        heading_before = circular_mean(headings[i - window:i])
        heading_after = circular_mean(headings[i:i + window])
        angle_change = angle_difference(heading_before, heading_after)

        if angle_change < min_angle_change:
            continue

        if speed is not None and i < len(speed) and ms_to_kmh(speed[i]) < min_speed:
            continue

        # One maneuver triggers over several neighbouring points
        if jibes and time[i] - jibes[-1].time < min_separation:
            continue

        jibes.append(Jibe(
            index=i,
            position=(latlng[i][0], latlng[i][1]),
            time=time[i],
            heading_before=heading_before,
            heading_after=heading_after,
            angle_change=angle_change,
        ))

    logger.debug(f"Detected {len(jibes)} jibes in {len(latlng)} positions")
    return jibes


def classify_jibe(angle_change: float,
                  small_max: float = JibeDetectionDefaults.SMALL_JIBE_MAX_ANGLE,
                  medium_max: float = JibeDetectionDefaults.MEDIUM_JIBE_MAX_ANGLE) -> JibeSize:
    """Classify a jibe by its heading change."""
    if angle_change < small_max:
        return JibeSize.SMALL
    if angle_change < medium_max:
        return JibeSize.MEDIUM
    return JibeSize.LARGE


def jibe_color(angle_change: float) -> str:
    """Display color for a jibe marker."""
    return classify_jibe(angle_change).color


def summarize_jibes(jibes: Sequence[Jibe]) -> Dict[str, Any]:
    """Count jibes per size class."""
    counts = {size.value: 0 for size in JibeSize}
    for jibe in jibes:
        counts[classify_jibe(jibe.angle_change).value] += 1

    return {
        'total': len(jibes),
        'by_size': counts,
        'average_angle_change': (
            sum(j.angle_change for j in jibes) / len(jibes) if jibes else 0.0
        ),
    }
