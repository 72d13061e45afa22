"""Heading helpers for GPS tracks."""

import math


def normalize_heading(heading):
    """Wrap a heading (scalar or numpy array) into [0, 360)."""
    return (heading + 360.0) % 360.0


def calculate_heading(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the initial great-circle bearing from point 1 to point 2.

    Args:
        lat1: Latitude of point 1 in degrees
        lon1: Longitude of point 1 in degrees
        lat2: Latitude of point 2 in degrees
        lon2: Longitude of point 2 in degrees

    Returns:
        Heading in degrees within [0, 360). Coincident points give 0.
    """
    d_lon = math.radians(lon2 - lon1)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    y = math.sin(d_lon) * math.cos(lat2_rad)
    x = (math.cos(lat1_rad) * math.sin(lat2_rad)
         - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(d_lon))

    return normalize_heading(math.degrees(math.atan2(y, x)))


def angle_difference(heading1: float, heading2: float) -> float:
    """Smallest angle between two headings, in [0, 180]."""
    diff = abs(heading1 - heading2)
    if diff > 180:
        diff = 360 - diff
    return diff
