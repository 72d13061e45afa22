"""Human-readable formatting of session values."""

from utils.units import round_half_away_from_zero


def format_duration(seconds: float) -> str:
    """Format a duration in seconds, e.g. ``45s``, ``2m 5s``, ``1h 3m``."""
    if seconds < 60:
        return f"{int(round_half_away_from_zero(seconds))}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(round_half_away_from_zero(seconds % 60))

    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s" if remaining_seconds > 0 else f"{minutes}m"

    hours = minutes // 60
    remaining_minutes = minutes % 60
    return f"{hours}h {remaining_minutes}m"


def format_distance(meters: float) -> str:
    """Format a distance in meters, switching to km from 1000 m."""
    if meters < 1000:
        return f"{int(round_half_away_from_zero(meters))}m"
    return f"{meters / 1000:.2f}km"


def format_speed(kmh: float) -> str:
    """Format a speed in km/h."""
    return f"{kmh:.1f} km/h"


def format_heart_rate(bpm: float) -> str:
    """Format a heart rate in bpm."""
    return f"{bpm:.0f} bpm"
