"""Data model for riding spots grouped from session start positions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any

from models.activity import LatLng


@dataclass
class Spot:
    """A location where sessions start, with aggregates over those sessions."""

    spot_id: str
    name: str
    coordinates: LatLng
    sessions_count: int
    total_riding_time: float  # seconds
    best_max_speed: float  # km/h
    average_runs_per_session: float
    last_visit: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "name": self.name,
            "coordinates": list(self.coordinates),
            "sessions_count": self.sessions_count,
            "total_riding_time": self.total_riding_time,
            "best_max_speed": self.best_max_speed,
            "average_runs_per_session": self.average_runs_per_session,
            "last_visit": self.last_visit.isoformat(),
        }
