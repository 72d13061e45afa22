"""Data models for recorded activities."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime

LatLng = Tuple[float, float]


@dataclass
class ActivityMetadata:
    """Metadata for a recorded activity."""

    activity_id: str
    name: str
    start_time: datetime
    sport_type: Optional[str] = None
    elapsed_time: float = 0.0  # seconds
    distance: float = 0.0  # meters
    location: Optional[str] = None


@dataclass
class SampleSeries:
    """Index-aligned sample streams of one recording.

    ``time`` is in seconds since the start of the recording, ``speed`` in m/s,
    ``distance`` is cumulative in meters. ``heartrate`` (bpm, 0 meaning no
    reading) and ``latlng`` (degrees) are optional and may be shorter than the
    required streams.
    """

    time: List[float]
    speed: List[float]
    distance: List[float]
    heartrate: Optional[List[float]] = None
    latlng: Optional[List[LatLng]] = None

    def __len__(self) -> int:
        return min(len(self.time), len(self.speed), len(self.distance))

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def has_positions(self) -> bool:
        return self.latlng is not None and len(self.latlng) > 0

    def heartrate_at(self, index: int) -> Optional[float]:
        """Heart rate at index, or None when absent or not a positive reading."""
        if self.heartrate is None or index >= len(self.heartrate):
            return None
        value = self.heartrate[index]
        return float(value) if value > 0 else None

    def position_at(self, index: int) -> Optional[LatLng]:
        """Position at index, or None when the position stream does not cover it."""
        if self.latlng is None or index >= len(self.latlng):
            return None
        lat, lng = self.latlng[index]
        return (lat, lng)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": list(self.time),
            "speed": list(self.speed),
            "distance": list(self.distance),
            "heartrate": list(self.heartrate) if self.heartrate is not None else None,
            "latlng": [list(p) for p in self.latlng] if self.latlng is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SampleSeries":
        latlng = data.get("latlng")
        return cls(
            time=list(data.get("time") or []),
            speed=list(data.get("speed") or []),
            distance=list(data.get("distance") or []),
            heartrate=list(data["heartrate"]) if data.get("heartrate") is not None else None,
            latlng=[(p[0], p[1]) for p in latlng] if latlng is not None else None,
        )


@dataclass
class ActivityData:
    """Complete activity: metadata plus the recorded streams."""

    metadata: ActivityMetadata
    series: SampleSeries = field(default_factory=lambda: SampleSeries([], [], []))
