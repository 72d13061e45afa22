"""Data models for detected runs and session statistics."""

from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any
from datetime import datetime

from models.activity import LatLng, SampleSeries


@dataclass
class Run:
    """A continuous interval of riding above the speed threshold.

    Speeds are in km/h, durations in seconds, distances in meters.
    """

    run_id: int
    start_index: int
    end_index: int
    start_time: float
    end_time: float
    duration: float
    distance: float
    average_speed: float
    max_speed: float
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    start_heartrate: Optional[float] = None
    end_heartrate: Optional[float] = None
    start_position: Optional[LatLng] = None
    end_position: Optional[LatLng] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('start_position', 'end_position'):
            if data[key] is not None:
                data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Run":
        values = dict(data)
        for key in ('start_position', 'end_position'):
            if values.get(key) is not None:
                values[key] = tuple(values[key])
        return cls(**values)


@dataclass
class SessionStats:
    """Aggregate statistics over the runs of one session."""

    number_of_runs: int = 0
    total_riding_time: float = 0.0
    total_riding_distance: float = 0.0
    average_run_duration: float = 0.0
    average_run_distance: float = 0.0
    longest_run_duration: float = 0.0
    longest_run_distance: float = 0.0
    best_average_speed: float = 0.0
    best_max_speed: float = 0.0
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None

    @property
    def has_heartrate(self) -> bool:
        return self.average_heartrate is not None or self.max_heartrate is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionStats":
        return cls(**data)


@dataclass
class RecentTrend:
    """Percentage change of the recent sessions over the previous ones."""

    run_duration: float = 0.0
    run_distance: float = 0.0
    runs_per_session: float = 0.0


@dataclass
class ProgressStats:
    """Statistics across all sessions."""

    total_sessions: int = 0
    total_runs: int = 0
    total_riding_time: float = 0.0
    total_riding_distance: float = 0.0
    average_runs_per_session: float = 0.0
    average_run_duration: float = 0.0
    average_run_distance: float = 0.0
    best_run_duration: float = 0.0
    best_run_distance: float = 0.0
    best_max_speed: float = 0.0
    recent_trend: RecentTrend = field(default_factory=RecentTrend)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Session:
    """A processed activity: its runs, their statistics and optionally the raw streams."""

    session_id: str
    activity_id: str
    name: str
    date: datetime
    total_duration: float
    total_distance: float
    runs: List[Run] = field(default_factory=list)
    stats: SessionStats = field(default_factory=SessionStats)
    location: Optional[str] = None
    raw_data: Optional[SampleSeries] = None

    @property
    def has_raw_data(self) -> bool:
        return self.raw_data is not None and not self.raw_data.is_empty

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the session."""
        return {
            "session_id": self.session_id,
            "name": self.name,
            "date": self.date.isoformat(),
            "location": self.location,
            "total_duration_minutes": round(self.total_duration / 60, 1),
            "total_distance_km": round(self.total_distance / 1000, 2),
            "number_of_runs": self.stats.number_of_runs,
            "riding_time_minutes": round(self.stats.total_riding_time / 60, 1),
            "riding_distance_km": round(self.stats.total_riding_distance / 1000, 2),
            "best_max_speed": self.stats.best_max_speed,
            "has_heartrate": self.stats.has_heartrate,
        }

    def to_dict(self, include_raw_data: bool = True) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "activity_id": self.activity_id,
            "name": self.name,
            "date": self.date.isoformat(),
            "location": self.location,
            "total_duration": self.total_duration,
            "total_distance": self.total_distance,
            "runs": [run.to_dict() for run in self.runs],
            "stats": self.stats.to_dict(),
            "raw_data": (
                self.raw_data.to_dict() if include_raw_data and self.raw_data is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        raw_data = data.get("raw_data")
        return cls(
            session_id=data["session_id"],
            activity_id=str(data["activity_id"]),
            name=data.get("name", "Session"),
            date=datetime.fromisoformat(data["date"]),
            total_duration=data.get("total_duration", 0.0),
            total_distance=data.get("total_distance", 0.0),
            runs=[Run.from_dict(run) for run in data.get("runs", [])],
            stats=SessionStats.from_dict(data.get("stats", {})),
            location=data.get("location"),
            raw_data=SampleSeries.from_dict(raw_data) if raw_data else None,
        )
