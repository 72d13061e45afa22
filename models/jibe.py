"""Data models for detected jibes."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any

from models.activity import LatLng


class JibeSize(str, Enum):
    """Size class of a jibe by its heading change."""

    SMALL = 'small'
    MEDIUM = 'medium'
    LARGE = 'large'

    @property
    def color(self) -> str:
        return JIBE_COLORS[self]


JIBE_COLORS = {
    JibeSize.SMALL: '#22c55e',
    JibeSize.MEDIUM: '#eab308',
    JibeSize.LARGE: '#ef4444',
}


@dataclass(frozen=True)
class Jibe:
    """A direction change detected at one sample. Headings are in degrees."""

    index: int
    position: LatLng
    time: float
    heading_before: float
    heading_after: float
    angle_change: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['position'] = list(self.position)
        return data
