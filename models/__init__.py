"""Data models for Wingfoil Analyser."""

from .activity import ActivityData, ActivityMetadata, SampleSeries
from .session import Run, SessionStats, RecentTrend, ProgressStats, Session
from .jibe import Jibe, JibeSize
from .spot import Spot

__all__ = [
    'ActivityData',
    'ActivityMetadata',
    'SampleSeries',
    'Run',
    'SessionStats',
    'RecentTrend',
    'ProgressStats',
    'Session',
    'Jibe',
    'JibeSize',
    'Spot'
]
