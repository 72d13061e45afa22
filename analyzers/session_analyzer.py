"""Session analyzer turning recorded activities into wingfoil sessions."""

import logging
from dataclasses import replace
from typing import Dict, Any, List, Optional, Sequence

from analyzers.jibe_detector import detect_jibes, classify_jibe, summarize_jibes
from analyzers.run_detector import detect_series_runs
from analyzers.session_stats import calculate_session_stats, calculate_progress_stats, calculate_spots
from config.settings import RunDetectionConfig, get_detection_config
from models.activity import ActivityData
from models.jibe import Jibe
from models.session import Session, ProgressStats
from models.spot import Spot

logger = logging.getLogger(__name__)


def session_id_for(activity_id: str) -> str:
    """Id of the session built from an activity."""
    return f"session_{activity_id}"


class SessionAnalyzer:
    """Analyzer for recorded activities: runs, session statistics, jibes and progress."""

    def __init__(self, config: Optional[RunDetectionConfig] = None, keep_raw_data: bool = True):
        """Initialize session analyzer.

        Args:
            config: Run detection parameters, defaults from settings
            keep_raw_data: Keep the sample streams on sessions so they can be reprocessed
        """
        self.config = config or get_detection_config()
        self.keep_raw_data = keep_raw_data

    def analyze_activity(self, activity: ActivityData) -> Optional[Session]:
        """Detect the runs of an activity and build its session.

        Args:
            activity: Parsed activity

        Returns:
            Session, or None when the activity has no samples or no runs
        """
        activity_id = activity.metadata.activity_id
        if activity.series.is_empty:
            logger.warning(f"Activity {activity_id} has no usable samples")
            return None

        runs = detect_series_runs(activity.series, self.config)
        if not runs:
            logger.warning(f"No runs detected in activity: {activity_id}")
            return None

        logger.info(f"Detected {len(runs)} runs in activity {activity_id}")

        metadata = activity.metadata
        return Session(
            session_id=session_id_for(activity_id),
            activity_id=activity_id,
            name=metadata.name,
            date=metadata.start_time,
            location=metadata.location,
            total_duration=metadata.elapsed_time,
            total_distance=metadata.distance,
            runs=runs,
            stats=calculate_session_stats(runs),
            raw_data=activity.series if self.keep_raw_data else None,
        )

    def reprocess_session(self, session: Session,
                          config: Optional[RunDetectionConfig] = None) -> Session:
        """Recompute runs and statistics from the stored streams.

        The new runs replace the previous ones. Sessions without stored
        streams are returned unchanged.

        Args:
            session: Session to reprocess
            config: Detection parameters, defaults to the analyzer's

        Returns:
            Updated copy of the session
        """
        if not session.has_raw_data:
            logger.warning(f"Session {session.session_id} has no raw data, cannot reprocess")
            return session

        runs = detect_series_runs(session.raw_data, config or self.config)
        return replace(session, runs=runs, stats=calculate_session_stats(runs))

    def detect_session_jibes(self, session: Session, **jibe_options) -> List[Jibe]:
        """Detect jibes from the stored GPS track of a session.

        Args:
            session: Session with raw data
            **jibe_options: Overrides passed to detect_jibes

        Returns:
            Detected jibes, empty when the session has no positions
        """
        raw_data = session.raw_data
        if raw_data is None or not raw_data.has_positions:
            return []

        return detect_jibes(raw_data.latlng, raw_data.time, raw_data.speed, **jibe_options)

    def analyze_session(self, session: Session, include_jibes: bool = False) -> Dict[str, Any]:
        """Build the analysis dictionary of a session.

        Args:
            session: Processed session
            include_jibes: Also detect jibes from the GPS track

        Returns:
            Dictionary with summary, detection config, stats, runs and optionally jibes
        """
        analysis = {
            'summary': session.get_summary(),
            'config': self.config.to_dict(),
            'stats': session.stats.to_dict(),
            'runs': [run.to_dict() for run in session.runs],
        }

        if include_jibes:
            jibes = self.detect_session_jibes(session)
            analysis['jibes'] = [
                dict(jibe.to_dict(), size=classify_jibe(jibe.angle_change).value)
                for jibe in jibes
            ]
            analysis['jibe_summary'] = summarize_jibes(jibes)

        return analysis

    def calculate_progress(self, sessions: Sequence[Session]) -> ProgressStats:
        """Aggregate progress across sessions."""
        return calculate_progress_stats(sessions)

    def calculate_spots(self, sessions: Sequence[Session]) -> List[Spot]:
        """Group sessions into riding spots by start position."""
        return calculate_spots(sessions)
