"""Session-level and cross-session statistics derived from detected runs."""

import logging
from typing import List, Sequence

import numpy as np

from config.settings import TREND_WINDOW_SESSIONS, SPOT_PROXIMITY_DEGREES
from models.session import Run, Session, SessionStats, ProgressStats, RecentTrend
from models.spot import Spot
from utils.units import round_half_away_from_zero

logger = logging.getLogger(__name__)


def calculate_session_stats(runs: Sequence[Run]) -> SessionStats:
    """Aggregate the runs of one session.

    Heart rate aggregates only consider runs that reported them and are left
    unset when no run did.

    Args:
        runs: Runs of the session, possibly empty

    Returns:
        SessionStats; all counters are zero for an empty run list
    """
    if not runs:
        return SessionStats()

    durations = [run.duration for run in runs]
    distances = [run.distance for run in runs]
    total_riding_time = sum(durations)
    total_riding_distance = sum(distances)

    average_heartrates = [run.average_heartrate for run in runs if run.average_heartrate]
    max_heartrates = [run.max_heartrate for run in runs if run.max_heartrate]

    return SessionStats(
        number_of_runs=len(runs),
        total_riding_time=total_riding_time,
        total_riding_distance=total_riding_distance,
        average_run_duration=total_riding_time / len(runs),
        average_run_distance=total_riding_distance / len(runs),
        longest_run_duration=max(durations),
        longest_run_distance=max(distances),
        best_average_speed=max(run.average_speed for run in runs),
        best_max_speed=max(run.max_speed for run in runs),
        average_heartrate=(
            round_half_away_from_zero(float(np.mean(average_heartrates)))
            if average_heartrates else None
        ),
        max_heartrate=max(max_heartrates) if max_heartrates else None,
    )


def calculate_trend(recent: float, previous: float) -> float:
    """Percentage change from ``previous`` to ``recent``; 0 when there is no baseline."""
    if not previous:
        return 0.0
    return ((recent - previous) / previous) * 100


def _window_average(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def calculate_recent_trend(sessions: Sequence[Session],
                           window: int = TREND_WINDOW_SESSIONS) -> RecentTrend:
    """Compare the ``window`` most recent sessions with the ``window`` before them.

    Args:
        sessions: Sessions in any order
        window: Number of sessions in each comparison window

    Returns:
        RecentTrend with percentage changes of the average run duration, the
        average run distance and the number of runs per session
    """
    ordered = sorted(sessions, key=lambda s: s.date, reverse=True)
    recent = ordered[:window]
    previous = ordered[window:2 * window]

    def trend(metric) -> float:
        return calculate_trend(
            _window_average([metric(s) for s in recent]),
            _window_average([metric(s) for s in previous]),
        )

    return RecentTrend(
        run_duration=trend(lambda s: s.stats.average_run_duration),
        run_distance=trend(lambda s: s.stats.average_run_distance),
        runs_per_session=trend(lambda s: s.stats.number_of_runs),
    )


def calculate_progress_stats(sessions: Sequence[Session],
                             trend_window: int = TREND_WINDOW_SESSIONS) -> ProgressStats:
    """Aggregate all runs of all sessions and compute the recent trend.

    Args:
        sessions: Sessions with their detected runs and stats
        trend_window: Number of sessions per trend comparison window

    Returns:
        ProgressStats; all zero for an empty session list
    """
    if not sessions:
        return ProgressStats()

    all_runs = [run for session in sessions for run in session.runs]
    total_sessions = len(sessions)
    total_runs = len(all_runs)
    total_riding_time = sum(run.duration for run in all_runs)
    total_riding_distance = sum(run.distance for run in all_runs)

    logger.debug(f"Progress over {total_sessions} sessions and {total_runs} runs")

    return ProgressStats(
        total_sessions=total_sessions,
        total_runs=total_runs,
        total_riding_time=total_riding_time,
        total_riding_distance=total_riding_distance,
        average_runs_per_session=total_runs / total_sessions,
        average_run_duration=total_riding_time / total_runs if total_runs else 0.0,
        average_run_distance=total_riding_distance / total_runs if total_runs else 0.0,
        best_run_duration=max((run.duration for run in all_runs), default=0.0),
        best_run_distance=max((run.distance for run in all_runs), default=0.0),
        best_max_speed=max((run.max_speed for run in all_runs), default=0.0),
        recent_trend=calculate_recent_trend(sessions, trend_window),
    )


def _session_start(session: Session):
    if session.raw_data is None or not session.raw_data.has_positions:
        return None
    return session.raw_data.position_at(0)


def calculate_spots(sessions: Sequence[Session],
                    proximity: float = SPOT_PROXIMITY_DEGREES) -> List[Spot]:
    """Group sessions into spots by their first GPS position.

    A session joins the most recently created spot whose coordinates lie
    within ``proximity`` degrees (planar distance) of its start, otherwise it
    founds a new spot at its start. Sessions without positions are skipped.

    Args:
        sessions: Sessions with raw data, processed in the given order
        proximity: Maximum distance in degrees to an existing spot

    Returns:
        Spots, most visited first
    """
    spots: List[Spot] = []

    for session in sessions:
        start = _session_start(session)
        if start is None:
            continue
        lat, lng = start
        stats = session.stats

        spot = next(
            (s for s in reversed(spots)
             if np.hypot(s.coordinates[0] - lat, s.coordinates[1] - lng) < proximity),
            None
        )

        if spot is None:
            spots.append(Spot(
                spot_id=f"spot-{lat:.3f}-{lng:.3f}",
                name=session.location or f"Spot {len(spots) + 1}",
                coordinates=(lat, lng),
                sessions_count=1,
                total_riding_time=stats.total_riding_time,
                best_max_speed=stats.best_max_speed,
                average_runs_per_session=float(stats.number_of_runs),
                last_visit=session.date,
            ))
            continue

        spot.sessions_count += 1
        spot.total_riding_time += stats.total_riding_time
        spot.best_max_speed = max(spot.best_max_speed, stats.best_max_speed)
        spot.average_runs_per_session = (
            spot.average_runs_per_session * (spot.sessions_count - 1) + stats.number_of_runs
        ) / spot.sessions_count
        spot.last_visit = max(spot.last_visit, session.date)

    logger.debug(f"Grouped {len(sessions)} sessions into {len(spots)} spots")
    return sorted(spots, key=lambda s: s.sessions_count, reverse=True)
