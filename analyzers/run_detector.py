"""Run detection: segment a speed stream into runs of sustained riding speed."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from config.settings import RunDetectionConfig
from models.activity import LatLng, SampleSeries
from models.session import Run
from utils.smoothing import moving_average
from utils.units import speeds_to_kmh, round_speed, round_half_away_from_zero

logger = logging.getLogger(__name__)

IndexRange = Tuple[int, int]


class SegmenterState(Enum):
    """States of the run segmenter."""

    SEEKING_START = 'seeking_start'
    IN_RUN = 'in_run'


@dataclass(frozen=True)
class SegmenterStatus:
    """Current segmenter state; ``start_index`` is set only while in a run."""

    state: SegmenterState = SegmenterState.SEEKING_START
    start_index: Optional[int] = None

    @classmethod
    def in_run(cls, start_index: int) -> "SegmenterStatus":
        return cls(SegmenterState.IN_RUN, start_index)

    @property
    def is_in_run(self) -> bool:
        return self.state is SegmenterState.IN_RUN


SEEKING_START = SegmenterStatus()


def transition(status: SegmenterStatus, index: int,
               is_riding: bool) -> Tuple[SegmenterStatus, Optional[IndexRange]]:
    """Advance the segmenter by one sample.

    Args:
        status: Status before the sample
        index: Index of the sample
        is_riding: Whether the smoothed speed at ``index`` reaches the threshold

    Returns:
        Tuple of (new status, closed candidate range). The range is inclusive
        and only returned when this sample ends a run.
    """
    if not status.is_in_run:
        if is_riding:
            return SegmenterStatus.in_run(index), None
        return status, None

    if is_riding:
        return status, None
    return SEEKING_START, (status.start_index, index - 1)


def close_at_end(status: SegmenterStatus, last_index: int) -> Optional[IndexRange]:
    """Close a run still open when the series ends."""
    if status.is_in_run:
        return status.start_index, last_index
    return None


def segment_runs(time: Sequence[float], smoothed_speed: Sequence[float],
                 min_speed_threshold: float, min_run_duration: float) -> List[IndexRange]:
    """Find the index ranges of runs in a smoothed km/h speed stream.

    Every drop below the threshold ends the current run; short dips are not
    merged into the surrounding run. Candidates shorter than
    ``min_run_duration`` are discarded.

    Returns:
        Inclusive (start, end) index ranges in detection order
    """
    n = min(len(time), len(smoothed_speed))
    ranges: List[IndexRange] = []
    status = SEEKING_START

    def long_enough(candidate: IndexRange) -> bool:
        start, end = candidate
        return time[end] - time[start] >= min_run_duration

    for i in range(n):
        status, closed = transition(status, i, smoothed_speed[i] >= min_speed_threshold)
        if closed is not None and long_enough(closed):
            ranges.append(closed)

    closed = close_at_end(status, n - 1)
    if closed is not None and long_enough(closed):
        ranges.append(closed)

    return ranges


def build_run(run_id: int, start_index: int, end_index: int,
              series: SampleSeries, smoothed_speed: Sequence[float]) -> Run:
    """Compute the statistics of one run.

    Args:
        run_id: Ordinal of the run within its session
        start_index: First sample of the run
        end_index: Last sample of the run (inclusive)
        series: Full sample series of the session
        smoothed_speed: Smoothed speed stream in km/h

    Returns:
        Run record
    """
    start_time = series.time[start_index]
    end_time = series.time[end_index]

    run_speeds = np.asarray(smoothed_speed[start_index:end_index + 1], dtype=float)

    average_heartrate = None
    max_heartrate = None
    if series.heartrate is not None and len(series.heartrate) > end_index:
        heartrates = np.asarray(series.heartrate[start_index:end_index + 1], dtype=float)
        readings = heartrates[heartrates > 0]
        if readings.size > 0:
            average_heartrate = round_half_away_from_zero(float(readings.mean()))
            max_heartrate = float(readings.max())

    return Run(
        run_id=run_id,
        start_index=start_index,
        end_index=end_index,
        start_time=start_time,
        end_time=end_time,
        duration=end_time - start_time,
        distance=series.distance[end_index] - series.distance[start_index],
        average_speed=round_speed(run_speeds.mean()),
        max_speed=round_speed(run_speeds.max()),
        average_heartrate=average_heartrate,
        max_heartrate=max_heartrate,
        start_heartrate=series.heartrate_at(start_index),
        end_heartrate=series.heartrate_at(end_index),
        start_position=series.position_at(start_index),
        end_position=series.position_at(end_index),
    )


def smooth_speed(series: SampleSeries, window: int) -> List[float]:
    """Convert the speed stream to km/h and smooth it."""
    speed_kmh = speeds_to_kmh(series.speed[:len(series)])
    return moving_average(speed_kmh, window)


def detect_series_runs(series: SampleSeries, config: RunDetectionConfig) -> List[Run]:
    """Detect runs in a sample series.

    Args:
        series: Sample streams with speed in m/s
        config: Run detection parameters

    Returns:
        Runs numbered from 1 in detection order
    """
    if series.is_empty:
        return []

    smoothed_speed = smooth_speed(series, config.speed_smoothing_window)
    ranges = segment_runs(
        series.time, smoothed_speed, config.min_speed_threshold, config.min_run_duration
    )

    runs = [
        build_run(run_id, start, end, series, smoothed_speed)
        for run_id, (start, end) in enumerate(ranges, start=1)
    ]
    logger.debug(f"Detected {len(runs)} runs in {len(series)} samples")
    return runs


def detect_runs(time: Sequence[float], speed: Sequence[float], distance: Sequence[float],
                config: RunDetectionConfig, heartrate: Optional[Sequence[float]] = None,
                latlng: Optional[Sequence[LatLng]] = None) -> List[Run]:
    """Detect runs from raw streams.

    Args:
        time: Seconds since the start of the recording
        speed: Speed in m/s
        distance: Cumulative distance in meters
        config: Run detection parameters
        heartrate: Optional heart rate in bpm
        latlng: Optional (latitude, longitude) pairs in degrees

    Returns:
        Detected runs; empty when time or speed is empty
    """
    series = SampleSeries(
        time=time, speed=speed, distance=distance, heartrate=heartrate, latlng=latlng
    )
    return detect_series_runs(series, config)
