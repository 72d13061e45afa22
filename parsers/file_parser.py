"""File parser for recorded sessions (FIT files and Strava stream exports)."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, List
import pandas as pd
import numpy as np

try:
    from fitparse import FitFile
except ImportError:
    raise ImportError("fitparse package required. Install with: pip install fitparse")

from models.activity import ActivityData, ActivityMetadata, SampleSeries
from config.settings import SUPPORTED_FORMATS, WINGFOIL_SPORT_TYPES

logger = logging.getLogger(__name__)

# FIT positions are stored in semicircles
SEMICIRCLES_TO_DEGREES = 180.0 / 2 ** 31

REQUIRED_STREAMS = ('time', 'velocity_smooth', 'distance')


def is_wingfoil_sport(sport_type: Optional[str]) -> bool:
    """Check whether a sport type can hold a wingfoil session. Unknown types are accepted."""
    if not sport_type:
        return True
    return sport_type.lower() in {s.lower() for s in WINGFOIL_SPORT_TYPES}


class FileParser:
    """Parser for session recordings in various formats."""

    def __init__(self):
        """Initialize file parser."""
        pass

    def parse_file(self, file_path: Path) -> Optional[ActivityData]:
        """Parse a recording and return structured data.

        Args:
            file_path: Path to the recording

        Returns:
            ActivityData object or None if parsing failed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            logger.error(f"File not found: {file_path}")
            return None

        file_extension = file_path.suffix.lower()

        if file_extension not in SUPPORTED_FORMATS:
            logger.error(f"Unsupported file format: {file_extension}")
            return None

        try:
            if file_extension == '.fit':
                return self._parse_fit(file_path)
            elif file_extension == '.json':
                return self._parse_streams_json(file_path)
            else:
                logger.error(f"Parser not implemented for format: {file_extension}")
                return None

        except Exception as e:
            logger.error(f"Failed to parse file {file_path}: {e}")
            return None

    def parse_streams(self, streams: Any, activity: Optional[Dict[str, Any]] = None,
                      fallback_id: str = 'unknown') -> Optional[ActivityData]:
        """Build activity data from Strava-style streams.

        Args:
            streams: Mapping of stream type to data list or to a stream object
                with a ``data`` field, or a list of stream objects with a ``type``
            activity: Optional activity summary (id, name, sport_type,
                start_date_local, elapsed_time, distance, location_city)
            fallback_id: Activity id used when the summary has none

        Returns:
            ActivityData object or None if a required stream is missing
        """
        streams = self._index_streams(streams)
        data = {key: self._stream_data(streams, key) for key in streams}

        missing = [key for key in REQUIRED_STREAMS if not data.get(key)]
        if missing:
            logger.warning(
                f"Activity {fallback_id} missing required stream data: {', '.join(missing)}"
            )
            return None

        latlng = data.get('latlng')
        series = SampleSeries(
            time=[float(t) for t in data['time']],
            speed=[float(s) for s in data['velocity_smooth']],
            distance=[float(d) for d in data['distance']],
            heartrate=[float(hr) if hr is not None else 0.0 for hr in data['heartrate']]
            if data.get('heartrate') else None,
            latlng=[(float(p[0]), float(p[1])) for p in latlng] if latlng else None,
        )

        metadata = self._streams_metadata(activity or {}, series, fallback_id)
        return ActivityData(metadata=metadata, series=series)

    def _parse_streams_json(self, file_path: Path) -> Optional[ActivityData]:
        """Parse a JSON export of Strava activity streams.

        The file holds either the streams themselves or an object with
        ``streams`` and ``activity`` keys.
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            payload = json.load(f)

        activity = None
        streams = payload
        if isinstance(payload, dict) and 'streams' in payload:
            streams = payload['streams']
            activity = payload.get('activity')

        activity_data = self.parse_streams(streams, activity, fallback_id=file_path.stem)
        if activity_data and not (activity and activity.get('start_date_local')):
            activity_data.metadata.start_time = datetime.fromtimestamp(file_path.stat().st_mtime)
        return activity_data

    @staticmethod
    def _index_streams(streams: Any) -> Dict[str, Any]:
        if isinstance(streams, list):
            return {s['type']: s for s in streams if isinstance(s, dict) and 'type' in s}
        if isinstance(streams, dict):
            return streams
        return {}

    @staticmethod
    def _stream_data(streams: Dict[str, Any], key: str) -> Optional[List[Any]]:
        value = streams.get(key)
        if isinstance(value, dict):
            value = value.get('data')
        return value

    def _streams_metadata(self, activity: Dict[str, Any], series: SampleSeries,
                          fallback_id: str) -> ActivityMetadata:
        start_date = activity.get('start_date_local') or activity.get('start_date')
        start_time = datetime.now()
        if start_date:
            timestamp = pd.Timestamp(start_date)
            if timestamp.tzinfo is not None:
                # Keep wall-clock time so session dates compare as naive datetimes
                timestamp = timestamp.tz_localize(None)
            start_time = timestamp.to_pydatetime()

        elapsed_time = activity.get('elapsed_time')
        if elapsed_time is None:
            elapsed_time = series.time[-1] - series.time[0]

        distance = activity.get('distance')
        if distance is None:
            distance = series.distance[-1]

        return ActivityMetadata(
            activity_id=str(activity.get('id', fallback_id)),
            name=activity.get('name') or fallback_id,
            start_time=start_time,
            sport_type=activity.get('sport_type') or activity.get('type'),
            elapsed_time=float(elapsed_time),
            distance=float(distance),
            location=activity.get('location_city'),
        )

    def _parse_fit(self, file_path: Path) -> Optional[ActivityData]:
        """Parse FIT file format.

        Args:
            file_path: Path to FIT file

        Returns:
            ActivityData object or None if parsing failed
        """
        try:
            fit_file = FitFile(str(file_path))

            session_data = self._extract_fit_session(fit_file) or {}
            if not session_data:
                logger.warning(f"No session data found in FIT file {file_path}, using records only")

            records = list(fit_file.get_messages('record'))
            if not records:
                logger.error("No record data found in FIT file")
                return None

            df = self._fit_records_to_dataframe(records)
            if df.empty:
                logger.error("No valid data extracted from FIT records")
                return None

            series = self._dataframe_to_series(df)
            if series is None:
                return None

            start_time = session_data.get('start_time')
            if start_time is None and 'timestamp' in df.columns:
                start_time = df['timestamp'].iloc[0].to_pydatetime()

            sport = session_data.get('sport')
            metadata = ActivityMetadata(
                activity_id=file_path.stem,
                name=f"{str(sport).replace('_', ' ').title()} session" if sport else file_path.stem,
                start_time=start_time or datetime.fromtimestamp(file_path.stat().st_mtime),
                sport_type=str(sport) if sport else None,
                elapsed_time=float(session_data.get('total_elapsed_time') or
                                   (series.time[-1] - series.time[0])),
                distance=float(session_data.get('total_distance') or series.distance[-1]),
            )

            return ActivityData(metadata=metadata, series=series)

        except Exception as e:
            logger.error(f"Failed to parse FIT file {file_path}: {e}")
            return None

    def _extract_fit_session(self, fit_file) -> Optional[Dict[str, Any]]:
        """Extract session data from FIT file.

        Args:
            fit_file: FIT file object

        Returns:
            Dictionary with session data
        """
        try:
            sessions = list(fit_file.get_messages('session'))
            if not sessions:
                return None

            session = sessions[0]
            data = {}

            for field in session:
                if field.name and field.value is not None:
                    data[field.name] = field.value

            return data

        except Exception as e:
            logger.error(f"Failed to extract session data: {e}")
            return None

    def _fit_records_to_dataframe(self, records) -> pd.DataFrame:
        """Convert FIT records to pandas DataFrame.

        Args:
            records: List of FIT record messages

        Returns:
            DataFrame with one row per record
        """
        data = []

        for record in records:
            record_data = {}
            for field in record:
                if field.name and field.value is not None:
                    record_data[field.name] = field.value
            data.append(record_data)

        if not data:
            return pd.DataFrame()

        df = pd.DataFrame(data)

        if 'timestamp' in df.columns:
            df['timestamp'] = pd.to_datetime(df['timestamp'])
            df = df.dropna(subset=['timestamp'])
            df = df.sort_values('timestamp')
            df = df.reset_index(drop=True)

        return df

    def _dataframe_to_series(self, df: pd.DataFrame) -> Optional[SampleSeries]:
        """Convert record rows into index-aligned sample streams.

        Args:
            df: DataFrame from FIT records

        Returns:
            SampleSeries or None when time or speed/distance cannot be derived
        """
        if 'timestamp' not in df.columns or df.empty:
            logger.error("FIT records have no timestamps")
            return None

        time = (df['timestamp'] - df['timestamp'].iloc[0]).dt.total_seconds()

        speed_col = next(
            (col for col in ('enhanced_speed', 'speed') if col in df.columns and df[col].notna().any()),
            None
        )
        has_distance = 'distance' in df.columns and df['distance'].notna().any()

        if speed_col is None and not has_distance:
            logger.warning("No speed or distance data available in FIT records")
            return None

        if has_distance:
            distance = df['distance'].astype(float).ffill().fillna(0)
        else:
            dt = time.diff().fillna(0)
            distance = (df[speed_col].astype(float).fillna(0) * dt).cumsum()

        if speed_col is not None:
            speed = df[speed_col].astype(float).fillna(0)
        else:
            # Derive speed from cumulative distance
            dt = time.diff()
            speed = (distance.diff() / dt).replace([np.inf, -np.inf], np.nan).fillna(0).clip(lower=0)

        heartrate = None
        if 'heart_rate' in df.columns and df['heart_rate'].notna().any():
            heartrate = df['heart_rate'].astype(float).fillna(0).tolist()

        latlng = None
        if 'position_lat' in df.columns and 'position_long' in df.columns:
            positions = df[['position_lat', 'position_long']].astype(float) * SEMICIRCLES_TO_DEGREES
            if positions.notna().all(axis=1).any():
                positions = positions.ffill().bfill()
                latlng = list(zip(positions['position_lat'].tolist(),
                                  positions['position_long'].tolist()))

        return SampleSeries(
            time=time.tolist(),
            speed=speed.tolist(),
            distance=distance.tolist(),
            heartrate=heartrate,
            latlng=latlng,
        )
