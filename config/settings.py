"""Configuration settings for Wingfoil Analyser."""

import os
import json
import logging
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Logger for this module
logger = logging.getLogger(__name__)

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("WINGFOIL_DATA_DIR", str(BASE_DIR / "data")))
SESSIONS_DIR = DATA_DIR / "sessions"

# Unit conversion
MS_TO_KMH = 3.6


class RunDetectionDefaults:
    """Default run detection parameters, overridable from the environment."""

    MIN_SPEED_THRESHOLD = float(os.getenv("MIN_SPEED_THRESHOLD", "12"))  # km/h
    MIN_RUN_DURATION = float(os.getenv("MIN_RUN_DURATION", "10"))  # seconds
    MIN_STOP_DURATION = float(os.getenv("MIN_STOP_DURATION", "5"))  # seconds
    SPEED_SMOOTHING_WINDOW = int(os.getenv("SPEED_SMOOTHING_WINDOW", "3"))  # samples


class JibeDetectionDefaults:
    """Default jibe detection parameters."""

    MIN_ANGLE_CHANGE = 60.0  # degrees
    MIN_SPEED = 5.0  # km/h
    HEADING_SMOOTHING_WINDOW = 5  # samples
    COMPARISON_WINDOW = 10  # headings before / after the candidate point
    MIN_SEPARATION = 5.0  # seconds between two accepted jibes
    MIN_POSITIONS = 10

    # Classification bounds
    SMALL_JIBE_MAX_ANGLE = 90.0
    MEDIUM_JIBE_MAX_ANGLE = 135.0


@dataclass(frozen=True)
class RunDetectionConfig:
    """Run detection parameters consumed by the run segmenter.

    No bounds are enforced: degenerate values such as a threshold of 0 or a
    smoothing window of 0 are used as given.
    """

    min_speed_threshold: float = RunDetectionDefaults.MIN_SPEED_THRESHOLD
    min_run_duration: float = RunDetectionDefaults.MIN_RUN_DURATION
    min_stop_duration: float = RunDetectionDefaults.MIN_STOP_DURATION
    speed_smoothing_window: int = RunDetectionDefaults.SPEED_SMOOTHING_WINDOW

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides) -> "RunDetectionConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)


CONFIG_KEYS = tuple(f.name for f in fields(RunDetectionConfig))

# Trend comparison: recent N sessions vs the N before them
TREND_WINDOW_SESSIONS = 5

# Sessions starting within this distance (degrees) of a spot belong to it
SPOT_PROXIMITY_DEGREES = 0.005

# Sport types recorded by wing foilers (Strava has no dedicated wingfoil type)
WINGFOIL_SPORT_TYPES = [
    'Kitesurf', 'Windsurf', 'Surfing', 'StandUpPaddling', 'Sail', 'wingfoil',
    'kitesurfing', 'windsurfing', 'surfing', 'stand_up_paddleboarding', 'sailing'
]

# File type detection
SUPPORTED_FORMATS = ['.fit', '.json']

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Persisted detection configuration
DETECTION_CONFIG_FILE = Path(
    os.getenv("DETECTION_CONFIG_FILE", str(BASE_DIR / "config" / "detection.json"))
)


def get_detection_config() -> RunDetectionConfig:
    """Get the run detection configuration built from environment defaults."""
    return RunDetectionConfig()


def load_detection_config(path: Optional[Path] = None) -> RunDetectionConfig:
    """Load a stored detection configuration merged over the defaults.

    Unknown keys are ignored. A missing or unreadable file yields the defaults.

    Args:
        path: JSON file to read, defaults to DETECTION_CONFIG_FILE

    Returns:
        RunDetectionConfig instance
    """
    path = Path(path) if path else DETECTION_CONFIG_FILE
    defaults = get_detection_config()

    if not path.exists():
        return defaults

    try:
        with open(path, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read detection config {path}: {e}. Using defaults.")
        return defaults

    if not isinstance(stored, dict):
        logger.warning(f"Detection config {path} is not a JSON object. Using defaults.")
        return defaults

    unknown = [key for key in stored if key not in CONFIG_KEYS]
    if unknown:
        logger.warning(f"Ignoring unknown detection config keys: {', '.join(unknown)}")

    return defaults.with_overrides(**{key: stored[key] for key in CONFIG_KEYS if key in stored})


def save_detection_config(config: RunDetectionConfig, path: Optional[Path] = None) -> Path:
    """Persist a detection configuration as JSON.

    Returns:
        Path of the written file
    """
    path = Path(path) if path else DETECTION_CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.info(f"Detection config saved to {path}")
    return path


def parse_config_assignment(assignment: str) -> Dict[str, Any]:
    """Parse a ``key=value`` string into a typed detection config override.

    Raises:
        ValueError: If the assignment is malformed or the key is unknown
    """
    if '=' not in assignment:
        raise ValueError(f"Expected KEY=VALUE, got: {assignment}")

    key, raw_value = (part.strip() for part in assignment.split('=', 1))
    if key not in CONFIG_KEYS:
        raise ValueError(
            f"Unknown detection config key: {key}. Valid keys: {', '.join(CONFIG_KEYS)}"
        )

    if key == 'speed_smoothing_window':
        return {key: int(raw_value)}
    return {key: float(raw_value)}
