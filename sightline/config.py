# Configuration loading (tuning thresholds, intervals, radar geometry)
import json
import dataclasses
from dataclasses import dataclass

from .errors import ConfigError
from .logger import get_logger

logger = get_logger("Config")


@dataclass(frozen=True)
class Settings:
    """Immutable tuning values shared by every pipeline component."""
    # Distance (meters)
    max_distance: float = 5.0
    min_distance: float = 0.1
    safe_distance: float = 0.2

    # Classifier
    confidence_threshold: float = 0.6

    # Velocity thresholds (m/s, negative = approaching)
    approaching_velocity_threshold: float = -0.1
    moving_away_velocity_threshold: float = 0.3

    # Throttling (seconds)
    vision_interval: float = 0.1
    radar_interval: float = 0.15

    # Tracking
    tracking_timeout: float = 0.5
    tracking_match_distance: float = 0.2
    min_match_iou: float = 0.1
    tracking_history_limit: int = 10

    # Velocity EMA weights
    velocity_smoothing_old: float = 0.6
    velocity_smoothing_new: float = 0.4

    # Radar grid (normalized, top-left origin)
    radar_rows: int = 3
    radar_cols: int = 3
    radar_min_x: float = 0.2
    radar_max_x: float = 0.8
    radar_min_y: float = 0.25
    radar_max_y: float = 0.75
    radar_top_inset: float = 0.1

    # Distance measurement
    corner_offset: float = 0.2
    heuristic_area_scale: float = 0.5

    # Session
    session_stall_timeout: float = 1.0

    def __post_init__(self):
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{f.name} must be a number, got {value!r}")
            if f.type is int and not isinstance(value, int):
                raise ConfigError(f"{f.name} must be an integer, got {value!r}")
        if not 0.0 <= self.min_distance < self.max_distance:
            raise ConfigError(f"min_distance/max_distance out of order: {self.min_distance} / {self.max_distance}")
        if self.safe_distance < 0.0:
            raise ConfigError(f"safe_distance must be >= 0, got {self.safe_distance}")
        if not 0.0 < self.confidence_threshold < 1.0:
            raise ConfigError(f"confidence_threshold must be in (0, 1), got {self.confidence_threshold}")
        if self.tracking_history_limit < 2:
            raise ConfigError(f"tracking_history_limit must be >= 2, got {self.tracking_history_limit}")
        if self.tracking_timeout <= 0.0:
            raise ConfigError(f"tracking_timeout must be > 0, got {self.tracking_timeout}")
        for name in ("velocity_smoothing_old", "velocity_smoothing_new", "corner_offset"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        if self.radar_rows < 1 or self.radar_cols < 1:
            raise ConfigError(f"radar grid must be at least 1x1, got {self.radar_rows}x{self.radar_cols}")
        if not (0.0 <= self.radar_min_x <= self.radar_max_x <= 1.0 and
                0.0 <= self.radar_min_y <= self.radar_max_y <= 1.0):
            raise ConfigError("radar region must lie inside the unit square")
        if self.radar_top_inset * 2 > self.radar_max_x - self.radar_min_x:
            raise ConfigError(f"radar_top_inset too large for the radar width: {self.radar_top_inset}")

    @classmethod
    def from_dict(cls, values):
        """
        Build settings from a dict, ignoring (and logging) unknown keys.
        Numeric strings such as "3" are converted to the field's type.
        """
        types = {f.name: f.type for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - set(types))
        if unknown:
            logger.warning("ConfigUnknownKeys", {"keys": unknown})

        kwargs = {}
        for key, value in values.items():
            if key not in types:
                continue
            if isinstance(value, str):
                try:
                    value = types[key](value)
                except ValueError:
                    raise ConfigError(f"{key} must be a {types[key].__name__}, got {value!r}")
            kwargs[key] = value
        return cls(**kwargs)

    def replace(self, **overrides):
        return dataclasses.replace(self, **overrides)

    def to_dict(self):
        return dataclasses.asdict(self)


def load_tuning(file_path="tuning.json"):
    """Load raw tuning values from a JSON file."""
    try:
        with open(file_path, "r") as f:
            tuning = json.load(f)
        if not isinstance(tuning, dict):
            raise ValueError("top-level JSON value must be an object")
        logger.info("TuningLoaded", {"path": file_path, "keys": len(tuning)})
        return tuning
    except (IOError, ValueError) as e:
        logger.warning("TuningLoadFailed", {"path": file_path, "error": str(e)})
        return {}


def load_settings(file_path=None):
    """Load settings, falling back to defaults when no tuning file is usable."""
    if file_path is None:
        return Settings()
    return Settings.from_dict(load_tuning(file_path))
