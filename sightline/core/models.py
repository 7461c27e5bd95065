from dataclasses import dataclass
from typing import Optional, Tuple, Any

from .estimation import radial_state


@dataclass(frozen=True)
class Point:
    """Point in normalized screen coordinates (top-left origin)."""
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box in normalized coordinates: origin is the top-left corner."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, xmin, ymin, xmax, ymax):
        return cls(xmin, ymin, xmax - xmin, ymax - ymin)

    @property
    def xmax(self) -> float:
        return self.x + self.width

    @property
    def ymax(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.xmax and self.y <= point.y <= self.ymax


@dataclass(frozen=True)
class Detection:
    """One classifier output for one frame, with its estimated distance."""
    label: str
    confidence: float
    rect: Rect
    distance: float = 0.0
    distance_valid: bool = False


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only view of a TrackedObject."""
    id: str
    label: str
    rect: Rect
    last_seen: float
    distance_history: Tuple[Tuple[float, float], ...]
    velocity: float
    has_valid_distance: bool
    is_approaching: bool

    @property
    def last_distance(self) -> Optional[float]:
        return self.distance_history[-1][1] if self.distance_history else None


@dataclass(frozen=True)
class Prediction:
    """Per-object output for rendering."""
    label: str
    rect: Rect
    velocity: float
    is_approaching: bool
    moving_away_threshold: float = 0.3

    @property
    def motion_state(self) -> str:
        return radial_state(self.velocity, self.is_approaching, self.moving_away_threshold)

    @property
    def semantic_label(self) -> str:
        state = self.motion_state
        if state == "approaching":
            return f"APPROACHING! {abs(self.velocity):.1f} m/s"
        if state == "moving_away":
            return f"Moving Away {abs(self.velocity):.1f} m/s"
        return "Stationary"

    @property
    def color_hint(self) -> str:
        return {"approaching": "red", "moving_away": "green"}.get(self.motion_state, "yellow")


@dataclass(frozen=True)
class ObstacleSummary:
    """Nearest obstacle in front of the user. distance == 0 means none."""
    distance: float = 0.0
    screen_point: Optional[Point] = None
    matched_label: str = ""
    is_approaching: bool = False

    @property
    def has_obstacle(self) -> bool:
        return self.distance > 0.0

    @property
    def color_hint(self) -> str:
        if not self.has_obstacle:
            return "clear"
        return "red" if self.is_approaching else "yellow"

    @property
    def alert_text(self) -> str:
        if not self.has_obstacle:
            return ""
        suffix = " (APPROACHING)" if self.is_approaching else ""
        return f"{self.matched_label} {self.distance:.1f}m{suffix}"


@dataclass(frozen=True)
class SystemStatus:
    """Health of the pipeline as seen by the caller."""
    state: str = "running"  # "running", "interrupted" or "detection_failed"
    error: Optional[str] = None
    advisory: Optional[str] = None
    fps: float = 0.0


@dataclass(frozen=True, eq=False)
class Frame:
    """One camera frame with its optional depth map (meters)."""
    timestamp: float
    image: Any
    depth: Any = None
