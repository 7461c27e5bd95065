import time
import uuid
import collections

from ...config import Settings
from ..estimation import VelocityEstimator, is_approaching
from ..models import Rect, TrackSnapshot


class TrackedObject:
    """
    One physical object followed across frames.

    Keeps a bounded (timestamp, distance) history, oldest evicted first, and a
    smoothed radial velocity recomputed on every update.
    """
    def __init__(self, label: str, rect: Rect, distance: float, valid: bool = False,
                 settings=None, now=None):
        self.id = uuid.uuid4().hex
        self.label = label
        self.rect = rect
        self.last_seen = now if now is not None else time.monotonic()
        self.has_valid_distance = valid

        settings = settings or Settings()
        self.approaching_threshold = settings.approaching_velocity_threshold
        self.distance_history = collections.deque(maxlen=settings.tracking_history_limit)
        self.estimator = VelocityEstimator(settings.velocity_smoothing_old, settings.velocity_smoothing_new)

        self.update(rect, distance, valid, now=self.last_seen)

    @property
    def velocity(self) -> float:
        return self.estimator.velocity

    @property
    def is_approaching(self) -> bool:
        return is_approaching(self.velocity, self.has_valid_distance, self.approaching_threshold)

    @property
    def last_distance(self):
        return self.distance_history[-1][1] if self.distance_history else None

    def update(self, rect: Rect, distance: float, valid: bool = False, now=None):
        if now is None:
            now = time.monotonic()
        # Clock skew between callers must not move last_seen backwards
        now = max(now, self.last_seen)

        self.last_seen = now
        self.rect = rect
        self.has_valid_distance = valid

        self.distance_history.append((now, distance))
        self.estimator.update(self.distance_history, valid)

    def snapshot(self) -> TrackSnapshot:
        return TrackSnapshot(
            id=self.id,
            label=self.label,
            rect=self.rect,
            last_seen=self.last_seen,
            distance_history=tuple(self.distance_history),
            velocity=self.velocity,
            has_valid_distance=self.has_valid_distance,
            is_approaching=self.is_approaching,
        )

    def __repr__(self):
        return (f"TrackedObject(id={self.id[:8]}, label={self.label!r}, "
                f"distance={self.last_distance}, velocity={self.velocity:.2f})")
