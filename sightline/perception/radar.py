import math
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..config import Settings
from ..core.models import ObstacleSummary, Point, Rect, TrackSnapshot
from ..core.tracking.tracked_object import TrackedObject
from ..logger import get_logger

logger = get_logger("Radar")

UNLABELED = "Obstacle"


class RadarScanner:
    """
    Coarse area scan for the single nearest surface in front of the user.

    Casts a rows x cols grid of depth probes over a trapezoid in the
    lower-center of the view (rows narrow toward the top by
    `radar_top_inset`). The nearest hit beyond `safe_distance` wins and is
    labelled by the first tracked box containing it.

    A dedicated TrackedObject follows the winning distance from scan to scan
    so the summary carries an approach flag even for unlabelled obstacles.
    """
    def __init__(self, probe: Callable[[Point], Optional[float]], settings: Optional[Settings] = None,
                 clock=time.monotonic):
        self.probe = probe
        self.settings = settings or Settings()
        self.clock = clock
        self.last_scan_time = None
        self.summary = ObstacleSummary()
        self.obstacle_track: Optional[TrackedObject] = None
        self.points = self.grid_points()

    def grid_points(self) -> List[Point]:
        s = self.settings
        rows, cols = s.radar_rows, s.radar_cols
        ys = np.linspace(s.radar_min_y, s.radar_max_y, rows) if rows > 1 else np.array([(s.radar_min_y + s.radar_max_y) / 2.0])
        points = []
        for r, y in enumerate(ys):
            # 0 at the top row, 1 at the bottom row
            depth_frac = r / (rows - 1) if rows > 1 else 1.0
            inset = s.radar_top_inset * (1.0 - depth_frac)
            x0, x1 = s.radar_min_x + inset, s.radar_max_x - inset
            xs = np.linspace(x0, x1, cols) if cols > 1 else np.array([(x0 + x1) / 2.0])
            points.extend(Point(float(x), float(y)) for x in xs)
        return points

    def due(self, now=None) -> bool:
        now = self.clock() if now is None else now
        return self.last_scan_time is None or now - self.last_scan_time > self.settings.radar_interval

    def scan(self, tracks: Sequence[TrackSnapshot] = (), now=None) -> ObstacleSummary:
        """Scan if the radar interval elapsed, otherwise return the current summary."""
        now = self.clock() if now is None else now
        if not self.due(now):
            return self.summary
        self.last_scan_time = now

        closest, point = self.nearest_hit()
        if closest >= self.settings.max_distance:
            if self.summary.has_obstacle:
                logger.debug("ObstacleCleared", {"last_distance": self.summary.distance})
            self.obstacle_track = None
            self.summary = ObstacleSummary()
            return self.summary

        label = attribute_label(point, tracks)
        if self.obstacle_track is None:
            self.obstacle_track = TrackedObject(label, Rect(point.x, point.y, 0.0, 0.0), closest, True,
                                                settings=self.settings, now=now)
        else:
            self.obstacle_track.label = label
            self.obstacle_track.update(Rect(point.x, point.y, 0.0, 0.0), closest, True, now=now)

        self.summary = ObstacleSummary(
            distance=closest,
            screen_point=point,
            matched_label=label,
            is_approaching=self.obstacle_track.is_approaching,
        )
        logger.debug("ObstacleScan", {"distance": closest, "label": label,
                                      "velocity": self.obstacle_track.velocity})
        return self.summary

    def reset(self):
        """Forget the current obstacle; the next `scan` runs immediately."""
        self.last_scan_time = None
        self.obstacle_track = None
        self.summary = ObstacleSummary()

    def nearest_hit(self):
        closest = math.inf
        closest_point = None
        for point in self.points:
            try:
                dist = self.probe(point)
            except Exception as e:
                logger.debug("ProbeFailed", {"x": point.x, "y": point.y, "error": str(e)})
                continue
            if dist is None or not math.isfinite(dist):
                continue
            if self.settings.safe_distance < dist < closest:
                closest = dist
                closest_point = point
        return closest, closest_point


def attribute_label(point: Optional[Point], tracks: Sequence[TrackSnapshot]) -> str:
    if point is not None:
        for track in tracks:
            if track.rect.contains(point):
                return track.label
    return UNLABELED
