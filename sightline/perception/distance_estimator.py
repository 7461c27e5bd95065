import math
from typing import Callable, List, Optional, Tuple

from ..config import Settings
from ..core.geometry import clamp
from ..core.models import Point, Rect
from ..logger import get_logger

logger = get_logger("DistanceEstimator")

# Guards the area heuristic against zero-sized boxes
AREA_EPSILON = 1e-6


def probe_points(rect: Rect, offset: float = 0.2) -> List[Point]:
    """Center plus the four corners inset by `offset` of the box size."""
    x, y, w, h = rect.x, rect.y, rect.width, rect.height
    return [
        rect.center,
        Point(x + w * offset, y + h * offset),
        Point(x + w * (1 - offset), y + h * offset),
        Point(x + w * offset, y + h * (1 - offset)),
        Point(x + w * (1 - offset), y + h * (1 - offset)),
    ]


class DistanceEstimator:
    """
    Reduces several depth probes inside a box to one distance.

    The nearest valid sample wins. When every probe misses, the distance is
    guessed from the box area and flagged invalid so velocity ignores it.
    """
    def __init__(self, probe: Callable[[Point], Optional[float]], settings: Optional[Settings] = None):
        self.probe = probe
        self.settings = settings or Settings()

    def sample(self, rect: Rect) -> List[float]:
        samples = []
        for point in probe_points(rect, self.settings.corner_offset):
            try:
                dist = self.probe(point)
            except Exception as e:
                # A failing probe counts as a miss
                logger.debug("ProbeFailed", {"x": point.x, "y": point.y, "error": str(e)})
                continue
            if dist is None or not math.isfinite(dist):
                continue
            if dist > self.settings.min_distance:
                samples.append(dist)
        return samples

    def heuristic(self, rect: Rect) -> float:
        s = self.settings
        return clamp(s.heuristic_area_scale / (rect.area + AREA_EPSILON), s.min_distance, s.max_distance)

    def estimate(self, rect: Rect) -> Tuple[float, bool]:
        samples = self.sample(rect)
        if samples:
            return min(samples), True
        return self.heuristic(rect), False
