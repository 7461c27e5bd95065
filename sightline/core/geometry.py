import math

from .models import Rect


def clamp(value, low, high):
    return max(low, min(high, value))


def iou(a: Rect, b: Rect) -> float:
    """Intersection-over-Union of two rects. 0 = disjoint, 1 = identical."""
    ix1 = max(a.x, b.x)
    iy1 = max(a.y, b.y)
    ix2 = min(a.xmax, b.xmax)
    iy2 = min(a.ymax, b.ymax)
    inter = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    if inter <= 0.0:
        return 0.0
    union = a.area + b.area - inter
    return inter / union if union > 0.0 else 0.0


def center_distance(a: Rect, b: Rect) -> float:
    ca, cb = a.center, b.center
    return math.hypot(ca.x - cb.x, ca.y - cb.y)
