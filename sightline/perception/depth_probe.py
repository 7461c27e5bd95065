import math
import threading
from typing import Optional

import numpy as np

from ..core.models import Point


class DepthMapProbe:
    """
    Answers depth probes from the latest depth map.

    The depth map is an HxW float array in meters; zero, negative and
    non-finite pixels mean "no hit". Probes take normalized screen points and
    are converted to absolute pixel coordinates here.
    """
    def __init__(self, depth_map=None, patch_radius=0):
        self.patch_radius = patch_radius
        self.lock = threading.Lock()
        self.depth_map = None
        if depth_map is not None:
            self.update(depth_map)

    def update(self, depth_map):
        """Swap in a new depth map (called from the frame thread)."""
        depth = None if depth_map is None else np.asarray(depth_map, dtype=np.float32)
        if depth is not None and depth.ndim != 2:
            raise ValueError(f"depth map must be 2D, got shape {depth.shape}")
        with self.lock:
            self.depth_map = depth

    @property
    def available(self) -> bool:
        return self.depth_map is not None

    def to_pixel(self, point: Point, shape):
        h, w = shape
        px = int(round(min(max(point.x, 0.0), 1.0) * (w - 1)))
        py = int(round(min(max(point.y, 0.0), 1.0) * (h - 1)))
        return px, py

    def probe(self, point: Point) -> Optional[float]:
        with self.lock:
            depth = self.depth_map
        if depth is None or depth.size == 0:
            return None

        px, py = self.to_pixel(point, depth.shape)
        r = self.patch_radius
        if r > 0:
            patch = depth[max(0, py - r):py + r + 1, max(0, px - r):px + r + 1]
            patch = patch[np.isfinite(patch) & (patch > 0)]
            if patch.size == 0:
                return None
            value = float(np.median(patch))
        else:
            value = float(depth[py, px])

        if not math.isfinite(value) or value <= 0.0:
            return None
        return value

    __call__ = probe
