from typing import Any, List, Optional

from ..config import Settings
from ..core.geometry import clamp
from ..core.models import Detection, Rect
from ..logger import get_logger

logger = get_logger("Interpreter")


class DetectionInterpreter:
    """
    Decouples raw classifier output from the tracking core.

    Accepts the inference service payload (a list, or a dict with a
    "detections" list) of {"class", "confidence", "bbox": [x1, y1, x2, y2]}
    in pixels and returns normalized Detections above the confidence
    threshold. Distances are filled in later by the DistanceEstimator.
    """
    def __init__(self, settings: Optional[Settings] = None, width: int = 640, height: int = 480):
        self.settings = settings or Settings()
        self.width = width
        self.height = height

    def interpret(self, raw_data: Any, width: Optional[int] = None, height: Optional[int] = None) -> List[Detection]:
        width = width or self.width
        height = height or self.height

        detections_list = []
        if isinstance(raw_data, list):
            detections_list = raw_data
        elif isinstance(raw_data, dict) and "detections" in raw_data:
            detections_list = raw_data["detections"]

        detections = []
        for det in detections_list:
            try:
                label = str(det["class"])
                confidence = float(det["confidence"])
                x1, y1, x2, y2 = (float(v) for v in det["bbox"])
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("MalformedDetection", {"detection": repr(det), "error": str(e)})
                continue

            if confidence <= self.settings.confidence_threshold:
                continue

            rect = self.normalize(x1, y1, x2, y2, width, height)
            if rect.area <= 0.0:
                continue
            detections.append(Detection(label=label, confidence=confidence, rect=rect))
        return detections

    @staticmethod
    def normalize(x1, y1, x2, y2, width, height) -> Rect:
        """Pixel corners -> normalized top-left rect clamped to the unit square."""
        nx1 = clamp(min(x1, x2) / width, 0.0, 1.0)
        ny1 = clamp(min(y1, y2) / height, 0.0, 1.0)
        nx2 = clamp(max(x1, x2) / width, 0.0, 1.0)
        ny2 = clamp(max(y1, y2) / height, 0.0, 1.0)
        return Rect.from_corners(nx1, ny1, nx2, ny2)
