import time
from typing import Dict, List, Optional, Sequence, Tuple

from ...config import Settings
from ...logger import get_logger
from ..geometry import iou, center_distance
from ..models import Detection, Prediction, TrackSnapshot
from .tracked_object import TrackedObject

logger = get_logger("TrackStore")


class TrackStore:
    """
    Arena of live TrackedObjects keyed by id.

    Not thread-safe: a single owner calls `update`; everybody else reads
    immutable snapshots.

    Matching is greedy in track insertion order. For each track, among the
    still-unmatched detections with the same label:
      1. take the highest IoU, if it is above `min_match_iou`;
      2. otherwise take the nearest box center, if closer than
         `tracking_match_distance`.
    A matched detection leaves the pool. Leftover detections start new tracks,
    then tracks unseen for longer than `tracking_timeout` are evicted.
    """
    def __init__(self, settings: Optional[Settings] = None, clock=time.monotonic):
        self.settings = settings or Settings()
        self.clock = clock
        self.tracks: Dict[str, TrackedObject] = {}

    def __len__(self):
        return len(self.tracks)

    def update(self, detections: Sequence[Detection], now=None):
        now = self.clock() if now is None else now
        unmatched: List[Detection] = list(detections)

        for track in self.tracks.values():
            index = self._best_match(track, unmatched)
            if index is None:
                continue
            match = unmatched.pop(index)
            track.update(match.rect, match.distance, match.distance_valid, now=now)

        for detection in unmatched:
            track = TrackedObject(
                detection.label, detection.rect, detection.distance, detection.distance_valid,
                settings=self.settings, now=now,
            )
            self.tracks[track.id] = track
            logger.debug("TrackCreated", {"track_id": track.id, "label": track.label,
                                          "distance": detection.distance})

        self.evict(now)

    def _best_match(self, track: TrackedObject, candidates: Sequence[Detection]) -> Optional[int]:
        best_index = None
        best_iou = self.settings.min_match_iou
        for index, detection in enumerate(candidates):
            if detection.label != track.label:
                continue
            overlap = iou(track.rect, detection.rect)
            if overlap > best_iou:
                best_iou = overlap
                best_index = index

        if best_index is not None:
            return best_index

        best_distance = self.settings.tracking_match_distance
        for index, detection in enumerate(candidates):
            if detection.label != track.label:
                continue
            dist = center_distance(track.rect, detection.rect)
            if dist < best_distance:
                best_distance = dist
                best_index = index
        return best_index

    def evict(self, now=None) -> Tuple[str, ...]:
        """Remove tracks not updated for more than `tracking_timeout` seconds."""
        now = self.clock() if now is None else now
        timeout = self.settings.tracking_timeout
        stale = tuple(tid for tid, track in self.tracks.items() if now - track.last_seen > timeout)
        for tid in stale:
            track = self.tracks.pop(tid)
            logger.debug("TrackEvicted", {"track_id": tid, "label": track.label,
                                          "age": now - track.last_seen})
        return stale

    def clear(self):
        self.tracks.clear()

    def snapshot(self) -> Tuple[TrackSnapshot, ...]:
        return tuple(track.snapshot() for track in self.tracks.values())

    def predictions(self) -> Tuple[Prediction, ...]:
        """Predictions for tracks whose latest distance is within range."""
        out = []
        for track in self.tracks.values():
            distance = track.last_distance
            if distance is None or distance >= self.settings.max_distance:
                continue
            out.append(Prediction(
                label=track.label,
                rect=track.rect,
                velocity=track.velocity,
                is_approaching=track.is_approaching,
                moving_away_threshold=self.settings.moving_away_velocity_threshold,
            ))
        return tuple(out)
