import dataclasses
import queue
import threading
import time

from ..config import Settings
from ..core.models import ObstacleSummary, SystemStatus
from ..core.tracking.track_store import TrackStore
from ..errors import ModelLoadError, SessionInterruptedError, SightlineError
from ..logger import get_logger
from ..perception.distance_estimator import DistanceEstimator
from ..perception.interpreter import DetectionInterpreter
from ..perception.radar import RadarScanner
from ..telemetry import PerformanceMonitor

logger = get_logger("FusionOrchestrator")


class FusionOrchestrator:
    """
    Owns the TrackStore and fuses detections with depth probes.

    Frames arrive on the receiver thread (`on_frame`). At most one classifier
    inference runs at a time on a worker thread; frames arriving while it is
    busy, or sooner than `vision_interval` after the last accepted frame, are
    dropped. Inference results come back through `inbox`, a queue with a
    single consumer: `tick`, which runs on the owner thread and is the only
    place tracks and radar state are mutated.

    Outputs are pull-based immutable snapshots: `predictions()`, `obstacle()`,
    `tracks()` and `status()`.
    """
    def __init__(self, detector, probe, settings=None, interpreter=None, clock=time.monotonic,
                 telemetry=None, owner_hz=30.0):
        """
        Args:
            detector: callable(image) -> raw detections payload.
            probe: callable(normalized Point) -> distance in meters or None.
            settings: Settings shared by every component.
            interpreter: converts the raw payload into normalized Detections.
            clock: monotonic time source (injectable for tests).
            telemetry: optional CSVTelemetryLogger fed with every radar summary.
            owner_hz: rate of the owner loop started by `start`.
        """
        self.settings = settings or Settings()
        self.detector = detector
        self.clock = clock
        self.telemetry = telemetry
        self.owner_period = 1.0 / owner_hz

        # Core
        self.interpreter = interpreter or DetectionInterpreter(self.settings)
        self.estimator = DistanceEstimator(probe, self.settings)
        self.store = TrackStore(self.settings, clock=clock)
        self.radar = RadarScanner(probe, self.settings, clock=clock)
        self.monitor = PerformanceMonitor(clock=clock)

        # Threading
        self.inbox = queue.Queue()
        self.lock = threading.Lock()
        self.inference_busy = False
        self.worker = None
        self.owner_thread = None
        self.running = False

        # State (owner thread only)
        self.last_vision_time = None
        self.last_frame_time = None
        self.detection_error = None
        self.advisory = None

        # Published snapshots
        self._predictions = ()
        self._tracks = ()
        self._obstacle = ObstacleSummary()

    # ------------------------------------------------------------------
    # Arrival side (any thread)

    def on_frame(self, frame):
        """
        Frame callback. Returns True if the frame was sent to the classifier.
        """
        now = self.clock()
        self.inbox.put(("frame", now, None))

        with self.lock:
            if self.detection_error is not None or self.inference_busy:
                return False
            if self.last_vision_time is not None and now - self.last_vision_time <= self.settings.vision_interval:
                return False
            self.inference_busy = True
            self.last_vision_time = now

        self.worker = threading.Thread(target=self._infer, args=(frame,), daemon=True)
        self.worker.start()
        return True

    def on_session_interrupted(self, reason="session interrupted"):
        self.inbox.put(("interrupted", self.clock(), reason))

    def on_session_resumed(self):
        self.inbox.put(("resumed", self.clock(), None))

    def _infer(self, frame):
        try:
            raw = self.detector(frame.image)
            height, width = frame.image.shape[:2]
            detections = self.interpreter.interpret(raw, width=width, height=height)
            self.inbox.put(("detections", frame.timestamp, detections))
        except ModelLoadError as e:
            self.inbox.put(("model_error", frame.timestamp, e))
        except SightlineError as e:
            self.inbox.put(("inference_error", frame.timestamp, e))
        except Exception as e:
            logger.exception("InferenceCrashed", {"error": str(e)})
            self.inbox.put(("inference_error", frame.timestamp, e))
        finally:
            with self.lock:
                self.inference_busy = False

    def wait_for_inference(self, timeout=None):
        worker = self.worker
        if worker is not None:
            worker.join(timeout)
        return not self.inference_busy

    # ------------------------------------------------------------------
    # Owner side

    def tick(self, now=None):
        """Drain inference results, run the radar if due and publish snapshots."""
        now = self.clock() if now is None else now

        while True:
            try:
                kind, stamp, payload = self.inbox.get_nowait()
            except queue.Empty:
                break
            self._dispatch(kind, stamp, payload, now)

        if self.detection_error is not None:
            # No more batches will arrive; tracks still have to age out
            self._refresh_tracks([], now)

        if (self.advisory is None and self.last_frame_time is not None and
                now - self.last_frame_time > self.settings.session_stall_timeout):
            self._set_advisory(SessionInterruptedError(
                f"no frame for {now - self.last_frame_time:.1f}s"))

        if self.advisory is not None:
            # The depth map is frozen while the session is interrupted
            if self._obstacle.has_obstacle:
                self.radar.reset()
                self._obstacle = self.radar.summary
        elif self.radar.due(now):
            summary = self.radar.scan(self.store.snapshot(), now=now)
            self._obstacle = summary
            if self.telemetry is not None:
                self.telemetry.log(summary, track_count=len(self.store), fps=self.monitor.fps)

    def _dispatch(self, kind, stamp, payload, now):
        if kind == "frame":
            self.last_frame_time = stamp
            if self.advisory is not None:
                self._clear_advisory()
        elif kind == "detections":
            self._apply_detections(payload, now)
        elif kind == "inference_error":
            logger.warning("InferenceFailed", {"frame_ts": stamp, "error": str(payload)})
            self._refresh_tracks([], now)
        elif kind == "model_error":
            if self.detection_error is None:
                with self.lock:
                    self.detection_error = payload
                logger.error("DetectionPathDisabled", {
                    "error": str(payload),
                    "suggestion": payload.recovery_suggestion,
                })
            self._refresh_tracks([], now)
        elif kind == "interrupted":
            self._set_advisory(SessionInterruptedError(payload))
        elif kind == "resumed":
            if self.advisory is not None:
                self._clear_advisory()

    def _apply_detections(self, detections, now):
        measured = []
        for det in detections:
            distance, valid = self.estimator.estimate(det.rect)
            measured.append(dataclasses.replace(det, distance=distance, distance_valid=valid))

        self._refresh_tracks(measured, now)
        self.monitor.record_frame(now)
        logger.debug("DetectionsApplied", {
            "detections": len(measured),
            "tracks": len(self._tracks),
            "valid_distances": sum(1 for d in measured if d.distance_valid),
        })

    def _refresh_tracks(self, measured, now):
        """Update the store (a failed frame counts as an empty batch) and publish."""
        self.store.update(measured, now=now)
        self._tracks = self.store.snapshot()
        self._predictions = self.store.predictions()

    def _set_advisory(self, error):
        self.advisory = error
        logger.warning("SessionInterrupted", {"reason": str(error)})

    def _clear_advisory(self):
        logger.info("SessionResumed", {"reason": str(self.advisory)})
        self.advisory = None

    # ------------------------------------------------------------------
    # Outputs

    def predictions(self):
        return self._predictions

    def tracks(self):
        return self._tracks

    def obstacle(self):
        return self._obstacle

    def status(self):
        if self.detection_error is not None:
            state = "detection_failed"
        elif self.advisory is not None:
            state = "interrupted"
        else:
            state = "running"
        return SystemStatus(
            state=state,
            error=str(self.detection_error) if self.detection_error is not None else None,
            advisory=str(self.advisory) if self.advisory is not None else None,
            fps=self.monitor.fps,
        )

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self):
        self.running = True
        self.owner_thread = threading.Thread(target=self._owner_loop, daemon=True)
        self.owner_thread.start()
        logger.info("OrchestratorStarted", {"owner_hz": 1.0 / self.owner_period})

    def stop(self):
        self.running = False
        if self.owner_thread is not None and self.owner_thread.is_alive():
            self.owner_thread.join(timeout=1.0)
        self.wait_for_inference(timeout=1.0)
        if self.telemetry is not None:
            self.telemetry.close()
        logger.info("OrchestratorStopped", {"tracks": len(self.store)})

    def _owner_loop(self):
        while self.running:
            start_time = time.monotonic()
            self.tick()
            elapsed = time.monotonic() - start_time
            sleep_time = self.owner_period - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)
