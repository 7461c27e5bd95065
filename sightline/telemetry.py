import csv
import time

from .core.estimation import ExponentialSmoother


class PerformanceMonitor:
    """Inference rate as an exponential moving average of 1 / frame interval."""
    def __init__(self, smoothing=0.9, clock=time.monotonic):
        self.clock = clock
        self.smoother = ExponentialSmoother(smoothing)
        self.last_time = None
        self.frame_count = 0

    @property
    def fps(self) -> float:
        return self.smoother.value or 0.0

    def record_frame(self, now=None):
        now = self.clock() if now is None else now
        self.frame_count += 1
        if self.last_time is not None:
            dt = now - self.last_time
            if dt > 0:
                self.smoother.update(1.0 / dt)
        self.last_time = now
        return self.fps


class CSVTelemetryLogger:
    """Appends one row per obstacle summary for offline analysis."""
    FIELDS = ["time", "distance", "label", "approaching", "tracks", "fps"]

    def __init__(self, filename="obstacle_telemetry.csv", clock=time.monotonic):
        self.filename = filename
        self.clock = clock
        self.file = None
        self.writer = None
        self.start_time = clock()

    def log(self, summary, track_count=0, fps=0.0):
        if self.file is None:
            self.file = open(self.filename, "w", newline='')
            self.writer = csv.writer(self.file)
            self.writer.writerow(self.FIELDS)

        t = self.clock() - self.start_time
        self.writer.writerow([
            f"{t:.4f}",
            f"{summary.distance:.3f}",
            summary.matched_label,
            int(summary.is_approaching),
            track_count,
            f"{fps:.2f}",
        ])
        self.file.flush()

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
