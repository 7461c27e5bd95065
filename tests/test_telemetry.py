import sys
import os
import csv
import shutil
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from prompt_toolkit.formatted_text import to_formatted_text

from fakes import FakeClock
from sightline import cli
from sightline.core.models import ObstacleSummary, Point, Prediction, Rect, SystemStatus
from sightline.telemetry import CSVTelemetryLogger, PerformanceMonitor

RECT = Rect(0.4, 0.4, 0.2, 0.3)


class TestPredictionSemantics(unittest.TestCase):
    def test_approaching(self):
        p = Prediction("person", RECT, -1.26, True)
        self.assertEqual(p.motion_state, "approaching")
        self.assertEqual(p.semantic_label, "APPROACHING! 1.3 m/s")
        self.assertEqual(p.color_hint, "red")

    def test_moving_away(self):
        p = Prediction("person", RECT, 0.5, False)
        self.assertEqual(p.semantic_label, "Moving Away 0.5 m/s")
        self.assertEqual(p.color_hint, "green")

    def test_stationary(self):
        for velocity in (0.0, 0.3, -0.5):
            p = Prediction("chair", RECT, velocity, False)
            self.assertEqual(p.semantic_label, "Stationary")
            self.assertEqual(p.color_hint, "yellow")

    def test_obstacle_alert(self):
        summary = ObstacleSummary(1.54, Point(0.5, 0.5), "person", True)
        self.assertEqual(summary.alert_text, "person 1.5m (APPROACHING)")
        self.assertEqual(cli.format_alert(summary), "[RED] person 1.5m (APPROACHING)")
        self.assertEqual(cli.format_alert(ObstacleSummary()), "Path clear")

    def test_alert_markup_escapes_labels(self):
        summary = ObstacleSummary(2.0, Point(0.5, 0.5), "<door>", False)
        text = "".join(fragment[1] for fragment in to_formatted_text(cli.alert_markup(summary)))
        self.assertEqual(text, "[YELLOW] <door> 2.0m")
        clear = "".join(fragment[1] for fragment in to_formatted_text(cli.alert_markup(ObstacleSummary())))
        self.assertEqual(clear, "Path clear")

    def test_status_line(self):
        line = cli.format_status(SystemStatus("detection_failed", error="no model", fps=4.0))
        self.assertEqual(line, "state=detection_failed fps=4.0 error=no model")


class TestPerformanceMonitor(unittest.TestCase):
    def test_fps_smoothing(self):
        clock = FakeClock()
        monitor = PerformanceMonitor(smoothing=0.9, clock=clock)
        self.assertEqual(monitor.record_frame(), 0.0)
        clock.advance(0.1)
        self.assertAlmostEqual(monitor.record_frame(), 10.0)
        clock.advance(0.2)
        self.assertAlmostEqual(monitor.record_frame(), 9.5)
        self.assertEqual(monitor.frame_count, 3)

    def test_repeated_timestamp_is_ignored(self):
        monitor = PerformanceMonitor()
        monitor.record_frame(1.0)
        monitor.record_frame(1.0)
        self.assertEqual(monitor.fps, 0.0)


class TestCSVTelemetry(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_rows(self):
        clock = FakeClock(100.0)
        path = os.path.join(self.tmpdir, "telemetry.csv")
        telemetry = CSVTelemetryLogger(path, clock=clock)
        clock.advance(0.5)
        telemetry.log(ObstacleSummary(2.0, Point(0.5, 0.5), "person", True), track_count=2, fps=9.5)
        telemetry.log(ObstacleSummary())
        telemetry.close()

        with open(path, newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0], CSVTelemetryLogger.FIELDS)
        self.assertEqual(rows[1], ["0.5000", "2.000", "person", "1", "2", "9.50"])
        self.assertEqual(rows[2][1:], ["0.000", "", "0", "0", "0.00"])

    def test_no_file_until_first_row(self):
        path = os.path.join(self.tmpdir, "unused.csv")
        CSVTelemetryLogger(path).close()
        self.assertFalse(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
