import sys
import os
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sightline.config import Settings
from sightline.core.estimation import VelocityEstimator, ExponentialSmoother
from sightline.core.models import Rect
from sightline.core.tracking.tracked_object import TrackedObject

RECT = Rect(0.4, 0.4, 0.2, 0.3)


class TestTrackedObject(unittest.TestCase):
    def test_history_is_capped_oldest_first(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        for i in range(1, 15):
            obj.update(RECT, 3.0, True, now=i * 0.1)
            self.assertLessEqual(len(obj.distance_history), 10)
        self.assertEqual(len(obj.distance_history), 10)
        self.assertAlmostEqual(obj.distance_history[0][0], 0.5)
        self.assertAlmostEqual(obj.distance_history[-1][0], 1.4)

    def test_history_cap_follows_settings(self):
        obj = TrackedObject("chair", RECT, 2.0, True, settings=Settings(tracking_history_limit=3), now=0.0)
        for i in range(1, 6):
            obj.update(RECT, 2.0, True, now=i * 0.1)
        self.assertEqual(len(obj.distance_history), 3)

    def test_decreasing_distance_is_approaching(self):
        obj = TrackedObject("person", RECT, 4.0, True, now=0.0)
        for i in range(1, 6):
            obj.update(RECT, 4.0 - 0.2 * i, True, now=i * 0.1)
        self.assertLess(obj.velocity, 0.0)
        self.assertTrue(obj.is_approaching)

    def test_increasing_distance_is_not_approaching(self):
        obj = TrackedObject("person", RECT, 1.0, True, now=0.0)
        for i in range(1, 6):
            obj.update(RECT, 1.0 + 0.2 * i, True, now=i * 0.1)
        self.assertGreater(obj.velocity, 0.0)
        self.assertFalse(obj.is_approaching)

    def test_single_step_velocity(self):
        # 3.0m -> 2.0m in 0.2s: raw -5 m/s, EMA from zero keeps 40%
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        obj.update(RECT, 2.0, True, now=0.2)
        self.assertAlmostEqual(obj.velocity, -2.0)
        self.assertTrue(obj.is_approaching)

    def test_slow_approach_below_threshold(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        obj.update(RECT, 2.99, True, now=0.2)
        # raw -0.05 m/s -> -0.02 after EMA, above -0.1
        self.assertLess(obj.velocity, 0.0)
        self.assertFalse(obj.is_approaching)

    def test_invalid_distance_resets_velocity(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        obj.update(RECT, 2.0, True, now=0.2)
        self.assertTrue(obj.is_approaching)
        obj.update(RECT, 5.0, False, now=0.3)
        self.assertEqual(obj.velocity, 0.0)
        self.assertFalse(obj.is_approaching)
        self.assertFalse(obj.has_valid_distance)

    def test_last_seen_never_moves_backwards(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=1.0)
        obj.update(RECT, 2.5, True, now=0.5)
        self.assertEqual(obj.last_seen, 1.0)
        obj.update(RECT, 2.5, True, now=1.2)
        self.assertEqual(obj.last_seen, 1.2)

    def test_update_replaces_rect(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        moved = Rect(0.45, 0.4, 0.2, 0.3)
        obj.update(moved, 3.0, True, now=0.1)
        self.assertEqual(obj.rect, moved)

    def test_snapshot_is_detached(self):
        obj = TrackedObject("person", RECT, 3.0, True, now=0.0)
        snap = obj.snapshot()
        obj.update(RECT, 2.0, True, now=0.2)
        self.assertEqual(len(snap.distance_history), 1)
        self.assertEqual(snap.velocity, 0.0)
        self.assertEqual(snap.last_distance, 3.0)
        self.assertEqual(snap.id, obj.id)

    def test_ids_are_unique(self):
        a = TrackedObject("person", RECT, 3.0, now=0.0)
        b = TrackedObject("person", RECT, 3.0, now=0.0)
        self.assertNotEqual(a.id, b.id)


class TestEstimators(unittest.TestCase):
    def test_velocity_needs_two_samples(self):
        est = VelocityEstimator()
        self.assertEqual(est.update([(0.0, 3.0)], True), 0.0)

    def test_velocity_uses_two_newest_samples(self):
        est = VelocityEstimator(0.0, 1.0)
        history = [(0.0, 10.0), (1.0, 3.0), (1.5, 2.0)]
        self.assertAlmostEqual(est.update(history, True), -2.0)

    def test_zero_time_step_keeps_velocity(self):
        est = VelocityEstimator()
        est.update([(0.0, 3.0), (0.2, 2.0)], True)
        self.assertAlmostEqual(est.update([(0.2, 2.0), (0.2, 1.0)], True), -2.0)

    def test_exponential_smoother_seeds_with_first_value(self):
        s = ExponentialSmoother(0.9)
        self.assertEqual(s.update(10.0), 10.0)
        self.assertAlmostEqual(s.update(0.0), 9.0)


if __name__ == "__main__":
    unittest.main()
