from typing import Sequence, Tuple


class ExponentialSmoother:
    """Simple Alpha Filter. `smoothing` is the weight kept from the previous value."""
    def __init__(self, smoothing: float = 0.9):
        self.smoothing = smoothing
        self.value = None

    def reset(self):
        self.value = None

    def update(self, raw_value: float) -> float:
        if self.value is None:
            self.value = raw_value
        else:
            self.value = (self.smoothing * self.value) + ((1.0 - self.smoothing) * raw_value)
        return self.value


class VelocityEstimator:
    """
    Radial velocity (m/s) from a (timestamp, distance) history.

    Differences the two newest samples rather than the oldest and newest so a
    sudden approach shows up immediately, then smooths with an EMA:
        velocity = velocity * smoothing_old + raw * smoothing_new
    Negative velocity means the object is getting closer.
    """
    def __init__(self, smoothing_old: float = 0.6, smoothing_new: float = 0.4):
        self.smoothing_old = smoothing_old
        self.smoothing_new = smoothing_new
        self.velocity = 0.0

    def reset(self):
        self.velocity = 0.0

    def update(self, history: Sequence[Tuple[float, float]], valid: bool) -> float:
        """Recompute velocity after `history` received its newest sample."""
        if not valid:
            # Heuristic distances are too noisy to difference
            self.velocity = 0.0
            return self.velocity

        if len(history) < 2:
            self.velocity = 0.0
            return self.velocity

        t_prev, d_prev = history[-2]
        t_now, d_now = history[-1]
        dt = t_now - t_prev
        if dt > 0:
            raw = (d_now - d_prev) / dt
            self.velocity = (self.velocity * self.smoothing_old) + (raw * self.smoothing_new)
        return self.velocity


def is_approaching(velocity: float, has_valid_distance: bool, threshold: float = -0.1) -> bool:
    """True iff the distance is measured and closing faster than `threshold`."""
    return has_valid_distance and velocity < threshold


def radial_state(velocity: float, approaching: bool, moving_away_threshold: float = 0.3) -> str:
    if approaching:
        return "approaching"
    if velocity > moving_away_threshold:
        return "moving_away"
    return "stationary"
