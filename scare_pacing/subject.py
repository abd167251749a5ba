"""Stand-in for the subject's navigation: a walker looping over waypoints."""

import numpy as np

DEFAULT_WAYPOINTS = (
    (-15.0, 1.0, -15.0),
    (15.0, 1.0, -15.0),
    (15.0, 1.0, 15.0),
    (-15.0, 1.0, 15.0),
)


class WaypointWalker:
    """Moves at constant speed along a closed polyline."""

    def __init__(self, waypoints=DEFAULT_WAYPOINTS, speed=5.0):
        self.waypoints = np.asarray(waypoints, dtype=float)
        if self.waypoints.ndim != 2 or self.waypoints.shape[1] != 3 or len(self.waypoints) < 2:
            raise ValueError("waypoints must be at least two 3-D points")
        self.speed = float(speed)
        self.reset()

    def reset(self):
        self.position = self.waypoints[0].copy()
        self._target = 1
        self._distance_since_sample = 0.0
        self._time_since_sample = 0.0
        self.average_speed = self.speed

    def advance(self, dt):
        remaining = self.speed * dt
        self._distance_since_sample += remaining
        self._time_since_sample += dt
        while remaining > 0:
            target = self.waypoints[self._target]
            to_target = target - self.position
            dist = float(np.linalg.norm(to_target))
            if dist <= remaining:
                self.position = target.copy()
                remaining -= dist
                self._target = (self._target + 1) % len(self.waypoints)
                if dist == 0 and remaining > 0 and np.allclose(self.waypoints, target):
                    break
            else:
                self.position = self.position + to_target / dist * remaining
                remaining = 0.0

    def sample_average_speed(self):
        """Average speed since the previous sample; called once per decision tick."""
        if self._time_since_sample > 0:
            self.average_speed = self._distance_since_sample / self._time_since_sample
        self._distance_since_sample = 0.0
        self._time_since_sample = 0.0
        return self.average_speed
