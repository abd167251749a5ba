"""Tests for the waypoint walker standing in for subject navigation."""

import numpy as np
import pytest

from scare_pacing.subject import WaypointWalker

SQUARE = ((0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (10.0, 0.0, 10.0), (0.0, 0.0, 10.0))


def test_moves_along_first_segment():
    walker = WaypointWalker(SQUARE, speed=4.0)
    walker.advance(1.0)
    np.testing.assert_allclose(walker.position, (4.0, 0.0, 0.0))


def test_turns_corners():
    walker = WaypointWalker(SQUARE, speed=5.0)
    walker.advance(3.0)
    np.testing.assert_allclose(walker.position, (10.0, 0.0, 5.0))


def test_loops_back_to_start():
    walker = WaypointWalker(SQUARE, speed=10.0)
    walker.advance(4.0)
    np.testing.assert_allclose(walker.position, (0.0, 0.0, 0.0), atol=1e-9)


def test_average_speed_sampled_per_period():
    walker = WaypointWalker(SQUARE, speed=3.0)
    for _ in range(10):
        walker.advance(0.1)
    assert walker.sample_average_speed() == pytest.approx(3.0)


def test_standing_still():
    walker = WaypointWalker(SQUARE, speed=0.0)
    walker.advance(5.0)
    np.testing.assert_array_equal(walker.position, SQUARE[0])


def test_reset():
    walker = WaypointWalker(SQUARE, speed=2.0)
    walker.advance(3.0)
    walker.reset()
    np.testing.assert_array_equal(walker.position, SQUARE[0])


def test_rejects_bad_waypoints():
    with pytest.raises(ValueError):
        WaypointWalker(((0.0, 0.0),), speed=1.0)
