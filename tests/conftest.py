"""Configuration for pytest."""

import numpy as np
import pytest

from scare_pacing.config import DirectorConfig
from scare_pacing.events import EventRegistry, EventSite, EventType
from scare_pacing.session import PacingSession
from scare_pacing.subject import WaypointWalker


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that run whole episodes"
    )


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def quiet_config():
    """Fixed band, no noise, hand-placed sites, no cooldown."""
    return DirectorConfig(
        band_deviance=0.0,
        noise_amplitude=0.0,
        randomize_sites=False,
        cooldown_floor=0.0,
    )


@pytest.fixture
def still_subject():
    """A subject standing at (0, 1, 0)."""
    return WaypointWalker(waypoints=((0.0, 1.0, 0.0), (1.0, 1.0, 0.0)), speed=0.0)


@pytest.fixture
def near_registry():
    """One site per event type, all with the origin inside their zone."""
    return EventRegistry(
        [EventSite(t, (0.0, 1.0, 0.0), (4.0, 4.0, 4.0)) for t in EventType]
    )


@pytest.fixture
def session(quiet_config, rng, near_registry, still_subject):
    s = PacingSession(quiet_config, rng=rng, registry=near_registry, subject=still_subject)
    s.begin_episode()
    return s
