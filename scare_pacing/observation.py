"""Observation vector handed to the learned director once per decision tick.

Layout, for ``n`` registered sites (length ``8 + 7 * n``):

    [0]            heart rate, normalised to the 40-220 domain
    [1]            band min, normalised the same way
    [2]            band max, normalised the same way
    [3]            subject average speed over the last decision period
    [4 + 7*i ...]  per site i: relative position x, y, z and zone size
                   x, y, z (divided by the world scale), event type index
                   divided by the number of event types
    [-4]           last event type, (index + 1) / types, 0 before any event
    [-3]           last intensity, (index + 1) / 3, 0 before any event
    [-2]           time since last event / episode length, capped at 1
    [-1]           elapsed episode time / episode length, capped at 1
"""

import numpy as np
from gymnasium.spaces import Box

from .arousal import Intensity
from .config import AROUSAL_MAX, AROUSAL_MIN, ConfigurationError
from .events import EventType

HEADER_SIZE = 4
PER_SITE = 7
TRAILER_SIZE = 4


def observation_size(site_count):
    return HEADER_SIZE + PER_SITE * site_count + TRAILER_SIZE


def _normalize_hr(value):
    return (value - AROUSAL_MIN) / (AROUSAL_MAX - AROUSAL_MIN)


class ObservationEncoder:
    def __init__(self, site_count, episode_seconds, world_scale=1.0):
        self.site_count = int(site_count)
        self.episode_seconds = float(episode_seconds)
        self.world_scale = float(world_scale) if world_scale > 0 else 1.0

    @classmethod
    def from_config(cls, config, registry=None):
        if config.randomize_sites:
            site_count = config.site_count
        else:
            site_count = len(registry) if registry is not None else 0
        corners = np.abs(np.concatenate([config.spawn_volume_min, config.spawn_volume_max]))
        return cls(site_count, config.episode_seconds, max(float(corners.max()), 1.0))

    @property
    def size(self):
        return observation_size(self.site_count)

    def space(self):
        return Box(low=-np.inf, high=np.inf, shape=(self.size,), dtype=np.float32)

    def encode(self, session):
        if len(session.registry) != self.site_count:
            raise ConfigurationError(
                f"observation was declared for {self.site_count} sites, "
                f"registry now holds {len(session.registry)}"
            )
        obs = np.zeros(self.size, dtype=np.float32)
        obs[0] = _normalize_hr(session.heart_rate)
        obs[1] = _normalize_hr(session.band.min)
        obs[2] = _normalize_hr(session.band.max)
        obs[3] = session.subject.average_speed

        subject_pos = np.asarray(session.subject_position, dtype=float)
        for i, site in enumerate(session.registry):
            base = HEADER_SIZE + PER_SITE * i
            obs[base:base + 3] = (site.position - subject_pos) / self.world_scale
            obs[base + 3:base + 6] = site.zone_size / self.world_scale
            obs[base + 6] = int(site.event_type) / len(EventType)

        m = session.memory
        obs[-4] = 0.0 if m.last_event_type is None else (int(m.last_event_type) + 1) / len(EventType)
        obs[-3] = 0.0 if m.last_intensity is None else (int(m.last_intensity) + 1) / len(Intensity)
        obs[-2] = min(m.time_since_last_event / self.episode_seconds, 1.0)
        obs[-1] = min(session.elapsed / self.episode_seconds, 1.0)
        return obs
