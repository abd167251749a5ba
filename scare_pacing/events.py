"""Event sites placed in the world and the registry that triggers them."""

import itertools
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from .config import ConfigurationError, DEFAULT_SITE_COUNT

logger = logging.getLogger(__name__)


class EventType(IntEnum):
    # Values are part of the learned action space; append new members only
    LIGHT = 0
    SOUND = 1
    APPARITION = 2
    DARKNESS = 3


def box_contains(center, size, position):
    """Axis-aligned trigger zone test. Faces count as inside."""
    half = np.asarray(size, dtype=float) / 2
    offset = np.abs(np.asarray(position, dtype=float) - np.asarray(center, dtype=float))
    return bool(np.all(offset <= half))


@dataclass(eq=False)
class EventSite:
    event_type: EventType
    position: np.ndarray
    zone_size: np.ndarray
    # Assigned by the owning registry
    site_id: Optional[int] = None

    def __post_init__(self):
        self.event_type = EventType(self.event_type)
        self.position = np.asarray(self.position, dtype=float)
        self.zone_size = np.asarray(self.zone_size, dtype=float)

    def contains(self, subject_position, oracle=box_contains):
        return oracle(self.position, self.zone_size, subject_position)


@dataclass(frozen=True)
class SiteTemplate:
    event_type: EventType
    min_zone_size: tuple = (4.0, 3.0, 4.0)
    max_zone_size: tuple = (8.0, 3.0, 8.0)

    def spawn(self, rng, position):
        size = rng.uniform(self.min_zone_size, self.max_zone_size)
        return EventSite(self.event_type, position, size)


DEFAULT_TEMPLATES = tuple(SiteTemplate(t) for t in EventType)


class EventRegistry:
    """
    Owns the event sites of one instance.

    A type resolves to the first registered site of that type. Triggering
    returns whether the stimulus reached the subject; callers still count a
    fire that missed the subject for cooldown and memory.
    """

    def __init__(self, sites=(), templates=DEFAULT_TEMPLATES, oracle=box_contains):
        self._site_ids = itertools.count(1)
        self._sites = [self._register(site) for site in sites]
        self.templates = tuple(templates)
        self.oracle = oracle

    def _register(self, site):
        if site.site_id is None:
            site.site_id = next(self._site_ids)
        return site

    @property
    def sites(self):
        return tuple(self._sites)

    def __len__(self):
        return len(self._sites)

    def __iter__(self):
        return iter(self._sites)

    def resolve(self, event_type):
        for site in self._sites:
            if site.event_type == event_type:
                return site
        logger.warning("No event site registered for %s", EventType(event_type).name)
        return None

    def in_zone(self, site, subject_position):
        return site.contains(subject_position, self.oracle)

    def trigger(self, event_type, intensity, subject_position, arousal):
        site = self.resolve(event_type)
        if site is None:
            return False
        return self.trigger_site(site, intensity, subject_position, arousal)

    def trigger_site(self, site, intensity, subject_position, arousal, ignore_proximity=False):
        affected = ignore_proximity or self.in_zone(site, subject_position)
        if affected:
            arousal.apply_stimulus(intensity)
        logger.debug(
            "Site %s (%s) triggered at %s intensity, subject %s",
            site.site_id, site.event_type.name, intensity.name, "hit" if affected else "out of range",
        )
        return affected

    def initialize_events(self, rng, volume_min, volume_max, count=DEFAULT_SITE_COUNT):
        """Replace every site with ``count`` fresh ones, cycling the templates."""
        if not self.templates:
            raise ConfigurationError("randomised event sites need at least one site template")
        if count % len(self.templates) != 0:
            logger.warning(
                "%d sites over %d templates: not every event type is guaranteed a site",
                count, len(self.templates),
            )

        self._sites = []
        for i in range(count):
            template = self.templates[i % len(self.templates)]
            position = rng.uniform(volume_min, volume_max)
            self._sites.append(self._register(template.spawn(rng, position)))
        return self.sites
