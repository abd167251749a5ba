"""Pacing directors: the learned policy, the threshold heuristic and the scripted baseline.

All three share one per-tick contract (``PacingController.on_tick``) so a
harness can swap them without touching the session or scheduler.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .arousal import Intensity
from .config import DEFAULT_COOLDOWN_FLOOR, HEURISTIC_CENTER_SHIFT, DirectorConfig
from .events import EventSite, EventType, box_contains
from .observation import ObservationEncoder
from .reward import COOLDOWN, FIRE, INVALID, UNRESOLVED, WAIT, RewardModel
from .scheduler import TickScheduler
from .session import PacingSession

logger = logging.getLogger(__name__)

NO_EVENT = len(EventType)


class PacingController(ABC):
    cooldown_floor = 0.0
    # None keeps the configured whole-band shift
    band_center_shift = None

    def reset(self, session):
        pass

    def on_substep(self, session):
        """Called after every continuous step between decision ticks."""

    @abstractmethod
    def on_tick(self, session):
        """Act on ``session`` for one decision tick; returns the fired (type, intensity) or None."""


@dataclass
class TickOutcome:
    kind: str
    breakdown: object
    fired: bool = False
    stimulus_applied: bool = False


def parse_action(action):
    """Returns (event_index, intensity_index), or None when the action is malformed or out of range."""
    try:
        values = np.asarray(action).reshape(-1)
        if values.size != 2:
            return None
        event_index, intensity_index = int(values[0]), int(values[1])
    except (TypeError, ValueError):
        return None
    if not 0 <= event_index <= NO_EVENT:
        return None
    if not 0 <= intensity_index < len(Intensity):
        return None
    return event_index, intensity_index


class LearnedDirector(PacingController):
    """
    Wraps an external policy that maps an observation to an action pair
    ``(event_type_or_none, intensity)``.

    Invalid actions score only the invalid penalty and never reach the
    registry. Firing inside the cooldown scores the cooldown penalty and
    does nothing else. Without an explicit ``cooldown_floor`` the session's
    configured floor applies from ``reset`` on.
    """

    def __init__(self, agent=None, cooldown_floor=None, reward_model=None, encoder=None):
        self.agent = agent
        self.explicit_cooldown_floor = cooldown_floor
        self.cooldown_floor = DEFAULT_COOLDOWN_FLOOR if cooldown_floor is None else cooldown_floor
        self.reward_model = reward_model or RewardModel()
        self.encoder = encoder
        self.previous_arousal = None
        self.episode_reward = 0.0
        self.last_outcome = None

    def reset(self, session):
        if self.explicit_cooldown_floor is None:
            self.cooldown_floor = session.config.cooldown_floor
        if self.encoder is None:
            self.encoder = ObservationEncoder.from_config(session.config, session.registry)
        self.previous_arousal = session.heart_rate
        self.episode_reward = 0.0
        self.last_outcome = None

    def decide(self, session, action):
        parsed = parse_action(action)
        fired = affected = False
        if parsed is None:
            kind = INVALID
        else:
            event_index, intensity_index = parsed
            if event_index == NO_EVENT:
                kind = WAIT
            elif session.memory.in_cooldown(self.cooldown_floor):
                kind = COOLDOWN
            else:
                site = session.registry.resolve(EventType(event_index))
                if site is None:
                    kind = UNRESOLVED
                else:
                    kind = FIRE
                    fired = True
                    affected = session.fire_site(site, Intensity(intensity_index))

        arousal = session.heart_rate
        breakdown = self.reward_model.score(
            kind, arousal, session.band, session.config.panic_ceiling, self.previous_arousal
        )
        self.previous_arousal = arousal
        self.episode_reward += breakdown.total
        self.last_outcome = TickOutcome(kind, breakdown, fired, affected)
        return self.last_outcome

    def on_tick(self, session):
        if self.agent is None:
            raise RuntimeError("LearnedDirector needs an agent to run outside the gym environment")
        outcome = self.decide(session, self.agent(self.encoder.encode(session)))
        if outcome.fired:
            return session.memory.last_event_type, session.memory.last_intensity
        return None


class ThresholdDirector(PacingController):
    """
    Fires a Medium event at the first in-zone site whenever heart rate is below the band.

    Its band is shifted as a whole by up to ``center_shift`` each episode, on
    top of the configured edge deviance.
    """

    cooldown_floor = 0.0

    def __init__(self, intensity=Intensity.MEDIUM, center_shift=HEURISTIC_CENTER_SHIFT):
        self.intensity = intensity
        self.band_center_shift = center_shift

    def on_tick(self, session):
        if session.heart_rate >= session.band.min:
            return None
        registry = session.registry
        for site in registry:
            if registry.in_zone(site, session.subject_position):
                session.fire_site(site, self.intensity)
                return site.event_type, self.intensity
        return None


@dataclass
class ScriptedCue:
    """
    A pre-authored trigger volume bound to one event and intensity.

    ``target`` is a concrete site or an event type resolved through the
    registry when the cue fires.
    """

    target: object
    intensity: Intensity
    center: tuple
    size: tuple
    inside: bool = False

    def entered(self, subject_position, oracle=box_contains):
        now_inside = oracle(np.asarray(self.center, dtype=float), np.asarray(self.size, dtype=float),
                            subject_position)
        entered = now_inside and not self.inside
        self.inside = now_inside
        return entered

    def enter(self, director):
        return director.cue(self.target, self.intensity)


class ScriptedDirector(PacingController):
    """Takes no decisions of its own; fires whatever the external cues name."""

    cooldown_floor = 0.0

    def __init__(self, cues=()):
        self.cues = list(cues)
        self.session = None

    def reset(self, session):
        self.session = session
        for c in self.cues:
            c.inside = False

    def cue(self, target, intensity):
        """
        Apply an external trigger now. Proximity is already guaranteed by the
        cue. Returns whether arousal was affected, or None when no site matches.
        """
        if self.session is None:
            raise RuntimeError("ScriptedDirector received a cue before its episode started")
        site = target if isinstance(target, EventSite) else self.session.registry.resolve(EventType(target))
        if site is None:
            return None
        return self.session.fire_site(site, Intensity(intensity), ignore_proximity=True)

    def poll(self, session):
        fired = None
        for c in self.cues:
            if c.entered(session.subject_position, session.registry.oracle) and c.enter(self) is not None:
                fired = session.memory.last_event_type, session.memory.last_intensity
        return fired

    def on_substep(self, session):
        # Entries between ticks are logged by the next record_tick
        self.poll(session)

    def on_tick(self, session):
        return self.poll(session)


def run_evaluation(make_controller, instances=1, episodes=1, config=None, sink=None, seed=None,
                   make_registry=None, max_workers=None):
    """
    Run ``instances`` isolated subjects for ``episodes`` each and return their summaries.

    Every instance gets its own generator spawned from ``seed``, its own
    registry and controller; only ``sink`` is shared.
    """
    config = config or DirectorConfig()
    seeds = np.random.SeedSequence(seed).spawn(instances)

    def run_instance(index):
        session = PacingSession(
            config,
            rng=np.random.default_rng(seeds[index]),
            registry=make_registry() if make_registry else None,
            agent_index=index,
            sink=sink,
        )
        scheduler = TickScheduler.from_config(config)
        controller = make_controller()
        return [scheduler.run_episode(session, controller) for _ in range(episodes)]

    with ThreadPoolExecutor(max_workers=max_workers or instances) as pool:
        results = list(pool.map(run_instance, range(instances)))
    logger.info("Evaluated %d instances x %d episodes", instances, episodes)
    return results
