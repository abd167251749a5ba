"""One simulated subject instance: arousal, event sites, memory and metrics.

Instances never share mutable state. Everything random is drawn from the
generator handed in at construction.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .arousal import ArousalModel, ArousalState, Intensity, SubjectProfile, TargetBand, draw_target_band
from .config import DirectorConfig
from .events import EventRegistry, EventType, box_contains
from .metrics import EpisodeMetricsAggregator
from .subject import WaypointWalker

logger = logging.getLogger(__name__)


@dataclass
class DecisionMemory:
    last_event_type: Optional[EventType] = None
    last_intensity: Optional[Intensity] = None
    time_since_last_event: float = 0.0
    event_triggered_this_tick: bool = False

    def reset(self):
        self.last_event_type = None
        self.last_intensity = None
        self.time_since_last_event = 0.0
        self.event_triggered_this_tick = False

    def record_fire(self, event_type, intensity):
        self.last_event_type = EventType(event_type)
        self.last_intensity = Intensity(intensity)
        self.time_since_last_event = 0.0
        self.event_triggered_this_tick = True

    def tick(self, dt):
        self.time_since_last_event += dt

    def in_cooldown(self, cooldown_floor):
        # Time accrues in sim_dt steps; allow for float drift in the sum
        return self.time_since_last_event < cooldown_floor - 1e-9


class PacingSession:
    def __init__(self, config=None, rng=None, registry=None, subject=None,
                 oracle=box_contains, agent_index=0, sink=None):
        if rng is None:
            raise ValueError("PacingSession needs a seeded numpy Generator")
        self.config = config or DirectorConfig()
        self.rng = rng
        self.registry = registry if registry is not None else EventRegistry(oracle=oracle)
        self.subject = subject or WaypointWalker()
        self.agent_index = agent_index
        self.sink = sink

        c = self.config
        self.arousal = ArousalModel(
            ArousalState(
                value=c.baseline,
                baseline=c.baseline,
                sensitivity=c.sensitivity,
                recovery_time_constant=c.recovery_time_constant,
                noise_amplitude=c.noise_amplitude,
            ),
            rng,
        )
        self.memory = DecisionMemory()
        self.metrics = EpisodeMetricsAggregator()
        self.band = TargetBand(c.target_min, c.target_max)

        self.episode_index = -1
        self.elapsed = 0.0
        self.episode_open = False
        self.last_summary = None

    def reseed(self, rng):
        self.rng = rng
        self.arousal.rng = rng

    # Episode lifecycle

    def begin_episode(self, center_shift=None):
        """
        Start a new episode. ``center_shift`` overrides the configured
        whole-band shift for this episode.
        """
        c = self.config
        if center_shift is None:
            center_shift = c.band_center_shift
        else:
            c.check_center_shift(center_shift)

        if self.episode_open:
            self.finalize_episode()

        self.episode_index += 1
        self.elapsed = 0.0

        self.band = draw_target_band(
            self.rng, c.target_min, c.target_max, c.band_deviance, center_shift
        )
        if c.randomize_subject:
            self.arousal.apply_profile(SubjectProfile.draw(self.rng))
        if c.randomize_sites:
            self.registry.initialize_events(
                self.rng, c.spawn_volume_min, c.spawn_volume_max, count=c.site_count
            )

        self.arousal.reset()
        self.subject.reset()
        self.memory.reset()
        self.metrics.begin_episode(c.panic_ceiling)
        self.episode_open = True
        return self.band

    def finalize_episode(self):
        """Emit this episode's summary. Only the first call per episode does anything."""
        if not self.episode_open:
            return None
        self.episode_open = False
        summary = self.metrics.summarize(self.agent_index, self.episode_index)
        self.last_summary = summary
        if self.sink is not None:
            self.sink.write(summary)
        logger.info(
            "Agent %d episode %d: %.0f%% in range, %d events, max HR %.1f",
            summary.agent_index, summary.episode, summary.time_in_range_ratio * 100,
            summary.total_events, summary.max_arousal,
        )
        return summary

    # Simulation

    @property
    def heart_rate(self):
        return self.arousal.value

    @property
    def subject_position(self):
        return self.subject.position

    def advance_continuous(self, duration, on_substep=None):
        """
        Apply every continuous update for ``duration`` seconds, in ``sim_dt`` steps.

        ``on_substep(session)`` runs after each step once the subject has
        moved, so spatial triggers see every position the subject passes.
        """
        dt = self.config.sim_dt
        steps = max(1, int(round(duration / dt)))
        for _ in range(steps):
            self.subject.advance(dt)
            self.arousal.advance(dt)
            self.memory.tick(dt)
            if on_substep is not None:
                on_substep(self)
        self.elapsed += steps * dt
        self.subject.sample_average_speed()

    def fire(self, event_type, intensity):
        """Trigger the first site of ``event_type``; returns whether arousal was affected."""
        site = self.registry.resolve(event_type)
        if site is None:
            return False
        return self.fire_site(site, intensity)

    def fire_site(self, site, intensity, ignore_proximity=False):
        affected = self.registry.trigger_site(
            site, intensity, self.subject_position, self.arousal, ignore_proximity=ignore_proximity
        )
        self.memory.record_fire(site.event_type, intensity)
        return affected

    def record_tick(self):
        m = self.memory
        self.metrics.log_step(
            self.heart_rate,
            self.band.min,
            self.band.max,
            m.event_triggered_this_tick,
            m.last_event_type,
            m.last_intensity,
            self.config.decision_period,
        )
        m.event_triggered_this_tick = False

    def is_catastrophic(self):
        c = self.config
        return self.heart_rate > c.panic_ceiling + c.hard_failure_margin

    def time_up(self):
        # Small tolerance against float drift from summing sim_dt
        return self.elapsed >= self.config.episode_seconds - 1e-9
