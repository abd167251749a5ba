"""Fixed-cadence driver for director episodes in simulated time."""

import logging

from .config import ConfigurationError

logger = logging.getLogger(__name__)


class TickScheduler:
    """
    Interleaves the continuous simulation with the decision cadence.

    Each decision tick runs to completion (act, record metrics, check for
    termination) before the continuous updates for the next period start.
    """

    def __init__(self, sim_dt, decision_period):
        if sim_dt <= 0 or decision_period <= 0:
            raise ConfigurationError("sim_dt and decision_period must be positive")
        substeps = decision_period / sim_dt
        if abs(substeps - round(substeps)) > 1e-6 or round(substeps) < 1:
            raise ConfigurationError(
                f"decision period {decision_period}s is not a whole multiple of sim_dt {sim_dt}s"
            )
        self.sim_dt = sim_dt
        self.decision_period = decision_period
        self.substeps = int(round(substeps))

    @classmethod
    def from_config(cls, config):
        return cls(config.sim_dt, config.decision_period)

    def decision_tick(self, session, act):
        """Run one decision. Returns True when arousal ran away and the episode must end."""
        act(session)
        session.record_tick()
        return session.is_catastrophic()

    def advance(self, session, controller=None):
        """Run the continuous updates for one period. Returns True once the episode time is up."""
        on_substep = controller.on_substep if controller is not None else None
        session.advance_continuous(self.decision_period, on_substep)
        return session.time_up()

    def run_episode(self, session, controller):
        session.begin_episode(center_shift=controller.band_center_shift)
        controller.reset(session)

        while True:
            if self.decision_tick(session, controller.on_tick):
                logger.info(
                    "Agent %d episode %d ended early: heart rate %.1f",
                    session.agent_index, session.episode_index, session.heart_rate,
                )
                break
            if self.advance(session, controller):
                break

        return session.finalize_episode()
