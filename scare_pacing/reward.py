"""Per-tick reward for the learned director."""

from dataclasses import dataclass

from .config import HARD_FAILURE_MARGIN


@dataclass(frozen=True)
class RewardConfig:
    in_band: float = 1.0
    out_of_band_scale: float = 0.2
    panic_penalty: float = -2.0
    hard_failure_margin: float = HARD_FAILURE_MARGIN
    baseline_scale: float = 0.05

    invalid_action: float = -0.1
    cooldown_violation: float = -0.2
    anti_spam: float = -0.15
    overreaction: float = -0.05
    overreaction_jump: float = 15.0
    wait_in_band: float = 0.05
    wait_out_of_band: float = 0.01


# Action kinds scored by RewardModel
WAIT = "wait"
FIRE = "fire"
COOLDOWN = "cooldown"
INVALID = "invalid"
UNRESOLVED = "unresolved"  # named a type with no site: baseline only


@dataclass(frozen=True)
class RewardBreakdown:
    baseline: float = 0.0
    waiting: float = 0.0
    cooldown: float = 0.0
    anti_spam: float = 0.0
    overreaction: float = 0.0
    invalid: float = 0.0
    terminate: bool = False

    @property
    def total(self):
        return (
            self.baseline + self.waiting + self.cooldown
            + self.anti_spam + self.overreaction + self.invalid
        )

    def to_dict(self):
        return {
            "baseline": self.baseline,
            "waiting": self.waiting,
            "cooldown": self.cooldown,
            "anti_spam": self.anti_spam,
            "overreaction": self.overreaction,
            "invalid": self.invalid,
            "total": self.total,
            "terminate": self.terminate,
        }


class RewardModel:
    """
    Scores one decision tick.

    The baseline term rewards being in the band (1.0) and otherwise decays
    with the distance to the band center, normalised by the distance from the
    center to the panic ceiling. Above the ceiling it loses 2.0, and past the
    ceiling plus the hard-failure margin the episode ends after this tick.
    The baseline is scaled by ``baseline_scale``; action terms are absolute.
    """

    def __init__(self, config=None):
        self.config = config or RewardConfig()

    def baseline_term(self, arousal, band, panic_ceiling):
        c = self.config
        max_distance = panic_ceiling - band.center
        if max_distance <= 0:
            raise ValueError("panic ceiling must be above the band center")
        normalized = min(max(abs(arousal - band.center) / max_distance, 0.0), 1.0)

        if band.contains(arousal):
            term = c.in_band
        else:
            term = c.out_of_band_scale * (1.0 - normalized)
        if arousal > panic_ceiling:
            term += c.panic_penalty
        return term * c.baseline_scale

    def is_hard_failure(self, arousal, panic_ceiling):
        return arousal > panic_ceiling + self.config.hard_failure_margin

    def invalid(self):
        return RewardBreakdown(invalid=self.config.invalid_action)

    def score(self, kind, arousal, band, panic_ceiling, previous_arousal=None):
        c = self.config
        if kind == INVALID:
            return self.invalid()

        terms = {
            "baseline": self.baseline_term(arousal, band, panic_ceiling),
            "terminate": self.is_hard_failure(arousal, panic_ceiling),
        }
        if kind == WAIT:
            terms["waiting"] = c.wait_in_band if band.contains(arousal) else c.wait_out_of_band
        elif kind == COOLDOWN:
            terms["cooldown"] = c.cooldown_violation
        elif kind == FIRE:
            terms["anti_spam"] = c.anti_spam
            if previous_arousal is not None and arousal - previous_arousal > c.overreaction_jump:
                terms["overreaction"] = c.overreaction
        elif kind != UNRESOLVED:
            raise ValueError(f"unknown action kind: {kind!r}")
        return RewardBreakdown(**terms)
