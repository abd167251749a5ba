"""Simulated heart rate of one subject and the target band it is paced into."""

from dataclasses import dataclass
from enum import IntEnum

from .config import (
    AROUSAL_MAX,
    AROUSAL_MIN,
    BASELINE_RANGE,
    MIN_BAND_WIDTH,
    RECOVERY_TIME_CONSTANT_RANGE,
    SENSITIVITY_RANGE,
)


class Intensity(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


BASE_INCREASE = {
    Intensity.LOW: 10.0,
    Intensity.MEDIUM: 15.0,
    Intensity.HIGH: 20.0,
}


@dataclass
class ArousalState:
    value: float
    baseline: float
    sensitivity: float
    recovery_time_constant: float
    noise_amplitude: float


@dataclass(frozen=True)
class SubjectProfile:
    baseline: float
    sensitivity: float
    recovery_time_constant: float

    @classmethod
    def draw(cls, rng):
        return cls(
            baseline=float(rng.uniform(*BASELINE_RANGE)),
            sensitivity=float(rng.uniform(*SENSITIVITY_RANGE)),
            recovery_time_constant=float(rng.uniform(*RECOVERY_TIME_CONSTANT_RANGE)),
        )


class ArousalModel:
    """
    Heart-rate proxy that relaxes toward its baseline.

    Recovery is a relative exponential decay: every update closes
    ``dt / recovery_time_constant`` of the gap to the baseline. Noise is
    uniform in ``[-noise_amplitude, noise_amplitude]`` per second. The value
    is clamped to ``[AROUSAL_MIN, AROUSAL_MAX]`` after every update.
    """

    def __init__(self, state, rng):
        self.state = state
        self.rng = rng

    @property
    def value(self):
        return self.state.value

    def advance(self, dt):
        s = self.state
        s.value += (s.baseline - s.value) * (dt / s.recovery_time_constant)
        if s.noise_amplitude > 0:
            s.value += float(self.rng.uniform(-s.noise_amplitude, s.noise_amplitude)) * dt
        s.value = _clamp(s.value)

    def apply_stimulus(self, intensity):
        if not isinstance(intensity, Intensity):
            raise ValueError(f"unknown intensity: {intensity!r}")
        s = self.state
        s.value = _clamp(s.value + BASE_INCREASE[intensity] * s.sensitivity)

    def apply_profile(self, profile):
        self.state.baseline = profile.baseline
        self.state.sensitivity = profile.sensitivity
        self.state.recovery_time_constant = profile.recovery_time_constant

    def reset(self):
        self.state.value = _clamp(self.state.baseline)


def _clamp(value):
    return float(min(max(value, AROUSAL_MIN), AROUSAL_MAX))


@dataclass(frozen=True)
class TargetBand:
    min: float
    max: float

    @property
    def center(self):
        return (self.min + self.max) / 2

    @property
    def width(self):
        return self.max - self.min

    def contains(self, value):
        return self.min <= value <= self.max


def draw_target_band(rng, base_min, base_max, deviance, center_shift=0.0):
    """Randomise a band around ``[base_min, base_max]``; width stays at least 5."""
    band_min = base_min + float(rng.uniform(-deviance, deviance))
    band_max = base_max + float(rng.uniform(-deviance, deviance))
    band_max = max(min(band_max, AROUSAL_MAX), band_min + MIN_BAND_WIDTH)

    if center_shift > 0:
        width = band_max - band_min
        center = (band_min + band_max) / 2 + float(rng.uniform(-center_shift, center_shift))
        band_min = center - width / 2
        band_max = center + width / 2

    return TargetBand(band_min, band_max)
