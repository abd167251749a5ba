"""Configuration constants and the per-instance director configuration."""

from dataclasses import dataclass

# Heart-rate domain, in beats per minute
AROUSAL_MIN = 40.0
AROUSAL_MAX = 220.0

# Subject defaults
DEFAULT_BASELINE = 75.0
DEFAULT_SENSITIVITY = 1.0
DEFAULT_RECOVERY_TIME_CONSTANT = 13.0  # seconds
DEFAULT_NOISE_AMPLITUDE = 1.0

# Ranges used when a fresh subject profile is drawn each episode
BASELINE_RANGE = (60.0, 90.0)
SENSITIVITY_RANGE = (0.5, 1.5)
RECOVERY_TIME_CONSTANT_RANGE = (8.0, 18.0)

# Target band and panic ceiling
DEFAULT_TARGET_MIN = 68.0
DEFAULT_TARGET_MAX = 85.0
DEFAULT_PANIC_CEILING = 105.0
MIN_BAND_WIDTH = 5.0
HARD_FAILURE_MARGIN = 10.0
# Extra whole-band shift the threshold heuristic draws each episode
HEURISTIC_CENTER_SHIFT = 10.0

# Time
DEFAULT_SIM_DT = 0.1
DEFAULT_DECISION_PERIOD = 1.0
DEFAULT_EPISODE_SECONDS = 60.0
DEFAULT_COOLDOWN_FLOOR = 3.0

# Event sites
DEFAULT_SITE_COUNT = 4
DEFAULT_SPAWN_VOLUME_MIN = (-20.0, 0.0, -20.0)
DEFAULT_SPAWN_VOLUME_MAX = (20.0, 3.0, 20.0)

# Metrics
OVERREACTION_DELTA = 2.0

METRICS_HEADER = (
    "AgentIndex",
    "Episode",
    "TimeInRangeRatio",
    "MeanDeviation",
    "TotalEvents",
    "EventsPerMinute",
    "PanicCount",
    "MaxHR",
    "MeanRecoveryTime",
    "OverreactionCount",
)


class ConfigurationError(ValueError):
    """Raised when a director cannot be set up with the given settings."""


@dataclass
class DirectorConfig:
    """Settings for one simulated subject instance.

    ``band_deviance`` moves the band edges independently, ``band_center_shift``
    moves the whole band; both are drawn once per episode.
    """

    target_min: float = DEFAULT_TARGET_MIN
    target_max: float = DEFAULT_TARGET_MAX
    band_deviance: float = 5.0
    band_center_shift: float = 0.0
    panic_ceiling: float = DEFAULT_PANIC_CEILING
    hard_failure_margin: float = HARD_FAILURE_MARGIN

    baseline: float = DEFAULT_BASELINE
    sensitivity: float = DEFAULT_SENSITIVITY
    recovery_time_constant: float = DEFAULT_RECOVERY_TIME_CONSTANT
    noise_amplitude: float = DEFAULT_NOISE_AMPLITUDE
    randomize_subject: bool = False

    sim_dt: float = DEFAULT_SIM_DT
    decision_period: float = DEFAULT_DECISION_PERIOD
    episode_seconds: float = DEFAULT_EPISODE_SECONDS
    cooldown_floor: float = DEFAULT_COOLDOWN_FLOOR

    randomize_sites: bool = True
    site_count: int = DEFAULT_SITE_COUNT
    spawn_volume_min: tuple = DEFAULT_SPAWN_VOLUME_MIN
    spawn_volume_max: tuple = DEFAULT_SPAWN_VOLUME_MAX

    def __post_init__(self):
        self.validate()

    @property
    def worst_case_center(self):
        return self.worst_case_center_for(self.band_center_shift)

    def worst_case_center_for(self, center_shift):
        return (self.target_min + self.target_max) / 2 + self.band_deviance + center_shift

    def check_center_shift(self, center_shift):
        """Raise unless a band shifted by up to ``center_shift`` stays below the panic ceiling."""
        if center_shift < 0:
            raise ConfigurationError("band center shift must be non-negative")
        # Reward normalisation divides by (panic - center)
        if self.panic_ceiling <= self.worst_case_center_for(center_shift):
            raise ConfigurationError(
                f"panic ceiling {self.panic_ceiling} is not above the band center "
                f"(up to {self.worst_case_center_for(center_shift):.1f} after randomisation)"
            )

    def validate(self):
        if self.target_max < self.target_min + MIN_BAND_WIDTH:
            raise ConfigurationError(
                f"target band [{self.target_min}, {self.target_max}] is narrower than {MIN_BAND_WIDTH}"
            )
        if self.band_deviance < 0 or self.band_center_shift < 0:
            raise ConfigurationError("band offsets must be non-negative")
        self.check_center_shift(self.band_center_shift)
        if self.sim_dt <= 0 or self.decision_period <= 0 or self.episode_seconds <= 0:
            raise ConfigurationError("sim_dt, decision_period and episode_seconds must be positive")
        if self.cooldown_floor < 0:
            raise ConfigurationError("cooldown_floor must be non-negative")
        if self.randomize_sites and self.site_count <= 0:
            raise ConfigurationError("site_count must be positive when sites are randomised")
        if len(self.spawn_volume_min) != 3 or len(self.spawn_volume_max) != 3:
            raise ConfigurationError("spawn volume corners must be 3-vectors")
        if any(lo > hi for lo, hi in zip(self.spawn_volume_min, self.spawn_volume_max)):
            raise ConfigurationError("spawn_volume_min must not exceed spawn_volume_max")
