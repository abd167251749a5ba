"""Scare-event pacing: keep a simulated heart rate inside a target band."""

from .arousal import ArousalModel, ArousalState, Intensity, SubjectProfile, TargetBand, draw_target_band
from .config import ConfigurationError, DirectorConfig
from .directors import (
    LearnedDirector,
    PacingController,
    ScriptedCue,
    ScriptedDirector,
    ThresholdDirector,
    run_evaluation,
)
from .env import DirectorEnv
from .events import EventRegistry, EventSite, EventType, SiteTemplate, box_contains
from .metrics import EpisodeMetricsAggregator, EpisodeSummary, MetricsSink
from .reward import RewardBreakdown, RewardConfig, RewardModel
from .scheduler import TickScheduler
from .session import DecisionMemory, PacingSession

__all__ = [
    "ArousalModel",
    "ArousalState",
    "ConfigurationError",
    "DecisionMemory",
    "DirectorConfig",
    "DirectorEnv",
    "EpisodeMetricsAggregator",
    "EpisodeSummary",
    "EventRegistry",
    "EventSite",
    "EventType",
    "Intensity",
    "LearnedDirector",
    "MetricsSink",
    "PacingController",
    "PacingSession",
    "RewardBreakdown",
    "RewardConfig",
    "RewardModel",
    "ScriptedCue",
    "ScriptedDirector",
    "SiteTemplate",
    "SubjectProfile",
    "TargetBand",
    "ThresholdDirector",
    "TickScheduler",
    "box_contains",
    "draw_target_band",
    "run_evaluation",
]
