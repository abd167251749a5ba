"""Per-episode evaluation metrics and the CSV sink they are written to.

One record per episode with, in order: agent index, episode index, ratio of
time spent in the target band, mean absolute deviation from the band center,
total events, events per minute, panic tick count, max heart rate, mean
recovery time and overreaction count.
"""

import csv
import io
import logging
import os
import threading
from collections import Counter
from dataclasses import astuple, dataclass
from pathlib import Path

from .arousal import Intensity
from .config import DEFAULT_PANIC_CEILING, METRICS_HEADER, OVERREACTION_DELTA

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodeSummary:
    agent_index: int
    episode: int
    time_in_range_ratio: float
    mean_deviation: float
    total_events: int
    events_per_minute: float
    panic_count: int
    max_arousal: float
    mean_recovery_time: float
    overreaction_count: int

    def as_row(self):
        return [_format(v) for v in astuple(self)]


def _format(value):
    # repr() is locale independent and always uses "." as decimal separator
    if isinstance(value, float):
        return repr(value)
    return str(value)


class EpisodeMetricsAggregator:
    """Accumulates one episode's decision ticks."""

    def __init__(self, overreaction_delta=OVERREACTION_DELTA):
        self.overreaction_delta = overreaction_delta
        self.begin_episode()

    def begin_episode(self, panic_threshold=DEFAULT_PANIC_CEILING):
        self.panic_threshold = panic_threshold
        self.episode_time = 0.0
        self.time_in_range = 0.0
        self.total_deviation = 0.0
        self.step_count = 0

        self.total_events = 0
        self.panic_count = 0
        self.max_arousal = 0.0

        self.time_outside_range = 0.0
        self.recovery_timer = 0.0
        self.recovery_times = []

        self.overreaction_count = 0
        self.last_arousal = 0.0
        self.last_step_was_high_intensity = False

        self.event_type_counts = Counter()

    def log_step(self, arousal, band_min, band_max, event_fired, event_type, intensity, dt):
        self.step_count += 1
        self.episode_time += dt
        self.max_arousal = max(self.max_arousal, arousal)

        center = (band_min + band_max) / 2
        self.total_deviation += abs(arousal - center)

        if band_min <= arousal <= band_max:
            self.time_in_range += dt
            # An excursion only counts once the subject is back in the band
            if self.recovery_timer > 0:
                self.recovery_times.append(self.recovery_timer)
                self.recovery_timer = 0.0
        else:
            self.time_outside_range += dt
            self.recovery_timer += dt

        if arousal > self.panic_threshold:
            self.panic_count += 1

        if event_fired:
            self.total_events += 1
            self.event_type_counts[event_type] += 1

            high = intensity == Intensity.HIGH
            if (
                self.last_step_was_high_intensity
                and high
                and arousal > self.last_arousal + self.overreaction_delta
            ):
                self.overreaction_count += 1
            self.last_step_was_high_intensity = high
        else:
            self.last_step_was_high_intensity = False

        self.last_arousal = arousal

    def summarize(self, agent_index=0, episode=0):
        time_in_range_ratio = self.time_in_range / self.episode_time if self.episode_time > 0 else 0.0
        mean_deviation = self.total_deviation / self.step_count if self.step_count > 0 else 0.0
        events_per_minute = self.total_events / (self.episode_time / 60.0) if self.episode_time > 0 else 0.0
        if self.recovery_times:
            mean_recovery_time = sum(self.recovery_times) / len(self.recovery_times)
        else:
            mean_recovery_time = 0.0

        return EpisodeSummary(
            agent_index=int(agent_index),
            episode=int(episode),
            time_in_range_ratio=float(time_in_range_ratio),
            mean_deviation=float(mean_deviation),
            total_events=self.total_events,
            events_per_minute=float(events_per_minute),
            panic_count=self.panic_count,
            max_arousal=float(self.max_arousal),
            mean_recovery_time=float(mean_recovery_time),
            overreaction_count=self.overreaction_count,
        )


class MetricsSink:
    """
    Append-only CSV file shared by any number of instances.

    The header goes in only when the file is new or empty. Each record is
    written as one complete line under a lock and flushed, so concurrent
    writers never interleave partial rows.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._file = open(self.path, "a", encoding="utf-8", newline="")
        if self._file.tell() == 0 and os.path.getsize(self.path) == 0:
            self._write_line(METRICS_HEADER)
            logger.info("Logging episode metrics to %s", self.path)

    def _write_line(self, fields):
        buf = io.StringIO()
        csv.writer(buf, lineterminator="\n").writerow(fields)
        self._file.write(buf.getvalue())
        self._file.flush()

    def write(self, summary):
        with self._lock:
            if self._file.closed:
                raise ValueError("metrics sink is closed")
            self._write_line(summary.as_row())

    def close(self):
        with self._lock:
            if not self._file.closed:
                self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
