"""Tests for the per-episode metrics aggregator and CSV sink."""

import threading

import pytest

from scare_pacing.arousal import Intensity
from scare_pacing.config import METRICS_HEADER
from scare_pacing.events import EventType
from scare_pacing.metrics import EpisodeMetricsAggregator, EpisodeSummary, MetricsSink

BAND_MIN, BAND_MAX = 68.0, 85.0


def log(agg, arousal, fired=False, event_type=None, intensity=None, dt=1.0):
    agg.log_step(arousal, BAND_MIN, BAND_MAX, fired, event_type, intensity, dt)


@pytest.fixture
def half_in_band():
    """Ten 1 s ticks: in band for 1-5, out of band for 6-10, one event at tick 7."""
    agg = EpisodeMetricsAggregator()
    agg.begin_episode(panic_threshold=105.0)
    for tick in range(1, 11):
        if tick <= 5:
            log(agg, 75.0)
        elif tick == 7:
            log(agg, 90.0, True, EventType.SOUND, Intensity.MEDIUM)
        else:
            log(agg, 90.0)
    return agg


class TestTenTickEpisode:
    def test_time_in_range_ratio(self, half_in_band):
        assert half_in_band.summarize().time_in_range_ratio == pytest.approx(0.5)

    def test_events(self, half_in_band):
        summary = half_in_band.summarize()
        assert summary.total_events == 1
        assert summary.events_per_minute == pytest.approx(1 / (10 / 60))
        assert half_in_band.event_type_counts[EventType.SOUND] == 1

    def test_mean_deviation(self, half_in_band):
        # 5 * |75 - 76.5| + 5 * |90 - 76.5| over 10 ticks
        assert half_in_band.summarize().mean_deviation == pytest.approx(7.5)

    def test_open_excursion_not_flushed(self, half_in_band):
        assert half_in_band.recovery_timer == pytest.approx(5.0)
        assert half_in_band.recovery_times == []
        assert half_in_band.summarize().mean_recovery_time == 0.0

    def test_excursion_flushed_on_reentry(self, half_in_band):
        log(half_in_band, 80.0)
        assert half_in_band.recovery_times == [pytest.approx(5.0)]
        assert half_in_band.summarize().mean_recovery_time == pytest.approx(5.0)

    def test_max_and_panic(self, half_in_band):
        summary = half_in_band.summarize()
        assert summary.max_arousal == 90.0
        assert summary.panic_count == 0


def test_mean_recovery_over_several_excursions():
    agg = EpisodeMetricsAggregator()
    for arousal in (60.0, 60.0, 75.0, 95.0, 95.0, 95.0, 95.0, 75.0):
        log(agg, arousal)
    assert agg.recovery_times == [2.0, 4.0]
    assert agg.summarize().mean_recovery_time == pytest.approx(3.0)


def test_panic_counts_ticks_above_threshold():
    agg = EpisodeMetricsAggregator()
    agg.begin_episode(panic_threshold=105.0)
    for arousal in (104.0, 105.0, 106.0, 130.0):
        log(agg, arousal)
    assert agg.summarize().panic_count == 2


class TestOverreaction:
    def test_consecutive_high_with_rise(self):
        agg = EpisodeMetricsAggregator()
        log(agg, 90.0, True, EventType.LIGHT, Intensity.HIGH)
        log(agg, 100.0, True, EventType.LIGHT, Intensity.HIGH)
        assert agg.summarize().overreaction_count == 1

    def test_small_rise_is_not_overreaction(self):
        agg = EpisodeMetricsAggregator()
        log(agg, 90.0, True, EventType.LIGHT, Intensity.HIGH)
        log(agg, 92.0, True, EventType.LIGHT, Intensity.HIGH)
        assert agg.summarize().overreaction_count == 0

    def test_quiet_tick_breaks_the_chain(self):
        agg = EpisodeMetricsAggregator()
        log(agg, 90.0, True, EventType.LIGHT, Intensity.HIGH)
        log(agg, 88.0)
        log(agg, 100.0, True, EventType.LIGHT, Intensity.HIGH)
        assert agg.summarize().overreaction_count == 0

    def test_medium_does_not_count(self):
        agg = EpisodeMetricsAggregator()
        log(agg, 90.0, True, EventType.LIGHT, Intensity.HIGH)
        log(agg, 100.0, True, EventType.LIGHT, Intensity.MEDIUM)
        assert agg.summarize().overreaction_count == 0


def test_empty_episode_is_all_zero():
    summary = EpisodeMetricsAggregator().summarize(agent_index=2, episode=7)
    assert summary == EpisodeSummary(2, 7, 0.0, 0.0, 0, 0.0, 0, 0.0, 0.0, 0)


def test_begin_episode_clears_state(half_in_band):
    half_in_band.begin_episode()
    assert half_in_band.step_count == 0
    assert half_in_band.recovery_timer == 0.0
    assert not half_in_band.event_type_counts


class TestSink:
    def test_header_then_rows(self, tmp_path, half_in_band):
        path = tmp_path / "eval.csv"
        with MetricsSink(path) as sink:
            sink.write(half_in_band.summarize(agent_index=0, episode=0))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == ",".join(METRICS_HEADER)
        assert lines[1] == "0,0,0.5,7.5,1,6.0,0,90.0,0.0,0"

    def test_reopen_appends_without_second_header(self, tmp_path, half_in_band):
        path = tmp_path / "eval.csv"
        for episode in range(2):
            with MetricsSink(path) as sink:
                sink.write(half_in_band.summarize(episode=episode))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert sum(1 for line in lines if line.startswith("AgentIndex")) == 1

    def test_concurrent_writers_never_interleave(self, tmp_path, half_in_band):
        path = tmp_path / "eval.csv"
        sink = MetricsSink(path)

        def write_many(agent):
            for episode in range(50):
                sink.write(half_in_band.summarize(agent_index=agent, episode=episode))

        threads = [threading.Thread(target=write_many, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        sink.close()

        rows = path.read_text(encoding="utf-8").splitlines()[1:]
        assert len(rows) == 400
        assert all(len(row.split(",")) == len(METRICS_HEADER) for row in rows)

    def test_write_after_close_fails(self, tmp_path, half_in_band):
        sink = MetricsSink(tmp_path / "eval.csv")
        sink.close()
        with pytest.raises(ValueError):
            sink.write(half_in_band.summarize())
