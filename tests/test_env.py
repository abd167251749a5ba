"""Tests for the gymnasium environment of the learned director."""

import numpy as np
import pytest

from scare_pacing.arousal import Intensity
from scare_pacing.config import DirectorConfig
from scare_pacing.env import DirectorEnv
from scare_pacing.events import EventType
from scare_pacing.metrics import MetricsSink
from scare_pacing.observation import observation_size
from scare_pacing.policies import policy

WAIT = [len(EventType), 0]


@pytest.fixture
def quiet_env(quiet_config, near_registry, still_subject):
    env = DirectorEnv(quiet_config, registry=near_registry, subject=still_subject)
    yield env
    env.close()


def test_spaces():
    env = DirectorEnv()
    assert env.action_space.nvec.tolist() == [5, 3]
    assert env.observation_space.shape == (observation_size(4),) == (36,)


def test_validate_implementation():
    env = DirectorEnv()
    assert env.validate_implementation()
    env.close()


def test_reset_observation_layout(quiet_env):
    obs, info = quiet_env.reset(seed=0)
    assert obs.dtype == np.float32
    assert obs[0] == pytest.approx((75.0 - 40.0) / 180.0)
    assert obs[1] == pytest.approx((68.0 - 40.0) / 180.0)
    assert obs[2] == pytest.approx((85.0 - 40.0) / 180.0)
    # no event yet, no time elapsed
    assert obs[-4] == 0.0 and obs[-3] == 0.0 and obs[-1] == 0.0
    assert info["band"] == (68.0, 85.0)


def test_single_high_trigger_end_to_end(quiet_env):
    quiet_env.reset(seed=0)
    obs, reward, terminated, truncated, info = quiet_env.step([EventType.APPARITION, Intensity.HIGH])

    session = quiet_env.session
    assert quiet_env.history[0][0] == pytest.approx(95.0)
    assert info["stimulus_applied"]
    assert session.metrics.total_events == 1
    assert session.metrics.event_type_counts[EventType.APPARITION] == 1
    assert not terminated and not truncated
    assert obs[-4] == pytest.approx((int(EventType.APPARITION) + 1) / len(EventType))
    assert obs[-3] == pytest.approx(1.0)


def test_invalid_action_scores_only_penalty(quiet_env):
    quiet_env.reset(seed=0)
    _, reward, _, _, info = quiet_env.step([7, 1])
    assert reward == pytest.approx(-0.1)
    assert info["kind"] == "invalid"
    assert quiet_env.session.metrics.total_events == 0


def test_cooldown_from_episode_start(near_registry, still_subject):
    config = DirectorConfig(band_deviance=0.0, noise_amplitude=0.0, randomize_sites=False,
                            cooldown_floor=2.0)
    env = DirectorEnv(config, registry=near_registry, subject=still_subject)
    env.reset(seed=0)

    _, reward, _, _, info = env.step([EventType.LIGHT, Intensity.LOW])
    assert info["kind"] == "cooldown"
    assert reward == pytest.approx(0.05 - 0.2)
    assert env.history[0][0] == 75.0

    env.step(WAIT)
    _, _, _, _, info = env.step([EventType.LIGHT, Intensity.LOW])
    assert info["kind"] == "fire"


def test_time_limit_truncates_and_summarises_once(near_registry, still_subject, tmp_path):
    config = DirectorConfig(band_deviance=0.0, noise_amplitude=0.0, randomize_sites=False,
                            episode_seconds=5.0)
    path = tmp_path / "eval.csv"
    with MetricsSink(path) as sink:
        env = DirectorEnv(config, registry=near_registry, subject=still_subject, sink=sink)
        env.reset(seed=0)
        for i in range(5):
            _, _, terminated, truncated, info = env.step(WAIT)
            assert not terminated
            assert truncated == (i == 4)
        assert info["summary"].time_in_range_ratio == pytest.approx(1.0)

        # further steps after the end are inert
        _, reward, terminated, _, info = env.step(WAIT)
        assert reward == 0.0 and terminated
        assert "summary" not in info

    assert len(path.read_text(encoding="utf-8").splitlines()) == 2


def test_runaway_heart_rate_terminates(near_registry, still_subject):
    config = DirectorConfig(band_deviance=0.0, noise_amplitude=0.0, randomize_sites=False,
                            cooldown_floor=0.0)
    env = DirectorEnv(config, registry=near_registry, subject=still_subject)
    env.reset(seed=0)

    terminated = False
    steps = 0
    while not terminated and steps < 10:
        _, reward, terminated, truncated, info = env.step([EventType.SOUND, Intensity.HIGH])
        steps += 1
    assert terminated
    assert info["heart_rate"] > 115.0
    assert info["summary"].panic_count >= 1
    assert info["reward_terms"]["terminate"]


def test_same_seed_reproduces_episode():
    def rollout(seed):
        env = DirectorEnv()
        obs, info = env.reset(seed=seed)
        trace = [obs]
        positions = [s.position.copy() for s in env.session.registry]
        for _ in range(10):
            obs, *_ = env.step(policy(env))
            trace.append(obs)
        return info["band"], positions, np.stack(trace)

    band_a, pos_a, trace_a = rollout(21)
    band_b, pos_b, trace_b = rollout(21)
    assert band_a == band_b
    for a, b in zip(pos_a, pos_b):
        np.testing.assert_array_equal(a, b)
    np.testing.assert_array_equal(trace_a, trace_b)


def test_new_episode_redraws_sites():
    env = DirectorEnv()
    env.reset(seed=1)
    first = [s.position.copy() for s in env.session.registry]
    env.reset()
    second = [s.position.copy() for s in env.session.registry]
    assert any(not np.array_equal(a, b) for a, b in zip(first, second))
    assert env.session.episode_index == 1


def test_policy_waits_in_band(quiet_env):
    quiet_env.reset(seed=0)
    assert policy(quiet_env) == WAIT


def test_policy_scares_below_band(quiet_env):
    quiet_env.reset(seed=0)
    quiet_env.session.arousal.state.value = 60.0
    assert policy(quiet_env) == [int(EventType.LIGHT), int(Intensity.MEDIUM)]


def test_render_frame(quiet_env):
    quiet_env.reset(seed=0)
    quiet_env.step([EventType.LIGHT, Intensity.MEDIUM])
    frame = quiet_env.render()
    assert frame.shape == (400, 640, 3)
    assert frame.dtype == np.uint8
