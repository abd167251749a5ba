import os

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame

from .arousal import Intensity
from .config import AROUSAL_MAX, AROUSAL_MIN, DirectorConfig
from .directors import NO_EVENT, LearnedDirector
from .events import EventRegistry, EventType, box_contains
from .observation import ObservationEncoder
from .reward import RewardConfig, RewardModel
from .scheduler import TickScheduler
from .session import PacingSession

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")


class DirectorEnv(gym.Env):
    """
    A Gymnasium environment for learning to pace scare events.

    Every step is one decision tick: the agent picks an event type (or "no
    event") and an intensity, the tick is scored and logged, and the
    simulation runs one decision period forward. Episodes end on the timer
    (truncated) or when heart rate runs far past the panic ceiling
    (terminated).
    """
    metadata = {"render_modes": ["rgb_array"], "render_fps": 4}

    game_description = (
        "Keep a simulated player's heart rate inside a target band by choosing when, "
        "where and how hard to scare them, without pushing them into panic."
    )

    def __init__(self, config=None, render_mode="rgb_array", registry=None, subject=None,
                 oracle=box_contains, reward_config=None, agent_index=0, sink=None):
        super().__init__()
        self.config = config or DirectorConfig()
        self.render_mode = render_mode

        self.registry = registry if registry is not None else EventRegistry(oracle=oracle)
        self.subject = subject
        self.agent_index = agent_index
        self.sink = sink

        self.scheduler = TickScheduler.from_config(self.config)
        self.encoder = ObservationEncoder.from_config(self.config, self.registry)
        reward_config = reward_config or RewardConfig(hard_failure_margin=self.config.hard_failure_margin)
        self.director = LearnedDirector(
            cooldown_floor=self.config.cooldown_floor,
            reward_model=RewardModel(reward_config),
            encoder=self.encoder,
        )

        self.observation_space = self.encoder.space()
        self.action_space = MultiDiscrete([len(EventType) + 1, len(Intensity)])
        self.NO_EVENT = NO_EVENT

        self.WIDTH, self.HEIGHT = 640, 400
        self.COLOR_BG = (12, 10, 16)
        self.COLOR_BAND = (30, 70, 45)
        self.COLOR_PANIC = (200, 40, 40)
        self.COLOR_TRACE = (230, 230, 230)
        self.COLOR_TEXT = (200, 200, 200)
        self.COLOR_INTENSITY = {
            Intensity.LOW: (240, 220, 60),
            Intensity.MEDIUM: (255, 150, 0),
            Intensity.HIGH: (255, 50, 50),
        }
        self.screen = None
        self.font = None

        self.session = None
        self.history = []
        self.steps = 0
        self.game_over = False

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        if self.session is None:
            self.session = PacingSession(
                self.config,
                rng=self.np_random,
                registry=self.registry,
                subject=self.subject,
                agent_index=self.agent_index,
                sink=self.sink,
            )
            self.subject = self.session.subject
        else:
            self.session.reseed(self.np_random)

        self.session.begin_episode()
        self.director.reset(self.session)

        self.steps = 0
        self.game_over = False
        self.history = []

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.game_over:
            return self._get_observation(), 0.0, True, False, self._get_info()

        session = self.session
        outcome = None

        def act(s):
            nonlocal outcome
            outcome = self.director.decide(s, action)

        terminated = self.scheduler.decision_tick(session, act)
        self.steps += 1
        self.history.append((
            session.heart_rate,
            session.memory.last_intensity if outcome.fired else None,
        ))

        truncated = False
        if not terminated:
            truncated = self.scheduler.advance(session)

        summary = None
        if terminated or truncated:
            self.game_over = True
            summary = session.finalize_episode()

        info = self._get_info()
        info["kind"] = outcome.kind
        info["event_fired"] = outcome.fired
        info["stimulus_applied"] = outcome.stimulus_applied
        info["reward_terms"] = outcome.breakdown.to_dict()
        if summary is not None:
            info["summary"] = summary

        return (
            self._get_observation(),
            float(outcome.breakdown.total),
            bool(terminated),
            bool(truncated),
            info,
        )

    def _get_observation(self):
        return self.encoder.encode(self.session)

    def _get_info(self):
        s = self.session
        return {
            "steps": self.steps,
            "episode": s.episode_index,
            "heart_rate": s.heart_rate,
            "band": (s.band.min, s.band.max),
            "elapsed": s.elapsed,
            "episode_reward": self.director.episode_reward,
        }

    def render(self):
        if self.screen is None:
            pygame.init()
            pygame.font.init()
            self.screen = pygame.Surface((self.WIDTH, self.HEIGHT))
            self.font = pygame.font.Font(None, 20)

        self.screen.fill(self.COLOR_BG)
        self._render_chart()
        self._render_ui()

        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _hr_to_y(self, hr):
        top, bottom = 40, self.HEIGHT - 20
        ratio = (hr - AROUSAL_MIN) / (AROUSAL_MAX - AROUSAL_MIN)
        return int(bottom - ratio * (bottom - top))

    def _render_chart(self):
        s = self.session
        if s is None:
            return
        left, right = 20, self.WIDTH - 20

        band_top, band_bottom = self._hr_to_y(s.band.max), self._hr_to_y(s.band.min)
        pygame.draw.rect(self.screen, self.COLOR_BAND, (left, band_top, right - left, band_bottom - band_top))

        panic_y = self._hr_to_y(self.config.panic_ceiling)
        pygame.draw.line(self.screen, self.COLOR_PANIC, (left, panic_y), (right, panic_y), 1)

        max_ticks = max(1, int(round(self.config.episode_seconds / self.config.decision_period)))
        x_step = (right - left) / max_ticks
        points = []
        for i, (hr, intensity) in enumerate(self.history):
            x = int(left + i * x_step)
            points.append((x, self._hr_to_y(hr)))
            if intensity is not None:
                pygame.draw.line(self.screen, self.COLOR_INTENSITY[intensity], (x, 40), (x, self.HEIGHT - 20), 1)
        if len(points) > 1:
            pygame.draw.lines(self.screen, self.COLOR_TRACE, False, points, 2)

    def _render_ui(self):
        s = self.session
        if s is None:
            return
        hr_text = self.font.render(f"HR: {round(s.heart_rate)}", True, self.COLOR_TEXT)
        self.screen.blit(hr_text, (20, 10))

        band_text = self.font.render(f"Target: [{round(s.band.min)}, {round(s.band.max)}]", True, self.COLOR_TEXT)
        self.screen.blit(band_text, (140, 10))

        m = s.memory
        if m.last_event_type is not None:
            last = f"Last: {m.last_event_type.name} / {m.last_intensity.name}"
        else:
            last = "Last: none"
        last_text = self.font.render(last, True, self.COLOR_TEXT)
        self.screen.blit(last_text, (self.WIDTH - last_text.get_width() - 20, 10))

    def close(self):
        if self.screen is not None:
            pygame.quit()
            self.screen = None

    def validate_implementation(self):
        """Checks the spaces and the reset/step contract on a throwaway episode."""
        assert self.action_space.shape == (2,)
        assert self.action_space.nvec.tolist() == [len(EventType) + 1, len(Intensity)]

        obs, info = self.reset(seed=0)
        assert obs.shape == self.observation_space.shape
        assert obs.dtype == np.float32
        assert isinstance(info, dict)

        obs, reward, term, trunc, info = self.step(self.action_space.sample())
        assert obs.shape == self.observation_space.shape
        assert isinstance(reward, float)
        assert isinstance(term, bool)
        assert isinstance(trunc, bool)
        assert isinstance(info, dict)

        frame = self.render()
        assert frame.shape == (self.HEIGHT, self.WIDTH, 3)
        return True


if __name__ == "__main__":
    from .policies import policy

    env = DirectorEnv()
    obs, info = env.reset(seed=0)

    pygame.init()
    pygame.display.set_caption("Scare Director")
    window = None
    clock = pygame.time.Clock()

    total_reward = 0.0
    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

        obs, reward, terminated, truncated, info = env.step(policy(env))
        total_reward += reward
        print(
            f"Step: {info['steps']}, HR: {info['heart_rate']:.1f}, Band: "
            f"[{info['band'][0]:.1f}, {info['band'][1]:.1f}], Reward: {reward:.3f}"
        )

        frame = env.render()
        if window is None:
            window = pygame.display.set_mode((env.WIDTH, env.HEIGHT))
        surf = pygame.surfarray.make_surface(np.transpose(frame, (1, 0, 2)))
        window.blit(surf, (0, 0))
        pygame.display.flip()

        if terminated or truncated:
            summary = info["summary"]
            print("=" * 20)
            print(f"Episode {summary.episode}: {summary.time_in_range_ratio:.0%} in range, "
                  f"{summary.total_events} events, total reward {total_reward:.2f}")
            print("=" * 20)
            obs, info = env.reset()
            total_reward = 0.0

        clock.tick(env.metadata["render_fps"])

    env.close()
