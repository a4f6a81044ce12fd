"""
Episode runner and training session.

The runner drives one environment/agent pair through act → step → learn
cycles. The session repeats episodes, tracks progress, and persists the agent
at session boundaries. Both are coroutines: the only suspension points are
the per-step pacing pauses while visualizing, so a caller on the same event
loop can render between steps or call ``interrupt()``.

Interruption is cooperative. The flag is checked once per step and once per
episode, so an update that has started always completes.
"""

import asyncio
from enum import Enum
from typing import NamedTuple

import numpy as np
from tqdm import tqdm

from rl_sandbox import config
from rl_sandbox.agent import create_agent
from rl_sandbox.environments import create_env


class SessionState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    INTERRUPTED = 'interrupted'


class EpisodeResult(NamedTuple):
    """Summary of one episode."""

    total_reward: float
    steps: int
    done: bool
    interrupted: bool


class EpisodeStats:
    """
    Track statistics for episodes during training.

    Attributes:
        episode_rewards (list): Total reward per episode
        episode_lengths (list): Number of steps per episode
        current_episode_reward (float): Cumulative reward in current episode
        current_episode_length (int): Steps in current episode
    """

    def __init__(self):
        self.episode_rewards = []
        self.episode_lengths = []
        self.current_episode_reward = 0.0
        self.current_episode_length = 0

    def step(self, reward):
        """
        Update statistics for a single step.

        Args:
            reward (float): Reward received from environment
        """
        self.current_episode_reward += reward
        self.current_episode_length += 1

    def end_episode(self):
        """
        Record episode statistics and reset counters for next episode.

        Returns:
            tuple: (total_reward, episode_length)
        """
        self.episode_rewards.append(self.current_episode_reward)
        self.episode_lengths.append(self.current_episode_length)

        reward = self.current_episode_reward
        length = self.current_episode_length

        self.current_episode_reward = 0.0
        self.current_episode_length = 0

        return reward, length

    def get_recent_average(self, n=100):
        """
        Calculate average reward over last n episodes.

        Args:
            n (int): Number of recent episodes to average

        Returns:
            float: Average reward, or 0.0 if no episodes recorded
        """
        if len(self.episode_rewards) == 0:
            return 0.0
        return float(np.mean(self.episode_rewards[-n:]))


class EpisodeRunner:
    """
    Runs single episodes for one environment/agent pair.

    Args:
        env: Environment exposing reset/reset_to_home/step
        agent: Agent exposing select_action/learn
        speed (str): 'slow' or 'fast'; read every step, so it may change mid-episode
        on_step (callable, optional): Called with the environment after each
            visualized step, before the pacing pause

    Training episodes are recorded in ``stats`` and playback episodes in
    ``play_stats``.
    """

    def __init__(self, env, agent, speed=config.DEFAULT_SPEED, on_step=None):
        if agent.n_actions != env.action_space.n:
            raise ValueError(
                f"Agent has {agent.n_actions} actions but {env.name} expects {env.action_space.n}"
            )
        self.env = env
        self.agent = agent
        self.speed = speed
        self.on_step = on_step
        self.interrupted = False
        self.stats = EpisodeStats()
        self.play_stats = EpisodeStats()

    def interrupt(self):
        self.interrupted = True

    def pacing_interval(self, train=True):
        """Seconds to pause after each visualized step."""
        if train:
            return config.PACING[self.env.name][self.speed]
        return config.PLAY_TICK[self.env.name]

    async def run_episode(self, step_budget, visualize=False, train=True):
        """
        Run one episode.

        Training episodes start from a random state, sample actions and learn
        from every transition. Playback episodes (``train=False``) start from
        home and act greedily without learning.

        Args:
            step_budget (int): Maximum number of steps
            visualize (bool): Pause after every step so observers can render;
                without it the episode never suspends
            train (bool): Learn from transitions

        Returns:
            EpisodeResult: Totals for the episode
        """
        state = self.env.reset() if train else self.env.reset_to_home()
        stats = self.stats if train else self.play_stats
        done = False
        steps = 0

        while not done and not self.interrupted and steps < step_budget:
            action, policy_step = self.agent.select_action(state, deterministic=not train)
            next_state, reward, done = self.env.step(action)
            if train:
                self.agent.learn(state, action, reward, next_state, done, policy_step)

            stats.step(reward)
            state = next_state
            steps += 1

            if visualize:
                if self.on_step is not None:
                    self.on_step(self.env)
                await asyncio.sleep(self.pacing_interval(train))

        total_reward, _ = stats.end_episode()
        cut_short = not done and steps < step_budget
        return EpisodeResult(total_reward, steps, done, cut_short)


class TrainingSession:
    """
    Owns one environment and one agent for its lifetime.

    State machine: IDLE → RUNNING → IDLE, or → INTERRUPTED when ``interrupt()``
    is observed. Learning from finished episodes is never rolled back.

    Args:
        env: Environment instance
        agent: Agent instance matched to ``env``
        store (ModelStore, optional): Where the agent is saved after training
        model_name (str, optional): Store entry name, default "<env>-<agent>"
        speed (str): Visualization speed, 'slow' or 'fast'
        on_step (callable, optional): Render hook passed to the runner
        verbose (bool): Show a progress bar and periodic log lines
        log_interval (int): Episodes between log lines
    """

    def __init__(self, env, agent, store=None, model_name=None,
                 speed=config.DEFAULT_SPEED, on_step=None, verbose=True,
                 log_interval=config.LOG_INTERVAL):
        self.env = env
        self.agent = agent
        self.runner = EpisodeRunner(env, agent, speed=speed, on_step=on_step)
        self.store = store
        self.model_name = model_name or f"{env.name}-{agent.kind.value}"
        self.verbose = verbose
        self.log_interval = log_interval
        self.state = SessionState.IDLE

    @classmethod
    def create(cls, env_kind, agent_kind, seed=None, **kwargs):
        """
        Build a session from environment and agent kinds.

        Args:
            env_kind (EnvKind or str): Environment variant
            agent_kind (AgentKind or str): Agent variant
            seed (int, optional): Environment seed
            **kwargs: Passed to the constructor

        Returns:
            TrainingSession: New idle session
        """
        env = create_env(env_kind, seed=seed)
        agent = create_agent(agent_kind, env)
        return cls(env, agent, **kwargs)

    @property
    def stats(self):
        return self.runner.stats

    @property
    def speed(self):
        return self.runner.speed

    @speed.setter
    def speed(self, value):
        self.runner.speed = value

    def interrupt(self):
        """Ask the running loop to stop at the next step or episode boundary."""
        self.runner.interrupt()

    def restore(self):
        """
        Load the agent from the attached store.

        Returns:
            bool: False if there is no store or no saved entry
        """
        if self.store is None:
            return False
        return self.agent.load_model(self.store, self.model_name)

    def _begin(self):
        if self.state is SessionState.RUNNING:
            raise RuntimeError("Session is already running")
        self.runner.interrupted = False
        self.state = SessionState.RUNNING

    def _finish(self):
        if self.runner.interrupted:
            self.state = SessionState.INTERRUPTED
        else:
            self.state = SessionState.IDLE

    async def train(self, episodes, step_budget, visualize=False, fresh=True,
                    on_episode=None):
        """
        Train for a number of episodes.

        Args:
            episodes (int): Episodes to run
            step_budget (int): Step limit per episode
            visualize (bool): Pace each step for rendering
            fresh (bool): Cold-reset the agent first
            on_episode (callable, optional): Called as ``on_episode(index, result)``
                after each episode

        Returns:
            list: EpisodeResult per episode run
        """
        self._begin()
        if fresh:
            self.agent.reset()

        results = []
        pbar = tqdm(range(episodes), desc="Training", unit="ep", disable=not self.verbose)
        try:
            for episode in pbar:
                if self.runner.interrupted:
                    break

                result = await self.runner.run_episode(step_budget, visualize=visualize)
                results.append(result)

                postfix = {
                    'reward': f'{result.total_reward:.1f}',
                    'avg_50': f'{self.stats.get_recent_average(50):.1f}',
                }
                if 'epsilon' in self.agent.hypers:
                    postfix['eps'] = f"{self.agent.hypers['epsilon']:.3f}"
                pbar.set_postfix(postfix)

                if self.verbose and (episode + 1) % self.log_interval == 0:
                    recent = [r.total_reward for r in results[-self.log_interval:]]
                    print(f"\nEpisode {episode + 1}/{episodes} | "
                          f"Avg Reward ({len(recent)} ep): {np.mean(recent):.1f} | "
                          f"Steps: {result.steps}")

                if on_episode is not None:
                    on_episode(episode, result)
        finally:
            pbar.close()
            self._finish()

        if self.store is not None:
            self.agent.save_model(self.store, self.model_name)
        self.env.reset_to_home()
        return results

    async def play(self, episodes=1, step_budget=None, visualize=True):
        """
        Run the learned policy greedily from the home state, without learning.

        Args:
            episodes (int): Episodes to play
            step_budget (int, optional): Step limit, default from config
            visualize (bool): Pace each step at the environment's play tick

        Returns:
            list: EpisodeResult per episode played
        """
        if step_budget is None:
            step_budget = config.DEFAULT_STEPS[self.env.name]

        self._begin()
        results = []
        try:
            for _ in range(episodes):
                if self.runner.interrupted:
                    break
                result = await self.runner.run_episode(step_budget, visualize=visualize,
                                                       train=False)
                results.append(result)
        finally:
            self._finish()

        self.env.reset_to_home()
        return results
