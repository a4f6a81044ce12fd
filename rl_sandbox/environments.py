"""
Environments for the RL sandbox.

Two small state machines share the same surface: ``reset``, ``reset_to_home``
and ``step``. Each declares gymnasium action/observation spaces and an
``observation_scale`` the network agents divide states by.

- BalanceEnv: cart-pole balancing with Euler-integrated rigid-body dynamics
- GridEnv: grid-world maze with random obstacles, a goal, and a spawn point
"""

from enum import Enum
from typing import NamedTuple

import numpy as np
from gymnasium import spaces
from gymnasium.utils import seeding

from rl_sandbox import config


class EnvKind(Enum):
    """Environment variants selectable at session construction."""

    BALANCE = 'balance'
    GRID = 'grid'


class StepResult(NamedTuple):
    """Outcome of one environment step."""

    observation: np.ndarray
    reward: float
    done: bool


class BalanceEnv:
    """
    Cart-pole balancing task.

    State: [x, x_dot, theta, theta_dot]. Observations are normalized by
    dividing position by ``x_threshold``, angle by ``theta_threshold`` and both
    rates by ``rate_scale``, so agents see roughly unit-scale inputs.

    Physics attributes and ``params`` (reward shaping) may be changed at any
    time; the next ``step`` call uses the new values.
    """

    name = EnvKind.BALANCE.value

    def __init__(self, seed=None):
        """
        Initialize the balance environment.

        Args:
            seed (int, optional): Seed for the environment's random generator
        """
        self.gravity = config.BALANCE_GRAVITY
        self.mass_cart = config.BALANCE_MASS_CART
        self.mass_pole = config.BALANCE_MASS_POLE
        self.length = config.BALANCE_HALF_LENGTH
        self.force_mag = config.BALANCE_FORCE_MAG
        self.tau = config.BALANCE_TAU
        self.x_threshold = config.BALANCE_X_THRESHOLD
        self.theta_threshold = config.BALANCE_THETA_THRESHOLD
        self.rate_scale = config.BALANCE_RATE_SCALE
        self.random_start = config.BALANCE_RANDOM_START

        self.params = dict(config.BALANCE_REWARDS)

        self.action_space = spaces.Discrete(2)
        self.observation_space = spaces.Box(-np.inf, np.inf, shape=(4,), dtype=np.float32)
        self.observation_scale = np.ones(4, dtype=np.float32)

        self.np_random, _ = seeding.np_random(seed)
        self.state = np.zeros(4, dtype=np.float64)
        self.steps = 0
        self.reset()

    @staticmethod
    def get_metadata():
        """Reward parameters exposed to configuration builders."""
        return [
            {'id': 'survival', 'label': 'Survival Reward', 'default': 1.0},
            {'id': 'fall_penalty', 'label': 'Fall Penalty', 'default': -50.0},
            {'id': 'center_bias', 'label': 'Center Bias', 'min': 0.0, 'max': 2.0,
             'step': 0.1, 'default': 0.8},
            {'id': 'drift_penalty', 'label': 'Drift Penalty', 'min': 0.0, 'max': 1.0,
             'step': 0.01, 'default': 0.1},
        ]

    @staticmethod
    def get_config_schema():
        """Physics settings exposed to configuration builders."""
        return [
            {'id': 'gravity', 'label': 'Gravity', 'type': 'range', 'min': 1.0,
             'max': 20.0, 'step': 0.1, 'default': 9.8},
            {'id': 'length', 'label': 'Pole Length', 'type': 'range', 'min': 0.1,
             'max': 2.0, 'step': 0.1, 'default': 0.5},
            {'id': 'force_mag', 'label': 'Push Force', 'type': 'range', 'min': 1.0,
             'max': 30.0, 'step': 1.0, 'default': 10.0},
            {'id': 'random_start', 'label': 'Randomized Start', 'type': 'checkbox',
             'default': False},
        ]

    @property
    def total_mass(self):
        return self.mass_pole + self.mass_cart

    @property
    def pole_mass_length(self):
        return self.mass_pole * self.length

    @property
    def position(self):
        return float(self.state[0])

    @property
    def angle(self):
        return float(self.state[2])

    def get_normalized_state(self):
        """
        Scale the raw state to roughly unit range.

        Returns:
            np.ndarray: Normalized state, shape (4,)
        """
        x, x_dot, theta, theta_dot = self.state
        return np.array([
            x / self.x_threshold,
            x_dot / self.rate_scale,
            theta / self.theta_threshold,
            theta_dot / self.rate_scale,
        ], dtype=np.float32)

    def reset(self, randomize_start=None):
        """
        Draw a new start state from small zero-mean noise.

        Args:
            randomize_start (bool, optional): Spread the cart over the whole
                track instead of a narrow band near the center. Defaults to
                the ``random_start`` attribute.

        Returns:
            np.ndarray: Normalized start state
        """
        if randomize_start is None:
            randomize_start = self.random_start

        if randomize_start:
            x_start = self.np_random.uniform(-1.0, 1.0)
        else:
            x_start = self.np_random.uniform(-0.05, 0.05)

        self.state = np.array([
            x_start,
            self.np_random.uniform(-0.05, 0.05),
            self.np_random.uniform(-0.05, 0.05),
            self.np_random.uniform(-0.05, 0.05),
        ], dtype=np.float64)
        self.steps = 0
        return self.get_normalized_state()

    def reset_to_home(self):
        """Start near the center of the track."""
        return self.reset(randomize_start=False)

    def step(self, action):
        """
        Advance the simulation by one time step.

        Args:
            action (int): 0 pushes the cart left, 1 pushes it right

        Returns:
            StepResult: (observation, reward, done)
        """
        x, x_dot, theta, theta_dot = self.state
        force = self.force_mag if action == 1 else -self.force_mag
        cos_theta = np.cos(theta)
        sin_theta = np.sin(theta)

        total_mass = self.total_mass
        pole_mass_length = self.pole_mass_length

        temp = (force + pole_mass_length * theta_dot ** 2 * sin_theta) / total_mass
        theta_acc = (self.gravity * sin_theta - cos_theta * temp) / (
            self.length * (4.0 / 3.0 - self.mass_pole * cos_theta ** 2 / total_mass)
        )
        x_acc = temp - pole_mass_length * theta_acc * cos_theta / total_mass

        # Explicit Euler: positions use the pre-update rates
        x = x + self.tau * x_dot
        x_dot = x_dot + self.tau * x_acc
        theta = theta + self.tau * theta_dot
        theta_dot = theta_dot + self.tau * theta_acc

        self.state = np.array([x, x_dot, theta, theta_dot], dtype=np.float64)
        self.steps += 1

        done = bool(
            x < -self.x_threshold or x > self.x_threshold
            or theta < -self.theta_threshold or theta > self.theta_threshold
        )

        if done:
            reward = self.params['fall_penalty']
        else:
            dist_ratio = abs(x) / self.x_threshold
            reward = self.params['survival']
            reward -= self.params['center_bias'] * dist_ratio ** 2
            # Positive when the cart moves away from the center
            reward -= self.params['drift_penalty'] * x * x_dot

        return StepResult(self.get_normalized_state(), float(reward), done)


class GridEnv:
    """
    Grid-world maze.

    Cells of ``grid`` are 0 (free) or 1 (obstacle), indexed ``grid[y][x]``.
    Observations are the raw integer coordinates (agent_x, agent_y, goal_x,
    goal_y); scaling is left to the agent.

    Actions: 0 = up, 1 = down, 2 = left, 3 = right.
    """

    name = EnvKind.GRID.value

    MOVES = {0: (0, -1), 1: (0, 1), 2: (-1, 0), 3: (1, 0)}

    def __init__(self, rows=config.GRID_ROWS, cols=config.GRID_COLS,
                 obstacle_prob=config.GRID_OBSTACLE_PROB, seed=None):
        """
        Initialize the grid world and generate a first layout.

        Args:
            rows (int): Grid height
            cols (int): Grid width
            obstacle_prob (float): Independent chance of each cell being blocked
            seed (int, optional): Seed for the environment's random generator
        """
        if rows * cols < 2:
            raise ValueError(f"Grid needs at least 2 cells, got {rows}x{cols}")

        self.rows = rows
        self.cols = cols
        self.obstacle_prob = obstacle_prob
        self.params = dict(config.GRID_REWARDS)

        self.action_space = spaces.Discrete(len(self.MOVES))
        self.np_random, _ = seeding.np_random(seed)

        self.grid = None
        self.agent_pos = (0, 0)
        self.goal_pos = (0, 0)
        self.spawn_pos = (0, 0)
        self.randomize()

    @staticmethod
    def get_metadata():
        """Reward parameters exposed to configuration builders."""
        return [
            {'id': 'goal', 'label': 'Goal Reward', 'default': 100.0},
            {'id': 'survival', 'label': 'Survival Penalty', 'default': -1.0},
            {'id': 'damage', 'label': 'Wall Penalty', 'default': -10.0},
            {'id': 'progress', 'label': 'Progress Bonus', 'default': 0.1},
        ]

    @staticmethod
    def get_config_schema():
        """Layout controls exposed to configuration builders; ``size`` goes through ``resize``."""
        return [
            {'id': 'size', 'label': 'Grid size', 'type': 'range', 'min': 4,
             'max': 20, 'step': 1, 'default': 10},
            {'id': 'agent-spawn', 'label': 'Agent Spawn', 'type': 'dpad', 'target': 'agent'},
            {'id': 'goal-spawn', 'label': 'Goal Position', 'type': 'dpad', 'target': 'goal'},
        ]

    @property
    def observation_space(self):
        return spaces.Box(0, max(self.rows, self.cols) - 1, shape=(4,), dtype=np.int64)

    @property
    def observation_scale(self):
        return np.array([self.cols, self.rows, self.cols, self.rows], dtype=np.float32)

    def in_bounds(self, x, y):
        return 0 <= x < self.cols and 0 <= y < self.rows

    def is_free(self, x, y):
        """Check that (x, y) is inside the grid and not an obstacle."""
        return self.in_bounds(x, y) and self.grid[y, x] == 0

    def randomize(self):
        """
        Generate a new obstacle layout and place goal and spawn.

        The agent starts at the new spawn point.
        """
        while True:
            grid = (self.np_random.random((self.rows, self.cols)) < self.obstacle_prob)
            grid = grid.astype(np.int8)
            # Goal and spawn need two distinct free cells
            if np.count_nonzero(grid == 0) >= 2:
                break

        self.grid = grid
        self.goal_pos = None
        self.goal_pos = self._random_free_cell()
        self.spawn_pos = self._random_free_cell()
        self.agent_pos = self.spawn_pos

    def resize(self, size):
        """
        Switch to a square ``size`` x ``size`` grid with a new layout.

        Args:
            size (int): Cells per side

        Raises:
            ValueError: If the grid would have fewer than 2 cells
        """
        if size * size < 2:
            raise ValueError(f"Grid needs at least 2 cells, got {size}x{size}")
        self.rows = size
        self.cols = size
        self.randomize()

    def reset(self, go_to_home=False):
        """
        Place the agent for a new episode.

        Args:
            go_to_home (bool): Return to the last spawn point. Otherwise move to
                a new random free cell, which also becomes the new spawn.

        Returns:
            np.ndarray: Observation (agent_x, agent_y, goal_x, goal_y)
        """
        if go_to_home:
            self.agent_pos = self.spawn_pos
        else:
            self.agent_pos = self._random_free_cell()
            self.spawn_pos = self.agent_pos
        return self._observation()

    def reset_to_home(self):
        return self.reset(go_to_home=True)

    def step(self, action):
        """
        Attempt to move the agent one cell.

        Blocked moves (off the grid or into an obstacle) leave the agent in
        place and add the wall penalty. Moving closer to the goal earns the
        progress bonus; reaching it ends the episode with the goal reward.

        Args:
            action (int): 0 = up, 1 = down, 2 = left, 3 = right

        Returns:
            StepResult: (observation, reward, done)
        """
        reward = self.params['survival']
        x, y = self.agent_pos
        dx, dy = self.MOVES[action]
        nx, ny = x + dx, y + dy

        if self.is_free(nx, ny):
            self.agent_pos = (nx, ny)
        else:
            reward += self.params['damage']

        if self._goal_distance(self.agent_pos) < self._goal_distance((x, y)):
            reward += self.params['progress']

        done = self.agent_pos == self.goal_pos
        if done:
            reward += self.params['goal']

        return StepResult(self._observation(), float(reward), done)

    def nudge(self, target, dx, dy):
        """
        Move the spawn point or the goal by one cell during configuration.

        Args:
            target (str): 'agent' (spawn point) or 'goal'
            dx (int): Column offset
            dy (int): Row offset

        Returns:
            bool: False if the destination is off the grid, an obstacle, or
                the other marker's cell
        """
        if target == 'agent':
            (x, y), other = self.spawn_pos, self.goal_pos
        elif target == 'goal':
            (x, y), other = self.goal_pos, self.spawn_pos
        else:
            raise ValueError(f"Unknown nudge target: {target!r}")

        nx, ny = x + dx, y + dy
        if not self.is_free(nx, ny) or (nx, ny) == other:
            return False

        if target == 'agent':
            self.spawn_pos = (nx, ny)
            self.agent_pos = self.spawn_pos
        else:
            self.goal_pos = (nx, ny)
        return True

    def _goal_distance(self, pos):
        return abs(pos[0] - self.goal_pos[0]) + abs(pos[1] - self.goal_pos[1])

    def _random_free_cell(self):
        free = np.argwhere(self.grid == 0)
        if self.goal_pos is not None:
            gx, gy = self.goal_pos
            free = free[~((free[:, 0] == gy) & (free[:, 1] == gx))]
        y, x = free[self.np_random.integers(len(free))]
        return int(x), int(y)

    def _observation(self):
        return np.array([*self.agent_pos, *self.goal_pos], dtype=np.int64)


def create_env(kind, seed=None, **kwargs):
    """
    Create an environment by kind.

    Args:
        kind (EnvKind or str): Which environment to build
        seed (int, optional): Seed for the environment's random generator
        **kwargs: Extra constructor arguments (e.g. rows/cols for the grid)

    Returns:
        BalanceEnv or GridEnv: Initialized environment
    """
    kind = EnvKind(kind)
    if kind is EnvKind.BALANCE:
        return BalanceEnv(seed=seed, **kwargs)
    return GridEnv(seed=seed, **kwargs)
