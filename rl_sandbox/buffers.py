"""
Experience storage and advantage estimation.

- ReplayMemory: bounded FIFO of transitions for off-policy deep Q-learning
- RolloutBuffer: on-policy PPO rollout with per-step log-probs and values
- compute_gae / normalize_advantages: backward GAE recursion and whitening
"""

from collections import deque
from typing import NamedTuple

import numpy as np
import torch

from rl_sandbox import config


class Transition(NamedTuple):
    """One (state, action, reward, next_state, done) tuple."""

    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    done: bool


class ReplayMemory:
    """
    Bounded FIFO of transitions; the oldest entry is evicted on overflow.
    """

    def __init__(self, capacity=config.REPLAY_CAPACITY):
        self.capacity = capacity
        self.memory = deque(maxlen=capacity)

    def push(self, state, action, reward, next_state, done):
        self.memory.append(Transition(state, action, reward, next_state, done))

    def sample(self, batch_size):
        """
        Draw a batch uniformly at random without replacement.

        Args:
            batch_size (int): Number of transitions to draw

        Returns:
            list: Sampled transitions, or an empty list if memory holds fewer
                than ``batch_size`` entries
        """
        if len(self.memory) < batch_size:
            return []
        indices = np.random.choice(len(self.memory), batch_size, replace=False)
        return [self.memory[i] for i in indices]

    def clear(self):
        self.memory.clear()

    def __len__(self):
        return len(self.memory)


class RolloutBuffer:
    """
    Ordered on-policy rollout.

    Alongside each transition it keeps the log-probability of the chosen
    action and the critic's value estimate, both recorded when the action was
    selected. The owner clears it after every policy update.
    """

    def __init__(self):
        self.clear()

    def add(self, transition, log_prob, value):
        """
        Append one step.

        Args:
            transition (Transition): The environment step
            log_prob (float): Log-probability of the action at selection time
            value (float): Critic estimate for the state at selection time
        """
        self.states.append(transition.state)
        self.actions.append(transition.action)
        self.rewards.append(transition.reward)
        self.next_states.append(transition.next_state)
        self.dones.append(transition.done)
        self.log_probs.append(log_prob)
        self.values.append(value)

    def clear(self):
        self.states = []
        self.actions = []
        self.rewards = []
        self.next_states = []
        self.dones = []
        self.log_probs = []
        self.values = []

    def __len__(self):
        return len(self.states)


def compute_gae(rewards, values, dones, last_value, gamma, gae_lambda):
    """
    Generalized Advantage Estimation, computed backwards through a rollout.

    For each step t, from last to first:
        delta_t = r_t + γ * V_{t+1} * (1 - done_t) - V_t
        A_t = delta_t + γ * λ * (1 - done_t) * A_{t+1}
    where V_{t+1} is ``last_value`` for the final step.

    Args:
        rewards (list): Per-step rewards
        values (list): Critic estimates V_t
        dones (list): Per-step terminal flags
        last_value (float): Bootstrap value of the state after the final step
        gamma (float): Discount factor
        gae_lambda (float): GAE smoothing parameter

    Returns:
        tuple: (advantages, returns) as float32 tensors, returns = A_t + V_t
    """
    n = len(rewards)
    advantages = [0.0] * n
    gae = 0.0

    for i in reversed(range(n)):
        next_value = last_value if i == n - 1 else values[i + 1]
        not_terminal = 0.0 if dones[i] else 1.0
        delta = rewards[i] + gamma * next_value * not_terminal - values[i]
        gae = delta + gamma * gae_lambda * not_terminal * gae
        advantages[i] = gae

    advantages = torch.tensor(advantages, dtype=torch.float32)
    returns = advantages + torch.tensor(values, dtype=torch.float32)
    return advantages, returns


def normalize_advantages(advantages, eps=config.ADV_EPS):
    """
    Whiten advantages to zero mean and unit variance.

    Args:
        advantages (torch.Tensor): shape (n,)
        eps (float): Added to the variance before the square root

    Returns:
        torch.Tensor: Normalized advantages
    """
    centered = advantages - advantages.mean()
    std = torch.sqrt(torch.mean(centered ** 2) + eps)
    return centered / std
