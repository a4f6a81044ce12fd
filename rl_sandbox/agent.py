"""
Learning agents for the RL sandbox.

Implements three agents behind one surface (``select_action``/``act``,
``learn``, ``reset``, plus ``hypers`` and model-store persistence):
- TabularQAgent: epsilon-greedy tabular Q-learning
- ValueNetworkAgent: Double-DQN with replay memory and a hard-synced target network
- ActorCriticAgent: PPO with GAE, clipped surrogate objective and entropy bonus

``hypers`` may be edited between calls; changes apply from the next call on,
including learning rates, which are re-applied to the optimizers at every update.
"""

import math
from enum import Enum
from typing import NamedTuple

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim

from rl_sandbox import config
from rl_sandbox.buffers import (ReplayMemory, RolloutBuffer, Transition,
                                compute_gae, normalize_advantages)
from rl_sandbox.environments import EnvKind
from rl_sandbox.models import ActorNetwork, CriticNetwork, QNetwork


class AgentKind(Enum):
    """Agent variants selectable at session construction."""

    TABULAR_Q = 'tabular'
    VALUE_NETWORK = 'dqn'
    ACTOR_CRITIC = 'ppo'


class PolicyStep(NamedTuple):
    """
    What the actor-critic agent recorded when it chose an action.

    Returned by ``select_action`` and passed back into the paired ``learn`` call.
    """

    log_prob: float
    value: float


def set_learning_rate(optimizer, lr):
    """Apply ``lr`` to every parameter group of ``optimizer``."""
    for group in optimizer.param_groups:
        group['lr'] = lr


class Agent:
    """
    Shared plumbing for all agents.

    Args:
        n_actions (int): Size of the discrete action space
        observation_scale (array-like, optional): Per-dimension divisor applied
            to states before they reach a network
    """

    kind = None

    def __init__(self, n_actions, observation_scale=None):
        self.n_actions = n_actions
        if observation_scale is None:
            observation_scale = np.ones(4, dtype=np.float32)
        self.observation_scale = np.asarray(observation_scale, dtype=np.float32)

    def select_action(self, state, deterministic=False):
        """
        Choose an action for ``state``.

        Returns:
            tuple: (action, step) where ``step`` is whatever the agent needs
                back in the paired ``learn`` call (None if nothing)
        """
        raise NotImplementedError

    def act(self, state, deterministic=False):
        """Choose an action, discarding any learning hand-off data."""
        action, _ = self.select_action(state, deterministic)
        return action

    def learn(self, state, action, reward, next_state, done, step=None):
        raise NotImplementedError

    def reset(self):
        raise NotImplementedError

    def state_dict(self):
        raise NotImplementedError

    def load_state_dict(self, state):
        raise NotImplementedError

    def save_model(self, store, name):
        """Write the agent's learned state to a model store under ``name``."""
        store.save(name, self.state_dict())

    def load_model(self, store, name):
        """
        Restore learned state from a model store.

        Returns:
            bool: False if the store has no entry called ``name``; the
                agent is left untouched in that case
        """
        state = store.load(name)
        if state is None:
            return False
        self.load_state_dict(state)
        return True

    def _to_tensor(self, state):
        scaled = np.asarray(state, dtype=np.float32) / self.observation_scale
        return torch.as_tensor(scaled, dtype=torch.float32)


class TabularQAgent(Agent):
    """
    Off-policy tabular temporal-difference control.

    The Q-table maps a state key (coordinates joined with commas) to a list of
    per-action values, created as zeros the first time a key is seen.
    Epsilon stays fixed.
    """

    kind = AgentKind.TABULAR_Q

    def __init__(self, n_actions=4, observation_scale=None):
        super(TabularQAgent, self).__init__(n_actions, observation_scale)
        self.hypers = dict(config.TABULAR_HYPERS)
        self.q_table = {}

    @staticmethod
    def get_metadata():
        return [
            {'id': 'epsilon', 'label': 'Curiosity (ε)', 'min': 0.0, 'max': 1.0,
             'step': 0.01, 'default': 0.1},
            {'id': 'alpha', 'label': 'Learning Rate (α)', 'min': 0.01, 'max': 1.0,
             'step': 0.01, 'default': 0.1},
            {'id': 'gamma', 'label': 'Future Bias (γ)', 'min': 0.0, 'max': 1.0,
             'step': 0.01, 'default': 0.9},
        ]

    @staticmethod
    def state_key(state):
        return ",".join(str(v) for v in np.asarray(state).tolist())

    def get_q(self, state):
        """Per-action values for ``state``, created lazily as zeros."""
        key = self.state_key(state)
        if key not in self.q_table:
            self.q_table[key] = [0.0] * self.n_actions
        return self.q_table[key]

    def select_action(self, state, deterministic=False):
        if not deterministic and np.random.random() < self.hypers['epsilon']:
            return int(np.random.randint(self.n_actions)), None
        # np.argmax breaks ties by first index
        return int(np.argmax(self.get_q(state))), None

    def learn(self, state, action, reward, next_state, done, step=None):
        """
        One-step Q-learning update of Q(state, action).

        Target is ``reward`` at a terminal step, otherwise
        ``reward + gamma * max_a' Q(next_state, a')``.
        """
        qs = self.get_q(state)
        next_max = 0.0 if done else max(self.get_q(next_state))
        target = reward + self.hypers['gamma'] * next_max
        qs[action] += self.hypers['alpha'] * (target - qs[action])

    def reset(self):
        self.q_table = {}

    def state_dict(self):
        return {'q_table': {k: list(v) for k, v in self.q_table.items()}}

    def load_state_dict(self, state):
        self.q_table = {k: [float(q) for q in v] for k, v in state['q_table'].items()}


class ValueNetworkAgent(Agent):
    """
    Deep Q-learning agent with experience replay.

    - Online and target Q-networks; the target is hard-copied from the online
      network every ``target_update_freq`` learn calls
    - Double-DQN targets: the online network picks the next action, the
      target network values it
    - Huber (smooth L1) regression loss, one gradient step per learn call
    - Multiplicative epsilon decay down to ``epsilon_min``
    """

    kind = AgentKind.VALUE_NETWORK

    def __init__(self, n_actions, observation_scale=None,
                 capacity=config.REPLAY_CAPACITY):
        super(ValueNetworkAgent, self).__init__(n_actions, observation_scale)
        self.hypers = dict(config.DQN_HYPERS)
        self.memory = ReplayMemory(capacity)
        self.is_training = False
        self.learn_step_count = 0
        self.loss_fn = nn.SmoothL1Loss()
        self._build_networks()

    @staticmethod
    def get_metadata():
        return [
            {'id': 'epsilon', 'label': 'Curiosity (ε)', 'min': 0.0, 'max': 1.0,
             'step': 0.01, 'default': 1.0},
            {'id': 'alpha', 'label': 'Learning Rate (α)', 'min': 0.0001, 'max': 0.01,
             'step': 0.0001, 'default': 0.001},
            {'id': 'gamma', 'label': 'Future Bias (γ)', 'min': 0.0, 'max': 1.0,
             'step': 0.01, 'default': 0.95},
            {'id': 'epsilon_decay', 'label': 'Curiosity Decay', 'min': 0.9, 'max': 1.0,
             'step': 0.001, 'default': 0.995},
        ]

    def _build_networks(self):
        self.model = QNetwork(self.n_actions)
        self.target_model = QNetwork(self.n_actions)
        self.update_target_model()
        self.optimizer = optim.Adam(self.model.parameters(), lr=self.hypers['alpha'])

    def update_target_model(self):
        """Hard-copy the online network's weights into the target network."""
        self.target_model.load_state_dict(self.model.state_dict())

    def select_action(self, state, deterministic=False):
        if not deterministic and np.random.random() < self.hypers['epsilon']:
            return int(np.random.randint(self.n_actions)), None
        with torch.no_grad():
            q_values = self.model(self._to_tensor(state))
        return int(torch.argmax(q_values).item()), None

    def learn(self, state, action, reward, next_state, done, step=None):
        """
        Store a transition, sync the target on schedule, replay, decay epsilon.

        Returns:
            float or None: Loss of the gradient step, if one was taken
        """
        self.memory.push(state, action, reward, next_state, done)

        self.learn_step_count += 1
        # Values below 1 sync every call
        sync_every = max(1, int(self.hypers['target_update_freq']))
        if self.learn_step_count % sync_every == 0:
            self.update_target_model()

        loss = None
        if len(self.memory) > int(self.hypers['batch_size']) and not self.is_training:
            self.is_training = True
            try:
                loss = self.replay()
            finally:
                self.is_training = False

        if self.hypers['epsilon'] > self.hypers['epsilon_min']:
            self.hypers['epsilon'] *= self.hypers['epsilon_decay']

        return loss

    def compute_targets(self, batch):
        """
        Build Double-DQN regression targets for a batch.

        Non-taken actions keep the online network's current prediction, so
        only the taken action contributes to the loss.

        Args:
            batch (list): Transitions

        Returns:
            tuple: (states, targets) tensors, shapes (batch, 4) and (batch, n_actions)
        """
        states = self._to_tensor(np.stack([t.state for t in batch]))
        next_states = self._to_tensor(np.stack([t.next_state for t in batch]))
        actions = torch.tensor([t.action for t in batch], dtype=torch.long)
        rewards = torch.tensor([t.reward for t in batch], dtype=torch.float32)
        dones = torch.tensor([t.done for t in batch], dtype=torch.bool)

        with torch.no_grad():
            targets = self.model(states).clone()
            best_next = self.model(next_states).argmax(dim=1)
            next_values = self.target_model(next_states).gather(1, best_next.unsqueeze(1)).squeeze(1)
            action_targets = torch.where(dones, rewards,
                                         rewards + self.hypers['gamma'] * next_values)
            targets[torch.arange(len(batch)), actions] = action_targets

        return states, targets

    def replay(self):
        """
        One gradient step on a random batch from memory.

        Returns:
            float or None: Loss value, or None if memory is too small
        """
        batch = self.memory.sample(int(self.hypers['batch_size']))
        if not batch:
            return None

        states, targets = self.compute_targets(batch)

        set_learning_rate(self.optimizer, self.hypers['alpha'])
        loss = self.loss_fn(self.model(states), targets)
        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()
        return loss.item()

    def reset(self):
        """Cold restart: empty memory, initial epsilon, fresh networks."""
        self.memory.clear()
        self.hypers['epsilon'] = config.DQN_HYPERS['epsilon']
        self.is_training = False
        self.learn_step_count = 0
        self._build_networks()

    def state_dict(self):
        return {'model': self.model.state_dict()}

    def load_state_dict(self, state):
        self.model.load_state_dict(state['model'])
        self.update_target_model()
        self.optimizer = optim.Adam(self.model.parameters(), lr=self.hypers['alpha'])


class ActorCriticAgent(Agent):
    """
    PPO agent with separate actor and critic networks.

    Steps are buffered until the rollout reaches ``batch_size`` or the episode
    ends, then the batch is optimized for ``train_epochs`` epochs and dropped.

    Loss per epoch:
        L = -mean(min(r*A, clip(r, 1-ε, 1+ε)*A)) + c_v * MSE(V, R) - c_e * H(π)
    with r = exp(log π_new - log π_old) and whitened GAE advantages A.
    """

    kind = AgentKind.ACTOR_CRITIC

    def __init__(self, n_actions, observation_scale=None):
        super(ActorCriticAgent, self).__init__(n_actions, observation_scale)
        self.hypers = dict(config.PPO_HYPERS)
        self.buffer = RolloutBuffer()
        self._build_networks()

    @staticmethod
    def get_metadata():
        return [
            {'id': 'gamma', 'label': 'Future Bias (γ)', 'min': 0.9, 'max': 0.999,
             'step': 0.001, 'default': 0.99},
            {'id': 'learning_rate', 'label': 'Learning Rate (α)', 'min': 0.0001,
             'max': 0.01, 'step': 0.0001, 'default': 0.001},
            {'id': 'entropy_coef', 'label': 'Curiosity / Randomness', 'min': 0.0,
             'max': 0.1, 'step': 0.01, 'default': 0.01},
            {'id': 'clip_ratio', 'label': 'Clip Ratio (ε)', 'min': 0.05, 'max': 0.5,
             'step': 0.05, 'default': 0.2},
        ]

    def _build_networks(self):
        self.actor = ActorNetwork(self.n_actions)
        self.critic = CriticNetwork()
        self._build_optimizer()

    def _build_optimizer(self):
        params = list(self.actor.parameters()) + list(self.critic.parameters())
        self.optimizer = optim.Adam(params, lr=self.hypers['learning_rate'])

    def select_action(self, state, deterministic=False):
        """
        Evaluate actor and critic once and pick an action.

        Args:
            state (array-like): Environment state
            deterministic (bool): Take the most probable action instead of sampling

        Returns:
            tuple: (action, PolicyStep) - pass the PolicyStep to the next ``learn``
        """
        state_tensor = self._to_tensor(state)
        with torch.no_grad():
            action, probs = self.actor.get_action(state_tensor, deterministic)
            value = self.critic(state_tensor).item()
        log_prob = math.log(max(probs[action].item(), config.PROB_EPS))
        return action, PolicyStep(log_prob, value)

    def learn(self, state, action, reward, next_state, done, step=None):
        """
        Buffer one step and train when the rollout is full or the episode ended.

        Args:
            step (PolicyStep): Returned by the ``select_action`` call that chose ``action``

        Returns:
            dict or None: Loss statistics if a training pass ran
        """
        if step is None:
            raise ValueError("ActorCriticAgent.learn needs the PolicyStep from select_action")

        self.buffer.add(Transition(state, action, reward, next_state, done),
                        step.log_prob, step.value)

        if len(self.buffer) >= int(self.hypers['batch_size']) or done:
            try:
                return self.train()
            finally:
                self.buffer.clear()
        return None

    def bootstrap_value(self):
        """Critic value of the state after the last buffered step (0 if terminal)."""
        if self.buffer.dones[-1]:
            return 0.0
        with torch.no_grad():
            return self.critic(self._to_tensor(self.buffer.next_states[-1])).item()

    def train(self):
        """
        Run the PPO optimization epochs on the current rollout.

        Returns:
            dict or None: Final-epoch loss terms, or None for an empty rollout
        """
        if len(self.buffer) == 0:
            return None

        hypers = self.hypers
        states = self._to_tensor(np.stack(self.buffer.states))
        actions = torch.tensor(self.buffer.actions, dtype=torch.long)
        old_log_probs = torch.tensor(self.buffer.log_probs, dtype=torch.float32)

        advantages, returns = compute_gae(
            self.buffer.rewards,
            self.buffer.values,
            self.buffer.dones,
            self.bootstrap_value(),
            hypers['gamma'],
            hypers['gae_lambda'],
        )
        advantages = normalize_advantages(advantages)

        set_learning_rate(self.optimizer, hypers['learning_rate'])
        clip = hypers['clip_ratio']

        for _ in range(int(hypers['train_epochs'])):
            values = self.critic(states)
            critic_loss = F.mse_loss(values, returns)

            probs = self.actor(states)
            new_log_probs = self.actor.get_log_prob(states, actions)

            ratio = torch.exp(new_log_probs - old_log_probs)
            surr1 = ratio * advantages
            surr2 = torch.clamp(ratio, 1 - clip, 1 + clip) * advantages
            actor_loss = -torch.min(surr1, surr2).mean()

            entropy = -(probs * torch.log(probs + config.PROB_EPS)).sum(dim=1).mean()

            loss = (actor_loss
                    + hypers['value_coef'] * critic_loss
                    - hypers['entropy_coef'] * entropy)

            self.optimizer.zero_grad()
            loss.backward()
            self.optimizer.step()

        return {
            'loss': loss.item(),
            'actor_loss': actor_loss.item(),
            'critic_loss': critic_loss.item(),
            'entropy': entropy.item(),
        }

    def reset(self):
        """Drop the rollout and rebuild actor, critic and optimizer."""
        self.buffer.clear()
        self._build_networks()

    def state_dict(self):
        return {'actor': self.actor.state_dict(), 'critic': self.critic.state_dict()}

    def load_state_dict(self, state):
        self.actor.load_state_dict(state['actor'])
        self.critic.load_state_dict(state['critic'])
        self._build_optimizer()


def create_agent(kind, env):
    """
    Create an agent matched to an environment's action and observation spaces.

    Args:
        kind (AgentKind or str): Which agent to build
        env: Environment the agent will be trained on

    Returns:
        Agent: Initialized agent

    Raises:
        ValueError: For an unknown kind or a tabular agent on the balance task
    """
    kind = AgentKind(kind)
    n_actions = int(env.action_space.n)

    if kind is AgentKind.TABULAR_Q:
        if env.name != EnvKind.GRID.value:
            raise ValueError("Tabular Q-learning needs discrete grid states")
        return TabularQAgent(n_actions)
    if kind is AgentKind.VALUE_NETWORK:
        return ValueNetworkAgent(n_actions, observation_scale=env.observation_scale)
    return ActorCriticAgent(n_actions, observation_scale=env.observation_scale)
