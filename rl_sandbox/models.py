"""
Neural network function approximators for the sandbox agents.

All networks take the 4-dimensional (already scaled) state:
- QNetwork: per-action values for deep Q-learning (4→24→24→n)
- ActorNetwork: action-probability simplex for PPO (tanh hidden, softmax head)
- CriticNetwork: scalar state value for PPO (4→24→24→1)
"""

import torch
import torch.nn as nn
import torch.nn.functional as F

from rl_sandbox import config


class QNetwork(nn.Module):
    """
    State-action value network.

    Architecture: state → 24 ReLU → 24 ReLU → n_actions (linear)
    """

    def __init__(self, n_actions, state_dim=4, hidden_size=config.HIDDEN_SIZE):
        super(QNetwork, self).__init__()
        self.fc1 = nn.Linear(state_dim, hidden_size)
        self.fc2 = nn.Linear(hidden_size, hidden_size)
        self.out = nn.Linear(hidden_size, n_actions)

    def forward(self, state):
        """
        Args:
            state (torch.Tensor): shape (4,) or (batch, 4)

        Returns:
            torch.Tensor: Q-values, shape (n_actions,) or (batch, n_actions)
        """
        hidden = F.relu(self.fc1(state))
        hidden = F.relu(self.fc2(hidden))
        return self.out(hidden)

    def count_parameters(self):
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


class ActorNetwork(nn.Module):
    """
    Policy network producing action probabilities.

    Architecture: state → 24 tanh → 24 tanh → n_actions (softmax)
    """

    def __init__(self, n_actions, state_dim=4, hidden_size=config.HIDDEN_SIZE):
        super(ActorNetwork, self).__init__()
        self.fc1 = nn.Linear(state_dim, hidden_size)
        self.fc2 = nn.Linear(hidden_size, hidden_size)
        self.out = nn.Linear(hidden_size, n_actions)

    def forward(self, state):
        """
        Args:
            state (torch.Tensor): shape (4,) or (batch, 4)

        Returns:
            torch.Tensor: Action probabilities, shape (n_actions,) or (batch, n_actions)
        """
        hidden = torch.tanh(self.fc1(state))
        hidden = torch.tanh(self.fc2(hidden))
        return F.softmax(self.out(hidden), dim=-1)

    def get_action(self, state, deterministic=False):
        """
        Pick an action from the policy distribution.

        Args:
            state (torch.Tensor): State, shape (4,)
            deterministic (bool): Take the most probable action instead of sampling

        Returns:
            tuple: (action, probs)
                - action (int): Chosen action
                - probs (torch.Tensor): Action probabilities, shape (n_actions,)
        """
        probs = self.forward(state)
        if deterministic:
            action = torch.argmax(probs)
        else:
            action = torch.distributions.Categorical(probs).sample()
        return action.item(), probs

    def get_log_prob(self, state, action):
        """
        Log probability of given actions, floored at ``PROB_EPS`` before the log.

        Args:
            state (torch.Tensor): shape (4,) or (batch, 4)
            action (torch.Tensor): shape () or (batch,), dtype long

        Returns:
            torch.Tensor: Log probabilities, shape () or (batch,)
        """
        probs = self.forward(state)
        chosen = probs.gather(-1, action.unsqueeze(-1)).squeeze(-1)
        return torch.log(chosen + config.PROB_EPS)

    def count_parameters(self):
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


class CriticNetwork(nn.Module):
    """
    State value network.

    Architecture: state → 24 ReLU → 24 ReLU → 1 (linear)
    """

    def __init__(self, state_dim=4, hidden_size=config.HIDDEN_SIZE):
        super(CriticNetwork, self).__init__()
        self.fc1 = nn.Linear(state_dim, hidden_size)
        self.fc2 = nn.Linear(hidden_size, hidden_size)
        self.out = nn.Linear(hidden_size, 1)

    def forward(self, state):
        """
        Args:
            state (torch.Tensor): shape (4,) or (batch, 4)

        Returns:
            torch.Tensor: State values, shape () or (batch,)
        """
        hidden = F.relu(self.fc1(state))
        hidden = F.relu(self.fc2(hidden))
        return self.out(hidden).squeeze(-1)

    def count_parameters(self):
        return sum(p.numel() for p in self.parameters() if p.requires_grad)
