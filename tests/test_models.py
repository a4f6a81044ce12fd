"""
Tests for the Q, actor and critic networks.
"""

import pytest
import torch

from rl_sandbox.models import ActorNetwork, CriticNetwork, QNetwork


class TestQNetwork:
    """Test state-action value network."""

    def test_initialization(self):
        """Test network builds with the expected layer sizes."""
        model = QNetwork(n_actions=2)
        assert model.fc1.in_features == 4
        assert model.fc1.out_features == 24
        assert model.out.out_features == 2

    def test_parameter_count(self):
        """Test 4→24→24→2 has the expected number of parameters."""
        model = QNetwork(n_actions=2)
        assert model.count_parameters() == (4 * 24 + 24) + (24 * 24 + 24) + (24 * 2 + 2)

    def test_single_and_batch_shapes(self):
        """Test forward pass shapes for one state and a batch."""
        model = QNetwork(n_actions=4)
        assert model(torch.randn(4)).shape == (4,)
        assert model(torch.randn(8, 4)).shape == (8, 4)

    def test_gradient_flow(self):
        """Test gradients reach every layer."""
        model = QNetwork(n_actions=2)
        model(torch.randn(5, 4)).sum().backward()
        for name, param in model.named_parameters():
            assert param.grad is not None, f"No gradient for {name}"


class TestActorNetwork:
    """Test policy network."""

    def test_probabilities_sum_to_one(self):
        """Test softmax output is a probability simplex."""
        actor = ActorNetwork(n_actions=4)
        probs = actor(torch.randn(16, 4))
        assert probs.shape == (16, 4)
        assert torch.all(probs >= 0)
        assert torch.allclose(probs.sum(dim=1), torch.ones(16), atol=1e-6)

    def test_hidden_activation_is_bounded(self):
        """Test tanh hidden layers keep outputs finite for huge inputs."""
        actor = ActorNetwork(n_actions=2)
        probs = actor(torch.full((4,), 1e6))
        assert torch.all(torch.isfinite(probs))

    def test_get_action_sampling(self):
        """Test sampled actions are valid indices."""
        torch.manual_seed(0)
        actor = ActorNetwork(n_actions=3)
        state = torch.randn(4)
        for _ in range(50):
            action, probs = actor.get_action(state)
            assert isinstance(action, int)
            assert 0 <= action < 3
            assert probs.shape == (3,)

    def test_get_action_deterministic(self):
        """Test deterministic selection returns the most probable action."""
        actor = ActorNetwork(n_actions=4)
        state = torch.randn(4)
        action, probs = actor.get_action(state, deterministic=True)
        assert action == int(torch.argmax(probs))

    def test_get_log_prob(self):
        """Test log-probabilities match the forward pass."""
        actor = ActorNetwork(n_actions=2)
        states = torch.randn(6, 4)
        actions = torch.tensor([0, 1, 0, 1, 1, 0])
        log_probs = actor.get_log_prob(states, actions)
        probs = actor(states)
        expected = torch.log(probs[torch.arange(6), actions] + 1e-7)
        assert log_probs.shape == (6,)
        assert torch.allclose(log_probs, expected)

    def test_parameter_count(self):
        """Test actor has the same layer sizes as the Q-network."""
        assert ActorNetwork(n_actions=2).count_parameters() == QNetwork(n_actions=2).count_parameters()


class TestCriticNetwork:
    """Test state value network."""

    @pytest.mark.parametrize("shape,expected", [((4,), ()), ((10, 4), (10,))])
    def test_output_shape(self, shape, expected):
        """Test the value head is squeezed to a scalar per state."""
        critic = CriticNetwork()
        assert critic(torch.randn(*shape)).shape == expected

    def test_parameter_count(self):
        """Test 4→24→24→1 has the expected number of parameters."""
        critic = CriticNetwork()
        assert critic.count_parameters() == (4 * 24 + 24) + (24 * 24 + 24) + (24 + 1)
