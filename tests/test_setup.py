"""
Setup verification tests.

This module tests that all required dependencies are properly installed
and that both sandbox environments can be built and stepped.

Run with: pytest tests/test_setup.py -v
"""

import gymnasium as gym
import matplotlib
import pytest
import torch
import tqdm

from rl_sandbox.environments import create_env


def test_torch_import():
    """Verify PyTorch is installed and accessible."""
    assert torch.__version__ is not None
    print(f"✓ PyTorch version: {torch.__version__}")


def test_gymnasium_import():
    """Verify Gymnasium is installed and accessible."""
    assert gym.__version__ is not None
    print(f"✓ Gymnasium version: {gym.__version__}")


def test_matplotlib_import():
    """Verify Matplotlib is installed for plotting."""
    assert matplotlib.__version__ is not None
    print(f"✓ Matplotlib version: {matplotlib.__version__}")


def test_tqdm_import():
    """Verify tqdm is installed for progress bars."""
    assert tqdm.__version__ is not None
    print(f"✓ tqdm version: {tqdm.__version__}")


@pytest.mark.parametrize("kind", ["balance", "grid"])
def test_env_step(kind):
    """Verify each environment can be reset and stepped."""
    env = create_env(kind, seed=0)
    obs = env.reset()
    assert obs.shape == (4,), f"Expected shape (4,), got {obs.shape}"

    action = env.action_space.sample()
    next_obs, reward, done = env.step(int(action))

    assert next_obs.shape == (4,), "Next state should be 4-dimensional"
    assert isinstance(reward, float), "Reward should be a float"
    assert isinstance(done, bool), "Done flag should be boolean"

    print(f"✓ {kind} step executed: action={action}, reward={reward}")


def test_torch_tensor_operations():
    """Verify PyTorch tensor operations work correctly."""
    x_grad = torch.tensor([1.0, 2.0], requires_grad=True)
    loss = (x_grad ** 2).sum()
    loss.backward()
    assert x_grad.grad is not None

    print("✓ PyTorch autograd working")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
