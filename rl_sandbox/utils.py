"""
Utility functions for seeding, result export, and plotting.
"""

import json
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import torch

from rl_sandbox import config


def set_seeds(seed):
    """Seed NumPy's and torch's global generators (used by the agents)."""
    torch.manual_seed(seed)
    np.random.seed(seed)


def save_training_results(rewards, seed, run_name, output_dir=config.RESULTS_DIR,
                          interrupted=False):
    """
    Save training rewards to JSON file.

    Args:
        rewards (list): Episode rewards
        seed (int): Random seed used
        run_name (str): Run label, e.g. 'balance-ppo'
        output_dir (str): Output directory
        interrupted (bool): Whether the session was stopped early

    Returns:
        Path: Written file
    """
    output_path = Path(output_dir) / run_name
    output_path.mkdir(parents=True, exist_ok=True)

    results = {
        'seed': seed,
        'run': run_name,
        'episode_rewards': [float(r) for r in rewards],
        'num_episodes': len(rewards),
        'interrupted': interrupted,
    }

    filename = output_path / f'seed{seed}_rewards.json'
    with open(filename, 'w') as f:
        json.dump(results, f, indent=2)

    print(f"Results saved to {filename}")
    return filename


def moving_average(values, window):
    """Trailing mean over at most ``window`` values at each position."""
    averages = []
    for i in range(len(values)):
        start_idx = max(0, i - window + 1)
        averages.append(float(np.mean(values[start_idx:i + 1])))
    return averages


def plot_training_curve(rewards, seed, run_name, output_dir=config.RESULTS_DIR, window=50):
    """
    Plot training curve with moving average.

    Args:
        rewards (list): Episode rewards
        seed (int): Random seed
        run_name (str): Run label
        output_dir (str): Output directory
        window (int): Window size for moving average

    Returns:
        Path: Written image
    """
    output_path = Path(output_dir) / run_name
    output_path.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(rewards, alpha=0.3, color='steelblue', label='Episode Reward')
    ax.plot(moving_average(rewards, window), color='darkblue', linewidth=2,
            label=f'{window}-Episode Average')

    ax.set_xlabel('Episode', fontsize=12)
    ax.set_ylabel('Reward', fontsize=12)
    ax.set_title(f'{run_name} Training - Seed {seed}', fontsize=14, fontweight='bold')
    ax.legend(loc='lower right')
    ax.grid(alpha=0.3)

    filename = output_path / f'seed{seed}_plot.png'
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    plt.close(fig)

    print(f"Plot saved to {filename}")
    return filename


def print_summary(rewards, run_name, window=100):
    """
    Print training summary statistics.

    Args:
        rewards (list): Episode rewards
        run_name (str): Run label
        window (int): Episodes in the final average
    """
    print("\n" + "=" * 60)
    print(f"{run_name.upper()} TRAINING SUMMARY")
    print("=" * 60)

    if not rewards:
        print("No episodes completed")
        print("=" * 60 + "\n")
        return

    final_avg = np.mean(rewards[-window:])
    print(f"Episodes: {len(rewards)}")
    print(f"Final {min(window, len(rewards))}-episode average: {final_avg:.1f}")

    best_reward = max(rewards)
    best_episode = rewards.index(best_reward) + 1
    print(f"Best episode: {best_episode} (reward: {best_reward:.1f})")

    print("=" * 60 + "\n")
