"""
Tests for result export and plotting helpers.
"""

import json

import numpy as np
import torch

from rl_sandbox.utils import (moving_average, plot_training_curve, print_summary,
                              save_training_results, set_seeds)


class TestSeeding:
    """Test global seeding."""

    def test_set_seeds_repeats(self):
        """Test reseeding reproduces NumPy and torch draws."""
        set_seeds(5)
        first = (np.random.random(), torch.rand(1).item())
        set_seeds(5)
        assert (np.random.random(), torch.rand(1).item()) == first


class TestMovingAverage:
    """Test trailing mean."""

    def test_values(self):
        """Test early positions average over what is available."""
        assert moving_average([2.0, 4.0, 6.0, 8.0], 2) == [2.0, 3.0, 5.0, 7.0]


class TestResultExport:
    """Test saving results and plots."""

    def test_save_training_results(self, tmp_path):
        """Test the JSON file holds the rewards and run metadata."""
        path = save_training_results([1.0, 2.5], seed=3, run_name='grid-tabular',
                                     output_dir=tmp_path, interrupted=True)
        assert path == tmp_path / 'grid-tabular' / 'seed3_rewards.json'

        data = json.loads(path.read_text())
        assert data['episode_rewards'] == [1.0, 2.5]
        assert data['num_episodes'] == 2
        assert data['interrupted'] is True

    def test_plot_training_curve(self, tmp_path):
        """Test a PNG plot is written."""
        path = plot_training_curve([float(i) for i in range(20)], seed=1,
                                   run_name='balance-ppo', output_dir=tmp_path, window=5)
        assert path.exists()
        assert path.suffix == '.png'

    def test_print_summary(self, capsys):
        """Test the summary reports the best episode."""
        print_summary([1.0, 5.0, 3.0], 'balance-dqn')
        out = capsys.readouterr().out
        assert 'BALANCE-DQN TRAINING SUMMARY' in out
        assert 'Best episode: 2' in out

    def test_print_summary_empty(self, capsys):
        """Test an empty run prints a notice instead of failing."""
        print_summary([], 'grid-ppo')
        assert 'No episodes completed' in capsys.readouterr().out
