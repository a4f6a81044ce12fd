"""
Centralized defaults for the RL sandbox.

Environment physics and reward settings, agent hyperparameters, and training
loop pacing all live here. Environments and agents copy these values into
their own mutable attributes at construction, so configuration UIs can tweak
a live instance without touching the module defaults.
"""

import math

# Random seed used by the scripts when none is given
DEFAULT_SEED = 42

# Balance (cart-pole) physics
BALANCE_GRAVITY = 9.8
BALANCE_MASS_CART = 1.0
BALANCE_MASS_POLE = 0.1
BALANCE_HALF_LENGTH = 0.5  # Half the pole length
BALANCE_FORCE_MAG = 10.0
BALANCE_TAU = 0.02  # Seconds between state updates
BALANCE_X_THRESHOLD = 2.4
BALANCE_THETA_THRESHOLD = 12 * 2 * math.pi / 360
BALANCE_RATE_SCALE = 10.0  # Divisor for both velocities when normalizing
BALANCE_RANDOM_START = False

# Balance reward shaping
BALANCE_REWARDS = {
    'survival': 1.0,
    'fall_penalty': -50.0,
    'center_bias': 0.8,
    'drift_penalty': 0.1,
}

# Grid world layout
GRID_ROWS = 10
GRID_COLS = 10
GRID_OBSTACLE_PROB = 0.15

# Grid reward shaping
GRID_REWARDS = {
    'goal': 100.0,
    'survival': -1.0,
    'damage': -10.0,
    'progress': 0.1,
}

# Tabular Q-learning
TABULAR_HYPERS = {
    'epsilon': 0.1,
    'alpha': 0.1,
    'gamma': 0.9,
}

# Deep Q-learning
DQN_HYPERS = {
    'epsilon': 1.0,
    'alpha': 0.001,
    'gamma': 0.95,
    'epsilon_decay': 0.995,
    'epsilon_min': 0.01,
    'batch_size': 64,
    'target_update_freq': 500,
}
REPLAY_CAPACITY = 2000

# Actor-critic (PPO)
PPO_HYPERS = {
    'gamma': 0.99,
    'gae_lambda': 0.95,
    'clip_ratio': 0.2,
    'learning_rate': 0.001,
    'entropy_coef': 0.01,
    'value_coef': 0.5,
    'train_epochs': 4,
    'batch_size': 128,
}

# Network architecture shared by all approximators
HIDDEN_SIZE = 24

# Numeric floors
PROB_EPS = 1e-7
ADV_EPS = 1e-8

# Training loop defaults per environment
DEFAULT_EPISODES = {'balance': 500, 'grid': 100}
DEFAULT_STEPS = {'balance': 500, 'grid': 200}

# Per-step pause (seconds) while visualizing training, keyed by env and speed
PACING = {
    'balance': {'slow': 0.05, 'fast': 0.0},
    'grid': {'slow': 0.05, 'fast': 0.02},
}
DEFAULT_SPEED = 'fast'

# Per-step pause (seconds) while playing back a learned policy
PLAY_TICK = {'balance': 0.02, 'grid': 0.15}

# Logging and output
RESULTS_DIR = "results"
MODELS_DIR = "models"
LOG_INTERVAL = 10  # Print training stats every N episodes
