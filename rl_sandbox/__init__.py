"""
RL Sandbox - Source Code Package

Interactive reinforcement-learning sandbox: pick an environment and an agent,
train for a number of episodes, and watch the learned policy play.

Modules:
    config: Default physics, rewards, hyperparameters and pacing
    environments: BalanceEnv (cart-pole) and GridEnv (maze)
    models: Q-network, actor and critic networks
    buffers: Replay memory, rollout buffer and GAE
    agent: Tabular Q-learning, deep Q-learning and PPO agents
    store: Named model stores for persistence
    session: Episode runner and training session control loop
    utils: Seeding, result export and plotting
"""

__version__ = "0.1.0"
