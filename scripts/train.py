"""
Training script for RL sandbox agents.

Usage:
    python scripts/train.py --env balance --agent ppo --episodes 500
    python scripts/train.py --env grid --agent tabular --episodes 100 --steps 200
    python scripts/train.py --env balance --agent dqn --resume
"""

import argparse
import asyncio
import signal

from rl_sandbox import config
from rl_sandbox.agent import AgentKind
from rl_sandbox.environments import EnvKind
from rl_sandbox.session import SessionState, TrainingSession
from rl_sandbox.store import FileModelStore
from rl_sandbox.utils import (plot_training_curve, print_summary,
                              save_training_results, set_seeds)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Train an RL sandbox agent')

    parser.add_argument('--env', type=str, required=True,
                        choices=[kind.value for kind in EnvKind],
                        help='Environment: balance (cart-pole) or grid (maze)')
    parser.add_argument('--agent', type=str, required=True,
                        choices=[kind.value for kind in AgentKind],
                        help='Agent: tabular, dqn or ppo')
    parser.add_argument('--seed', type=int, default=config.DEFAULT_SEED,
                        help='Random seed for reproducibility')
    parser.add_argument('--episodes', type=int, default=None,
                        help='Number of training episodes (default per environment)')
    parser.add_argument('--steps', type=int, default=None,
                        help='Step budget per episode (default per environment)')
    parser.add_argument('--visualize', action='store_true',
                        help='Pace every step as if a renderer were attached')
    parser.add_argument('--speed', type=str, default=config.DEFAULT_SPEED,
                        choices=['slow', 'fast'],
                        help='Pacing speed when visualizing')

    # Persistence
    parser.add_argument('--model_dir', type=str, default=config.MODELS_DIR,
                        help='Directory of the model store')
    parser.add_argument('--resume', action='store_true',
                        help='Continue from the stored model instead of a fresh agent')

    return parser.parse_args()


async def run(args):
    """Train one session and export its results."""
    store = FileModelStore(args.model_dir)
    session = TrainingSession.create(args.env, args.agent, seed=args.seed,
                                     store=store, speed=args.speed)

    episodes = args.episodes or config.DEFAULT_EPISODES[args.env]
    steps = args.steps or config.DEFAULT_STEPS[args.env]

    print(f"\n{'='*60}")
    print(f"TRAINING {session.model_name.upper()}")
    print(f"{'='*60}")
    print(f"Seed: {args.seed}")
    print(f"Episodes: {episodes}")
    print(f"Step budget: {steps}")
    print(f"Hyperparameters: {session.agent.hypers}")
    print(f"{'='*60}\n")

    fresh = True
    if args.resume:
        if session.restore():
            print(f"Resumed from {store.path_for(session.model_name)}\n")
            fresh = False
        else:
            print("No stored model found, starting fresh\n")

    # Ctrl+C stops after the current step instead of killing the process
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.interrupt)
    except NotImplementedError:
        pass

    results = await session.train(episodes, steps, visualize=args.visualize, fresh=fresh)
    rewards = [r.total_reward for r in results]
    interrupted = session.state is SessionState.INTERRUPTED

    if interrupted:
        print(f"\nInterrupted after {len(results)} episodes")
    print(f"Model saved to {store.path_for(session.model_name)}")

    save_training_results(rewards, args.seed, session.model_name, interrupted=interrupted)
    if rewards:
        plot_training_curve(rewards, args.seed, session.model_name)
    print_summary(rewards, session.model_name)


def main():
    """Main training function."""
    args = parse_args()
    set_seeds(args.seed)
    asyncio.run(run(args))


if __name__ == '__main__':
    main()
