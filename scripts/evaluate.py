"""
Greedy evaluation of a stored agent.

Restores the model saved by scripts/train.py and plays it deterministically
from the home state without learning.

Usage:
    python scripts/evaluate.py --env balance --agent ppo --episodes 10
    python scripts/evaluate.py --env grid --agent tabular --visualize
"""

import argparse
import asyncio
import warnings

import numpy as np

from rl_sandbox import config
from rl_sandbox.agent import AgentKind
from rl_sandbox.environments import EnvKind
from rl_sandbox.session import TrainingSession
from rl_sandbox.store import FileModelStore
from rl_sandbox.utils import set_seeds


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Evaluate a stored RL sandbox agent')

    parser.add_argument('--env', type=str, required=True,
                        choices=[kind.value for kind in EnvKind])
    parser.add_argument('--agent', type=str, required=True,
                        choices=[kind.value for kind in AgentKind])
    parser.add_argument('--seed', type=int, default=config.DEFAULT_SEED,
                        help='Random seed')
    parser.add_argument('--episodes', type=int, default=10,
                        help='Number of evaluation episodes')
    parser.add_argument('--steps', type=int, default=None,
                        help='Step budget per episode (default per environment)')
    parser.add_argument('--visualize', action='store_true',
                        help='Pace steps at the environment play tick')
    parser.add_argument('--model_dir', type=str, default=config.MODELS_DIR,
                        help='Directory of the model store')

    return parser.parse_args()


def print_step(env):
    """Text stand-in for a renderer."""
    if env.name == EnvKind.GRID.value:
        print(f"  agent={env.agent_pos} goal={env.goal_pos}")
    else:
        print(f"  x={env.position:+.3f} theta={env.angle:+.3f}")


async def evaluate(args):
    """Play stored-policy episodes and print their statistics."""
    store = FileModelStore(args.model_dir)
    on_step = print_step if args.visualize else None
    session = TrainingSession.create(args.env, args.agent, seed=args.seed,
                                     store=store, on_step=on_step, verbose=False)

    if not session.restore():
        warnings.warn(f"No stored model at {store.path_for(session.model_name)}; "
                      f"evaluating an untrained agent")

    steps = args.steps or config.DEFAULT_STEPS[args.env]
    results = await session.play(episodes=args.episodes, step_budget=steps,
                                 visualize=args.visualize)
    rewards = [r.total_reward for r in results]
    lengths = [r.steps for r in results]

    print(f"\n{'='*60}")
    print(f"EVALUATION - {session.model_name.upper()}")
    print(f"{'='*60}")
    print(f"Episodes: {len(results)}")
    print(f"Mean reward: {np.mean(rewards):.2f}")
    print(f"Std reward: {np.std(rewards):.2f}")
    print(f"Mean length: {np.mean(lengths):.1f}")
    print(f"Finished episodes: {sum(r.done for r in results)}/{len(results)}")
    print(f"{'='*60}\n")

    return rewards


def main():
    args = parse_args()
    set_seeds(args.seed)
    asyncio.run(evaluate(args))


if __name__ == '__main__':
    main()
