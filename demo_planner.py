#!/usr/bin/env python
"""
Demonstration script for the MCTS and DPW planners.

This script runs a planner in closed loop on one of the reference models,
printing the chosen action, the search statistics and the resulting state at
every step.

Example usage:
    # Plain MCTS on a 4x4 grid world with a goal in the top right corner
    python demo_planner.py --model grid --iterations 200

    # DPW on the continuous 1D problem
    python demo_planner.py --model continuous --iterations 300 --k-action 2
"""
import argparse
import logging
from typing import Any, Dict, Optional

import numpy as np

from mcts_dpw.config import DPWConfig, MCTSConfig
from mcts_dpw.exceptions import NoActionAvailableError
from mcts_dpw.models import GridWorld, LinearDynamics1D, UniformActionSampler
from mcts_dpw.planner import create_planner
from mcts_dpw.rollout import RolloutSpec
from mcts_dpw.utils.logging import setup_logging

logger = logging.getLogger("demo_planner")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Demonstrate MCTS/DPW online planning on a reference model")

    parser.add_argument("--model", type=str, default="grid", choices=["grid", "continuous"],
                        help="Reference model to plan on")
    parser.add_argument("--iterations", type=int, default=200,
                        help="Simulations per planning call")
    parser.add_argument("--depth", type=int, default=10,
                        help="Maximum search depth")
    parser.add_argument("--exploration", type=float, default=1.0,
                        help="UCB exploration constant")
    parser.add_argument("--max-time", type=float, default=None,
                        help="Optional time budget per planning call in seconds")
    parser.add_argument("--k-action", type=float, default=2.0,
                        help="Action widening constant (continuous model)")
    parser.add_argument("--alpha-action", type=float, default=0.5,
                        help="Action widening exponent (continuous model)")
    parser.add_argument("--steps", type=int, default=10,
                        help="Number of closed-loop steps")
    parser.add_argument("--reuse-tree", action="store_true",
                        help="Keep the relevant subtree between steps")
    parser.add_argument("--progress", action="store_true",
                        help="Show a progress bar while planning")
    parser.add_argument("--seed", type=int, default=0,
                        help="Random seed")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Optional log file")
    parser.add_argument("--verbose", action="store_true",
                        help="Log planner internals")

    return parser.parse_args()


def build(args) -> Dict[str, Any]:
    """Build the model, configuration and initial state for the chosen demo."""
    if args.model == "grid":
        mdp = GridWorld(width=4, height=4, rewards={(4, 4): 10.0, (4, 1): -5.0}, slip_probability=0.1)
        config = MCTSConfig(
            n_iterations=args.iterations,
            depth=args.depth,
            exploration_constant=args.exploration,
            max_time=args.max_time,
            reuse_tree=args.reuse_tree,
            show_progress=args.progress,
            seed=args.seed,
        )
        return {"mdp": mdp, "config": config, "state": (1, 1)}

    mdp = LinearDynamics1D(noise=0.1, goal_tolerance=0.05)
    sampler = UniformActionSampler(mdp.max_action)
    config = DPWConfig(
        n_iterations=args.iterations,
        depth=args.depth,
        exploration_constant=args.exploration,
        max_time=args.max_time,
        k_action=args.k_action,
        alpha_action=args.alpha_action,
        k_state=1.0,
        alpha_state=0.3,
        next_action=sampler,
        estimate_value=RolloutSpec(policy=lambda s, rng: float(np.clip(-s, -1.0, 1.0)), horizon=5),
        check_repeat_state=False,
        reuse_tree=args.reuse_tree,
        show_progress=args.progress,
        seed=args.seed,
    )
    return {"mdp": mdp, "config": config, "state": 3.0}


def run_demo(args) -> Optional[float]:
    """
    Run the planner in closed loop.

    Returns:
        Discounted return collected by the planner
    """
    setup = build(args)
    mdp, config, state = setup["mdp"], setup["config"], setup["state"]
    planner = create_planner(mdp, config)
    env_rng = np.random.default_rng(args.seed + 1)

    print(f"\nModel: {mdp!r}")
    print(f"Planner: {planner}")
    print(f"Config: {config}\n")

    total = 0.0
    discount = 1.0
    for t in range(args.steps):
        if mdp.is_terminal(state):
            print(f"Reached terminal state {state} after {t} steps")
            break

        try:
            action, stats = planner.action_info(state)
        except NoActionAvailableError as e:
            logger.warning("Planner produced no action: %s", e)
            return None

        next_state, reward = mdp.step(state, action, env_rng)
        total += discount * reward
        discount *= mdp.discount

        print(f"Step {t}: state={state} action={action} reward={reward:.3f} "
              f"({stats['iterations']} it, {stats['node_count']} nodes, {stats['time_elapsed']:.3f}s)")
        state = next_state

    print(f"\nDiscounted return: {total:.3f}")
    return total


def main():
    """Main function."""
    args = parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    run_demo(args)


if __name__ == "__main__":
    main()
