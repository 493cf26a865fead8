#!/usr/bin/env python3
"""Roll out fixed or random policies in the merging environment model."""

import argparse
import json
from pathlib import Path
from typing import Dict, Optional

import numpy as np
from tqdm import tqdm

from merging_mdp.config import ConfigPresets, EnvironmentConfig, load_config_from_env
from merging_mdp.environments import GenerativeMergingMDP
from merging_mdp.utils.logging import setup_logging


PRESETS = {
    "default": ConfigPresets.default,
    "dense": ConfigPresets.dense_traffic,
    "cooperative": ConfigPresets.cooperative_traffic,
    "aggressive": ConfigPresets.aggressive_traffic,
    "observable": ConfigPresets.fully_observable,
}


def run_episode(mdp: GenerativeMergingMDP, rng: np.random.Generator,
                action: Optional[int], max_steps: int) -> Dict[str, float]:
    """Run one episode with a fixed action, or uniformly random actions if None."""
    state = mdp.initial_state(rng)
    total_reward = 0.0
    discount = 1.0
    steps = 0
    while not mdp.is_terminal(state) and steps < max_steps:
        a = action if action is not None else mdp.actions().sample(rng)
        next_state = mdp.step(state, a, rng)
        total_reward += discount * mdp.reward(state, a, next_state)
        discount *= mdp.discount()
        state = next_state
        steps += 1
    return {
        "steps": steps,
        "discounted_reward": total_reward,
        "collision": float(mdp.is_collision(state)),
        "goal": float(mdp.reach_goal(state.ego)),
    }


def main():
    parser = argparse.ArgumentParser(description="Simulate the merging environment model")
    parser.add_argument("--config", type=Path, help="YAML environment config")
    parser.add_argument("--preset", choices=sorted(PRESETS), default="default",
                        help="Config preset used when --config is not given")
    parser.add_argument("--episodes", type=int, default=100)
    parser.add_argument("--max-steps", type=int, default=100)
    parser.add_argument("--action", type=int, choices=range(1, 8),
                        help="Fixed action (random policy if omitted)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", type=Path, help="Write summary JSON to this file")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logger = setup_logging(args.verbose)

    config: EnvironmentConfig
    if args.config is not None:
        config = EnvironmentConfig.from_yaml(args.config)
    else:
        config = PRESETS[args.preset]()
    config = load_config_from_env(config)
    seed = args.seed if args.seed is not None else config.random_seed

    mdp = GenerativeMergingMDP(config)
    rng = np.random.default_rng(seed)

    results = [run_episode(mdp, rng, args.action, args.max_steps)
               for _ in tqdm(range(args.episodes), desc="Episodes")]

    summary = {
        "episodes": args.episodes,
        "seed": seed,
        "mean_steps": float(np.mean([r["steps"] for r in results])),
        "mean_discounted_reward": float(np.mean([r["discounted_reward"] for r in results])),
        "collision_rate": float(np.mean([r["collision"] for r in results])),
        "goal_rate": float(np.mean([r["goal"] for r in results])),
    }
    logger.info(f"Summary: {summary}")

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Summary written to {args.output}")


if __name__ == "__main__":
    main()
