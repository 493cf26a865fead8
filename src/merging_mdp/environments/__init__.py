"""Environment model and Gym-style adapter for highway merging."""

from merging_mdp.environments.merging_mdp import GenerativeMergingMDP, HARD_BRAKE, RELEASE
from merging_mdp.environments.merging_env import MergingDrivingEnv
from merging_mdp.environments.rewards import (
    GoalReward,
    CollisionCost,
    HardBrakeCost,
    create_default_reward,
)

__all__ = [
    "GenerativeMergingMDP",
    "HARD_BRAKE",
    "RELEASE",
    "MergingDrivingEnv",
    "GoalReward",
    "CollisionCost",
    "HardBrakeCost",
    "create_default_reward",
]
