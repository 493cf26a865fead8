"""Reward function implementations for the merging task.

The merging reward is the sum of three independent components:
- a goal reward when the ego reaches the end of the main lane
- a collision cost when the ego footprint overlaps another vehicle
  (never together with the goal reward)
- a hard-brake cost when the main-lane vehicle behind the ego brakes hard
"""

from __future__ import annotations
from typing import Any, Dict, TYPE_CHECKING

from merging_mdp.core.environment import RewardFunction, CompositeRewardFunction
from merging_mdp.core.types import EGO_ID, AugmentedScene, get_by_id
from merging_mdp.geometry.footprint import collision_checker

if TYPE_CHECKING:
    from merging_mdp.environments.merging_mdp import GenerativeMergingMDP


class GoalReward(RewardFunction):
    """Reward for reaching the end of the main lane."""

    def __init__(self, mdp: "GenerativeMergingMDP", goal_reward: float = 1.0):
        """
        Args:
            mdp: Environment model providing the goal test
            goal_reward: Reward when the goal is reached
        """
        self.mdp = mdp
        self.goal_reward = goal_reward

    def compute(self, state: AugmentedScene, action: Any,
                next_state: AugmentedScene, info: Dict[str, Any]) -> float:
        if self.mdp.reach_goal(get_by_id(next_state.scene, EGO_ID)):
            return self.goal_reward
        return 0.0


class CollisionCost(RewardFunction):
    """Cost for a footprint overlap, unless the goal was reached on the same step."""

    def __init__(self, mdp: "GenerativeMergingMDP", collision_cost: float = -1.0):
        """
        Args:
            mdp: Environment model providing the goal test and roadway
            collision_cost: Reward (negative) on collision
        """
        self.mdp = mdp
        self.collision_cost = collision_cost

    def compute(self, state: AugmentedScene, action: Any,
                next_state: AugmentedScene, info: Dict[str, Any]) -> float:
        if self.mdp.reach_goal(get_by_id(next_state.scene, EGO_ID)):
            return 0.0
        if collision_checker(next_state.scene, self.mdp.roadway, EGO_ID):
            return self.collision_cost
        return 0.0


class HardBrakeCost(RewardFunction):
    """Cost for forcing the main-lane vehicle behind the ego to brake hard."""

    def __init__(self, mdp: "GenerativeMergingMDP", hard_brake_cost: float = 0.0):
        """
        Args:
            mdp: Environment model owning the driver models
            hard_brake_cost: Reward (non-positive) when the rear vehicle brakes hard
        """
        self.mdp = mdp
        self.hard_brake_cost = hard_brake_cost

    def compute(self, state: AugmentedScene, action: Any,
                next_state: AugmentedScene, info: Dict[str, Any]) -> float:
        if self.mdp.caused_hard_brake(next_state.scene):
            return self.hard_brake_cost
        return 0.0


def create_default_reward(mdp: "GenerativeMergingMDP") -> RewardFunction:
    """Create the merging reward from the model's reward configuration.

    Args:
        mdp: Environment model

    Returns:
        Composite reward function summing goal, collision and hard-brake terms
    """
    reward_config = mdp.config.reward
    components = [
        (GoalReward(mdp, reward_config.goal_reward), 1.0),
        (CollisionCost(mdp, reward_config.collision_cost), 1.0),
        (HardBrakeCost(mdp, reward_config.hard_brake_cost), 1.0),
    ]
    return CompositeRewardFunction(components)
