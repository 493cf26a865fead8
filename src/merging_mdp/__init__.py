"""merging_mdp: Generative environment model for highway on-ramp merging

This package provides a sample-based model of a merging scenario (initial
state sampler, stochastic transition, reward/termination oracle) and a
feature codec for planning and learning algorithms.
"""

__version__ = "2.0.0"

# Make key components easily accessible
from merging_mdp.core.types import (
    EGO_ID,
    LaneTag,
    Entity,
    AugmentedScene,
    EgoInfo,
)
from merging_mdp.config import EnvironmentConfig, ConfigPresets
from merging_mdp.environments import GenerativeMergingMDP, MergingDrivingEnv
from merging_mdp.features import FeatureCodec

__all__ = [
    "EGO_ID",
    "LaneTag",
    "Entity",
    "AugmentedScene",
    "EgoInfo",
    "EnvironmentConfig",
    "ConfigPresets",
    "GenerativeMergingMDP",
    "MergingDrivingEnv",
    "FeatureCodec",
]
