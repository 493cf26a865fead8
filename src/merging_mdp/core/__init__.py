"""Core types and interfaces for the merging environment model.

This module defines the fundamental data structures and interfaces
used throughout the package.
"""

from merging_mdp.core.types import (
    EGO_ID,
    LaneTag,
    VehicleDef,
    Entity,
    Scene,
    EgoInfo,
    AugmentedScene,
    NeighborResult,
    make_scene,
    get_by_id,
    find_index,
)

__all__ = [
    "EGO_ID",
    "LaneTag",
    "VehicleDef",
    "Entity",
    "Scene",
    "EgoInfo",
    "AugmentedScene",
    "NeighborResult",
    "make_scene",
    "get_by_id",
    "find_index",
]
