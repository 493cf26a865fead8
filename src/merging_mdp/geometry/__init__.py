"""Geometry collaborators: lane frames and vehicle footprints."""

from merging_mdp.geometry.roadway import MergingRoadway
from merging_mdp.geometry.footprint import VehicleShape, check_obb_collision, collision_checker

__all__ = [
    "MergingRoadway",
    "VehicleShape",
    "check_obb_collision",
    "collision_checker",
]
