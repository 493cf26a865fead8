"""Neighbor queries over a merging scene."""

from merging_mdp.perception.neighbors import (
    DEFAULT_MAX_DISTANCE,
    Neighbors,
    find_neighbor,
    get_front_neighbor,
    get_rear_neighbor,
    get_neighbors,
    find_merge_vehicle,
)

__all__ = [
    "DEFAULT_MAX_DISTANCE",
    "Neighbors",
    "find_neighbor",
    "get_front_neighbor",
    "get_rear_neighbor",
    "get_neighbors",
    "find_merge_vehicle",
]
