"""Vehicle kinematics and closed-form predictions."""

from merging_mdp.dynamics.kinematics import (
    WRAP_AROUND_TOL,
    propagate,
    wrap_around,
    time_to_merge,
    distance_projection,
    collision_time,
    braking_distance,
    constant_acceleration_prediction,
)

__all__ = [
    "WRAP_AROUND_TOL",
    "propagate",
    "wrap_around",
    "time_to_merge",
    "distance_projection",
    "collision_time",
    "braking_distance",
    "constant_acceleration_prediction",
]
