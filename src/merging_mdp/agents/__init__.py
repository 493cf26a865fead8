"""Driver models for the ego and background vehicles."""

from merging_mdp.agents.drivers import (
    DriverModel,
    EgoDriver,
    IntelligentDriverModel,
    CooperativeCarFollowing,
)

__all__ = [
    "DriverModel",
    "EgoDriver",
    "IntelligentDriverModel",
    "CooperativeCarFollowing",
]
