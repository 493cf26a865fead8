"""Per-vehicle longitudinal driver models.

Every driver exposes the same two-call protocol used by the transition
function: ``observe`` reads the *pre-step* scene and updates the driver's
internal command, then ``sample_action`` returns the acceleration to apply.
Randomness is only ever drawn from the generator passed to
``sample_action``.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import math

import numpy as np

from merging_mdp.core.types import Entity, LaneTag, Scene, get_by_id
from merging_mdp.dynamics.kinematics import distance_projection, time_to_merge
from merging_mdp.geometry.roadway import MergingRoadway
from merging_mdp.perception.neighbors import find_merge_vehicle, get_front_neighbor


class DriverModel(ABC):
    """Base interface for driver models."""

    @abstractmethod
    def observe(self, scene: Scene, roadway: MergingRoadway, entity_id: int) -> None:
        """Update the internal command from the current scene."""
        pass

    @abstractmethod
    def sample_action(self, rng: np.random.Generator) -> float:
        """Longitudinal acceleration to apply this step."""
        pass


class EgoDriver(DriverModel):
    """Placeholder driver for the controlled vehicle.

    The policy writes the decoded acceleration into ``acc`` before each
    step; observing is a no-op and sampling returns the held value.
    """

    def __init__(self, acc: float = 0.0):
        self.acc = acc

    def observe(self, scene: Scene, roadway: MergingRoadway, entity_id: int) -> None:
        pass

    def sample_action(self, rng: np.random.Generator) -> float:
        return self.acc

    def __repr__(self) -> str:
        return f"EgoDriver(acc={self.acc})"


@dataclass
class IntelligentDriverModel:
    """Intelligent Driver Model (IDM) car-following law.

    Attributes:
        v_des: Desired speed (m/s)
        a_max: Maximum acceleration (m/s²)
        d_cmf: Comfortable deceleration (m/s², positive)
        d_max: Maximum deceleration (m/s², positive)
        T: Desired time headway (s)
        s_min: Minimum bumper-to-bumper gap (m)
        delta: Acceleration exponent
        sigma: Standard deviation of the action noise
        acc: Last computed acceleration
    """
    v_des: float = 15.0
    a_max: float = 2.0
    d_cmf: float = 2.0
    d_max: float = 2.0
    T: float = 1.5
    s_min: float = 2.0
    delta: float = 4.0
    sigma: float = 0.0
    acc: float = 0.0

    def track_longitudinal(self, v_ego: float, v_oth: Optional[float],
                           headway: Optional[float]) -> float:
        """IDM acceleration toward a leader.

        Args:
            v_ego: Speed of the controlled vehicle
            v_oth: Speed of the leader, None on a free road
            headway: Bumper-to-bumper gap to the leader, None on a free road

        Returns:
            Acceleration clamped to ``[-d_max, a_max]``
        """
        v_ratio = v_ego / self.v_des if self.v_des > 0 else 1.0
        if v_oth is None or headway is None:
            acc = self.a_max * (1.0 - v_ratio ** self.delta)
        elif headway > 0.0:
            dv = v_oth - v_ego
            s_des = self.s_min + v_ego * self.T - v_ego * dv / (2.0 * math.sqrt(self.a_max * self.d_cmf))
            acc = self.a_max * (1.0 - v_ratio ** self.delta - (s_des / headway) ** 2)
        else:
            acc = -self.d_max
        self.acc = min(max(acc, -self.d_max), self.a_max)
        return self.acc


def _bumper_gap(gap: float, rear: Entity, front: Entity) -> float:
    return gap - 0.5 * (rear.definition.length_m + front.definition.length_m)


class CooperativeCarFollowing(DriverModel):
    """IDM car-following that can yield to the merging vehicle.

    The acceleration blends gap-following toward the front neighbor with a
    yielding term toward the vehicle on the merge lane:
    ``acc = min(a_follow, c * a_yield + (1 - c) * a_follow)``.
    With ``cooperation = 0`` the merging vehicle is ignored; with
    ``cooperation = 1`` the driver follows the merging vehicle as its leader.

    The merging vehicle is only considered while this vehicle has not passed
    the merge point, the merging vehicle is within ``fov`` of the merge point
    and it is predicted to reach the merge point first.

    Args:
        idm: Underlying car-following law
        cooperation: Cooperation coefficient in [0, 1]
        fov: Distance before the merge point at which the merging vehicle is considered
        other_acc: Last acceleration commanded to the merging vehicle
        comfort_decel_threshold: Accelerations at or below this value are hard braking
    """

    def __init__(self,
                 idm: Optional[IntelligentDriverModel] = None,
                 cooperation: float = 0.0,
                 fov: float = 20.0,
                 other_acc: float = 0.0,
                 comfort_decel_threshold: float = -2.0):
        if not 0.0 <= cooperation <= 1.0:
            raise ValueError(f"cooperation must be in [0, 1], got {cooperation}")
        self.idm = idm if idm is not None else IntelligentDriverModel()
        self.cooperation = float(cooperation)
        self.fov = fov
        self.other_acc = other_acc
        self.comfort_decel_threshold = comfort_decel_threshold
        self.acc = 0.0

    @property
    def desired_speed(self) -> float:
        return self.idm.v_des

    def set_desired_speed(self, v_des: float) -> None:
        self.idm.v_des = v_des

    def is_hard_braking(self) -> bool:
        return self.acc <= self.comfort_decel_threshold

    def observe(self, scene: Scene, roadway: MergingRoadway, entity_id: int) -> None:
        ego = get_by_id(scene, entity_id)

        front = get_front_neighbor(scene, roadway, entity_id)
        if front is None:
            a_follow = self.idm.track_longitudinal(ego.v, None, None)
        else:
            leader = get_by_id(scene, front.id)
            a_follow = self.idm.track_longitudinal(ego.v, leader.v, _bumper_gap(front.gap, ego, leader))

        acc = a_follow
        merger = find_merge_vehicle(scene, exclude_id=entity_id)
        if merger is not None and self.cooperation > 0.0 and self._should_yield(roadway, ego, merger):
            headway = _bumper_gap(distance_projection(roadway, merger) - ego.s, ego, merger)
            a_yield = self.idm.track_longitudinal(ego.v, merger.v, headway)
            acc = min(a_follow, self.cooperation * a_yield + (1.0 - self.cooperation) * a_follow)
        self.acc = acc

    def _should_yield(self, roadway: MergingRoadway, ego: Entity, merger: Entity) -> bool:
        if ego.lane != LaneTag.MAIN or roadway.dist_to_merge(ego) >= 0.0:
            return False
        if -roadway.dist_to_merge(merger) > self.fov:
            return False
        merger_ttm = time_to_merge(roadway, merger, self.other_acc)
        if math.isinf(merger_ttm):
            return False
        return merger_ttm <= time_to_merge(roadway, ego, self.acc)

    def sample_action(self, rng: np.random.Generator) -> float:
        if self.idm.sigma > 0.0:
            return float(rng.normal(self.acc, self.idm.sigma))
        return self.acc

    def __repr__(self) -> str:
        return (f"CooperativeCarFollowing(cooperation={self.cooperation}, "
                f"desired_speed={self.desired_speed}, other_acc={self.other_acc})")
