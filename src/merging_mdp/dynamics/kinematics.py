"""Closed-form longitudinal kinematics.

Vehicles follow their lane with constant acceleration over a timestep.
The module also provides the closed-form predictions used by the
cooperative driver model (time to reach the merge point, time to
collision, braking distance). Degenerate cases of these predictions are
frequent and expected: they return ``math.inf`` ("never") or ``None``
("no collision") instead of raising.
"""

from __future__ import annotations
from typing import Optional
import math

from merging_mdp.core.types import EGO_ID, Entity, LaneTag
from merging_mdp.geometry.roadway import MergingRoadway


WRAP_AROUND_TOL = 2.0  # 距主路终点小于该距离的背景车辆回到主路起点


def propagate(entity: Entity, accel: float, dt: float, roadway: MergingRoadway,
              no_backup: bool = True) -> Entity:
    """Advance ``entity`` by one timestep at constant acceleration.

    Args:
        entity: Vehicle to propagate
        accel: Commanded longitudinal acceleration (m/s²)
        dt: Timestep (s)
        roadway: Geometry provider
        no_backup: Clamp displacement and speed at zero

    Returns:
        New entity; lateral offset and relative heading are preserved
    """
    ds = entity.v * dt + 0.5 * accel * dt * dt
    v_next = entity.v + accel * dt
    if no_backup:
        ds = max(ds, 0.0)
        v_next = max(v_next, 0.0)
    lane, s_next = roadway.move_along(entity.lane, entity.s, ds)
    return entity.with_state(lane=lane, s=s_next, v=v_next)


def wrap_around(entity: Entity, roadway: MergingRoadway) -> Entity:
    """Respawn a background vehicle at the beginning of the main lane.

    Only non-ego vehicles on the main lane within ``WRAP_AROUND_TOL`` of the
    lane end are relocated; speed is unchanged.
    """
    if (entity.lane == LaneTag.MAIN
            and entity.id != EGO_ID
            and entity.s >= roadway.lane_end(LaneTag.MAIN) - WRAP_AROUND_TOL):
        return entity.with_state(s=0.0)
    return entity


def time_to_merge(roadway: MergingRoadway, entity: Entity, a: float = 0.0) -> float:
    """Time for ``entity`` to reach the merge point.

    Uses a constant-velocity prediction when ``a`` is zero, constant
    acceleration otherwise. Returns ``math.inf`` if the merge point is never
    reached (vehicle stops, negative discriminant, already past it).
    """
    d = -roadway.dist_to_merge(entity)
    v = entity.v
    if d < 0.0:
        return math.inf
    if math.isclose(a, 0.0, abs_tol=1e-9):
        if v > 0.0:
            return d / v
        return 0.0 if d == 0.0 else math.inf
    delta = v * v + 2.0 * a * d
    if delta < 0.0:
        return math.inf
    t = (-v + math.sqrt(delta)) / a
    return t if t >= 0.0 else math.inf


def distance_projection(roadway: MergingRoadway, entity: Entity) -> float:
    """Position of ``entity`` on the main lane, conserving the distance to the merge point."""
    if entity.lane == LaneTag.MAIN:
        return entity.s
    return roadway.merge_s + roadway.dist_to_merge(entity)


def collision_time(roadway: MergingRoadway, veh: Entity, merge_veh: Entity,
                   acc_merge: float, acc_min: float) -> Optional[float]:
    """Time to collision between ``veh`` and ``merge_veh`` under constant accelerations.

    Both vehicles are compared through their distance projection onto the
    main lane. Returns ``None`` when no collision is predicted.
    """
    rel_vel = merge_veh.v - veh.v
    rel_pos = distance_projection(roadway, merge_veh) - distance_projection(roadway, veh)
    rel_acc = acc_merge - acc_min
    delta = rel_vel ** 2 - 2.0 * rel_acc * rel_pos
    if delta < 0.0:
        return None
    if rel_acc != 0.0:
        return (-rel_vel + math.sqrt(delta)) / rel_acc
    if rel_vel != 0.0:
        return -rel_pos / rel_vel
    return None


def braking_distance(v: float, t_coll: float, acc: float) -> float:
    """Distance covered in ``t_coll`` from speed ``v`` at constant acceleration ``acc``."""
    return v * t_coll + 0.5 * acc * t_coll ** 2


def constant_acceleration_prediction(roadway: MergingRoadway, entity: Entity, acc: float,
                                     time: float, v_des: float) -> Entity:
    """State of ``entity`` after ``time`` seconds at constant acceleration.

    The speed saturates in ``[0, v_des]`` and the vehicle never moves backwards.
    """
    v1 = entity.v
    v2 = min(max(v1 + acc * time, 0.0), v_des)
    if math.isclose(acc, 0.0, abs_tol=1e-9):
        ds = v1 * time
    else:
        ds = (v2 ** 2 - v1 ** 2) / (2.0 * acc)
    ds = max(0.0, ds)
    lane, s_next = roadway.move_along(entity.lane, entity.s, ds)
    return entity.with_state(lane=lane, s=s_next, v=v2)
