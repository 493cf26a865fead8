"""Lane-aware nearest-vehicle queries.

A vehicle on the merge lane is projected through the merge point for its
own-lane queries, so that it sees main-lane traffic as if it had already
merged. The main-lane queries instead use the geometric projection of the
vehicle onto the main lane.

Gaps are center-to-center arc-length differences. "No neighbor" is
``None``, which is distinct from a neighbor at a gap of 0.
"""

from __future__ import annotations
from typing import NamedTuple, Optional

from merging_mdp.core.types import Entity, LaneTag, NeighborResult, Scene, get_by_id
from merging_mdp.geometry.roadway import MergingRoadway


DEFAULT_MAX_DISTANCE = 250.0


class Neighbors(NamedTuple):
    """The four neighbors of a subject vehicle."""
    front: Optional[NeighborResult]
    merge_rear: Optional[NeighborResult]
    fore_main: Optional[NeighborResult]
    rear_main: Optional[NeighborResult]


def find_neighbor(scene: Scene,
                  roadway: MergingRoadway,
                  subject: Entity,
                  lane: Optional[LaneTag] = None,
                  rear: bool = False,
                  s_ref: Optional[float] = None,
                  max_distance: float = DEFAULT_MAX_DISTANCE) -> Optional[NeighborResult]:
    """Nearest vehicle ahead of (or behind) ``subject`` on ``lane``.

    Args:
        scene: Scene to search
        roadway: Geometry provider
        subject: Reference vehicle, never returned as its own neighbor
        lane: Lane to search, defaults to the subject's lane
        rear: Search behind instead of ahead
        s_ref: Reference arc-length on ``lane``; defaults to the subject's
            position, or its main-lane projection when searching the main
            lane from the merge lane
        max_distance: Maximum gap considered

    Returns:
        The closest neighbor, or None if no vehicle qualifies
    """
    target_lane = subject.lane if lane is None else lane
    if s_ref is None:
        if target_lane == subject.lane:
            s_ref = subject.s
        elif target_lane == LaneTag.MAIN:
            s_ref = roadway.main_lane_projection(subject)
        else:
            raise ValueError("Cannot project a main-lane vehicle onto the merge lane")

    best: Optional[NeighborResult] = None
    for veh in scene:
        if veh.id == subject.id or veh.lane != target_lane:
            continue
        gap = s_ref - veh.s if rear else veh.s - s_ref
        # a vehicle level with the reference point counts as ahead
        if gap < 0.0 or (rear and gap == 0.0) or gap > max_distance:
            continue
        if best is None or gap < best.gap:
            best = NeighborResult(id=veh.id, gap=gap)
    return best


def _own_lane_neighbor(scene: Scene, roadway: MergingRoadway, subject: Entity,
                       rear: bool) -> Optional[NeighborResult]:
    if subject.lane == LaneTag.MAIN:
        return find_neighbor(scene, roadway, subject, rear=rear)
    return find_neighbor(scene, roadway, subject, lane=LaneTag.MAIN, rear=rear,
                         s_ref=roadway.merge_s)


def get_front_neighbor(scene: Scene, roadway: MergingRoadway,
                       subject_id: int) -> Optional[NeighborResult]:
    """Front neighbor in the subject's lane, projected through the merge point."""
    return _own_lane_neighbor(scene, roadway, get_by_id(scene, subject_id), rear=False)


def get_rear_neighbor(scene: Scene, roadway: MergingRoadway,
                      subject_id: int) -> Optional[NeighborResult]:
    """Rear neighbor in the subject's lane, projected through the merge point."""
    return _own_lane_neighbor(scene, roadway, get_by_id(scene, subject_id), rear=True)


def get_neighbors(scene: Scene, roadway: MergingRoadway, subject_id: int) -> Neighbors:
    """All four neighbor queries for ``subject_id``."""
    subject = get_by_id(scene, subject_id)
    return Neighbors(
        front=_own_lane_neighbor(scene, roadway, subject, rear=False),
        merge_rear=_own_lane_neighbor(scene, roadway, subject, rear=True),
        fore_main=find_neighbor(scene, roadway, subject, lane=LaneTag.MAIN),
        rear_main=find_neighbor(scene, roadway, subject, lane=LaneTag.MAIN, rear=True),
    )


def find_merge_vehicle(scene: Scene, exclude_id: Optional[int] = None) -> Optional[Entity]:
    """First vehicle on the merge lane, if any."""
    for veh in scene:
        if veh.lane == LaneTag.MERGE and veh.id != exclude_id:
            return veh
    return None
