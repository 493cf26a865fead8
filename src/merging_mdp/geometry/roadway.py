"""Straight-lane geometry for the on-ramp merging scenario.

The main lane runs along the x axis from ``s = 0`` to
``main_lane_length + after_merge_length``. The merge lane is a straight
segment approaching from below at ``merge_lane_angle`` and ends at the
merge point, located at ``s = main_lane_length`` on the main lane.
Arc-length coordinates on both lanes start at 0 at the lane entrance.
"""

from __future__ import annotations
from typing import Tuple
import math

from merging_mdp.config.merging_config import RoadwayConfig
from merging_mdp.core.types import Entity, LaneTag


class MergingRoadway:
    """Geometry provider for a main lane and a single merge lane.

    Args:
        config: Roadway dimensions and speed limits
    """

    def __init__(self, config: RoadwayConfig | None = None):
        self.config = config if config is not None else RoadwayConfig()
        self.merge_s = self.config.main_lane_length
        self.main_lane_vmax = self.config.main_lane_vmax
        self._cos = math.cos(self.config.merge_lane_angle)
        self._sin = math.sin(self.config.merge_lane_angle)

    @property
    def main_lane_length(self) -> float:
        return self.config.main_lane_length

    @property
    def merge_point(self) -> Tuple[float, float]:
        return (self.merge_s, 0.0)

    def lane_end(self, lane: LaneTag) -> float:
        """Arc-length of the end of ``lane``."""
        if lane == LaneTag.MAIN:
            return self.config.main_lane_end
        return self.config.merge_lane_length

    def lane_length(self, lane: LaneTag) -> float:
        # lanes start at s = 0
        return self.lane_end(lane)

    def heading(self, lane: LaneTag) -> float:
        return 0.0 if lane == LaneTag.MAIN else self.config.merge_lane_angle

    def position(self, lane: LaneTag, s: float, t: float = 0.0) -> Tuple[float, float]:
        """Global (x, y) of the point at arc-length ``s`` and lateral offset ``t``."""
        if lane == LaneTag.MAIN:
            return (s, t)
        # distance still to travel before the merge point
        remaining = self.config.merge_lane_length - s
        x = self.merge_s - remaining * self._cos - t * self._sin
        y = -remaining * self._sin + t * self._cos
        return (x, y)

    def pose(self, entity: Entity) -> Tuple[float, float, float]:
        """Global (x, y, heading) of an entity."""
        x, y = self.position(entity.lane, entity.s, entity.t)
        return (x, y, self.heading(entity.lane) + entity.phi)

    def project_to_main(self, x: float, y: float) -> float:
        """Arc-length of the orthogonal projection of (x, y) onto the main lane."""
        return min(max(x, 0.0), self.config.main_lane_end)

    def main_lane_projection(self, entity: Entity) -> float:
        """Arc-length of the geometric projection of ``entity`` onto the main lane."""
        if entity.lane == LaneTag.MAIN:
            return entity.s
        x, y = self.position(entity.lane, entity.s, entity.t)
        return self.project_to_main(x, y)

    def move_along(self, lane: LaneTag, s: float, ds: float) -> Tuple[LaneTag, float]:
        """Advance ``ds`` along ``lane``.

        Overflow past the end of the merge lane continues on the main lane
        after the merge point. Positions are clamped to the lane extents.
        """
        s_new = s + ds
        if lane == LaneTag.MERGE and s_new > self.config.merge_lane_length:
            overflow = s_new - self.config.merge_lane_length
            lane, s_new = LaneTag.MAIN, self.merge_s + overflow
        return lane, min(max(s_new, 0.0), self.lane_end(lane))

    def dist_to_merge(self, entity: Entity) -> float:
        """Signed distance to the merge point.

        Negative while approaching on the merge lane, positive once past the
        merge point on the main lane.
        """
        if entity.lane == LaneTag.MAIN:
            return entity.s - self.merge_s
        return entity.s - self.config.merge_lane_length
