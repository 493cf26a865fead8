"""
车辆外形碰撞检测模块

使用分离轴定理（SAT）判断两个有向边界框（OBB）是否重叠。
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple
import math

import numpy as np

from merging_mdp.core.types import Entity, Scene, find_index
from merging_mdp.geometry.roadway import MergingRoadway


@dataclass
class VehicleShape:
    """车辆形状定义"""
    center: Tuple[float, float]  # 中心位置
    length: float               # 长度
    width: float                # 宽度
    heading: float              # 朝向角度 (弧度)

    @classmethod
    def from_entity(cls, entity: Entity, roadway: MergingRoadway) -> "VehicleShape":
        x, y, heading = roadway.pose(entity)
        return cls(center=(x, y),
                   length=entity.definition.length_m,
                   width=entity.definition.width_m,
                   heading=heading)

    @property
    def radius(self) -> float:
        """外接圆半径，用于粗筛"""
        return 0.5 * math.hypot(self.length, self.width)

    def get_corners(self) -> np.ndarray:
        """获取车辆四个角点的世界坐标，形状 (4, 2)"""
        half_length = self.length / 2
        half_width = self.width / 2

        # 在车辆本地坐标系中的四个角点：后左、后右、前右、前左
        local_corners = np.array([
            [-half_length, -half_width],
            [-half_length, half_width],
            [half_length, half_width],
            [half_length, -half_width],
        ])

        cos_h = math.cos(self.heading)
        sin_h = math.sin(self.heading)
        rotation = np.array([[cos_h, -sin_h], [sin_h, cos_h]])

        return local_corners @ rotation.T + np.asarray(self.center)


def _separating_axes(corners: np.ndarray) -> List[np.ndarray]:
    axes = []
    for i in range(2):  # 矩形只有两组不平行的边
        edge = corners[(i + 1) % 4] - corners[i]
        normal = np.array([-edge[1], edge[0]])
        norm = np.linalg.norm(normal)
        if norm > 0:
            axes.append(normal / norm)
    return axes


def check_obb_collision(shape1: VehicleShape, shape2: VehicleShape) -> bool:
    """
    使用分离轴定理(SAT)检查两个有向边界框(OBB)是否碰撞

    Args:
        shape1: 第一个车辆形状
        shape2: 第二个车辆形状

    Returns:
        bool: 是否发生碰撞（边界接触也视为碰撞）
    """
    # 外接圆不相交时必然无碰撞
    dx = shape1.center[0] - shape2.center[0]
    dy = shape1.center[1] - shape2.center[1]
    if math.hypot(dx, dy) > shape1.radius + shape2.radius:
        return False

    corners1 = shape1.get_corners()
    corners2 = shape2.get_corners()

    for axis in _separating_axes(corners1) + _separating_axes(corners2):
        proj1 = corners1 @ axis
        proj2 = corners2 @ axis
        if proj1.max() < proj2.min() or proj2.max() < proj1.min():
            # 在这个轴上没有重叠，说明没有碰撞
            return False

    # 所有轴上都有重叠，说明发生碰撞
    return True


def collision_checker(scene: Scene, roadway: MergingRoadway, subject_id: int) -> bool:
    """
    检查指定车辆是否与场景中其他任意车辆外形重叠

    Args:
        scene: 场景
        roadway: 道路几何
        subject_id: 被检查车辆ID

    Returns:
        bool: 是否发生碰撞；车辆不在场景中时返回 False
    """
    index = find_index(scene, subject_id)
    if index is None:
        return False
    subject_shape = VehicleShape.from_entity(scene[index], roadway)
    for veh in scene:
        if veh.id == subject_id:
            continue
        if check_obb_collision(subject_shape, VehicleShape.from_entity(veh, roadway)):
            return True
    return False
