from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Tuple
from enum import Enum


EGO_ID = 1  # 自车保留ID，背景车辆ID依次为 EGO_ID+1, EGO_ID+2, ...


class LaneTag(Enum):
    """车道标签枚举。"""
    MAIN = "main"      # 主路（含汇入点之后的延伸段）
    MERGE = "merge"    # 匝道


@dataclass(frozen=True)
class VehicleDef:
    """车辆外形定义（用于碰撞检测）。"""
    length_m: float = 4.0   # 车长 m
    width_m: float = 1.8    # 车宽 m


@dataclass(frozen=True)
class Entity:
    """场景中的单个车辆。

    不可变对象：每次状态转移都生成新的 Entity，从不原地修改。

    Attributes:
        id: 场景内唯一的车辆ID。
        lane: 所在车道。
        s: 沿车道的弧长位置，单位米。
        v: 纵向速度，单位米/秒。
        t: 横向偏移，单位米。
        phi: 相对车道的航向角，单位弧度。
        definition: 车辆外形。
    """
    id: int
    lane: LaneTag
    s: float
    v: float
    t: float = 0.0
    phi: float = 0.0
    definition: VehicleDef = field(default_factory=VehicleDef)

    def with_state(self, **changes) -> "Entity":
        """返回修改了部分字段的新 Entity。"""
        return replace(self, **changes)


Scene = Tuple[Entity, ...]


@dataclass(frozen=True)
class EgoInfo:
    """自车附加信息：上一次下发的加速度指令。"""
    acc: float = 0.0


@dataclass(frozen=True)
class AugmentedScene:
    """附带自车信息的场景。

    离散动作是相对上一次加速度指令的 jerk 增量，无法从运动学状态恢复，
    因此把上一次的加速度指令与场景一起携带。
    """
    scene: Scene
    ego_info: EgoInfo = field(default_factory=EgoInfo)

    @property
    def ego(self) -> Entity:
        return get_by_id(self.scene, EGO_ID)


@dataclass(frozen=True)
class NeighborResult:
    """邻车查询结果。

    Attributes:
        id: 邻车ID。
        gap: 与邻车的纵向中心距（m），可以为0；"没有邻车"用 None 表示。
    """
    id: int
    gap: float


def make_scene(entities: Iterable[Entity]) -> Scene:
    """由若干车辆构造场景，检查ID唯一性。"""
    scene = tuple(entities)
    ids = [veh.id for veh in scene]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate vehicle ids in scene: {ids}")
    return scene


def find_index(scene: Scene, vehicle_id: int) -> Optional[int]:
    """返回车辆在场景中的下标，不存在时返回 None。"""
    for i, veh in enumerate(scene):
        if veh.id == vehicle_id:
            return i
    return None


def get_by_id(scene: Scene, vehicle_id: int) -> Entity:
    """按ID获取车辆，不存在时抛出 KeyError。"""
    for veh in scene:
        if veh.id == vehicle_id:
            return veh
    raise KeyError(f"Vehicle {vehicle_id} not in scene")
