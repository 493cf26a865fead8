#!/usr/bin/env python3
"""
测试纵向运动学推进、主路循环与闭式预测
"""

from __future__ import annotations
import math

import pytest

from merging_mdp.core.types import EGO_ID, Entity, LaneTag
from merging_mdp.dynamics.kinematics import (
    braking_distance,
    collision_time,
    constant_acceleration_prediction,
    distance_projection,
    propagate,
    time_to_merge,
    wrap_around,
)
from merging_mdp.geometry.roadway import MergingRoadway


pytestmark = pytest.mark.unit


@pytest.fixture
def roadway():
    # 默认几何：汇入点 s=100，主路终点 s=150，匝道长 50
    return MergingRoadway()


def test_propagate_constant_acceleration(roadway):
    """匀加速推进：Δs = v·dt + ½·a·dt²，v' = v + a·dt。"""
    veh = Entity(id=2, lane=LaneTag.MAIN, s=10.0, v=5.0, t=0.3, phi=0.05)
    nxt = propagate(veh, 2.0, 0.5, roadway, no_backup=True)

    assert nxt.s == pytest.approx(12.75)
    assert nxt.v == pytest.approx(6.0)
    assert nxt.lane == LaneTag.MAIN
    # 横向偏移与航向保持不变
    assert nxt.t == veh.t
    assert nxt.phi == veh.phi
    # 输入不被修改
    assert veh.s == 10.0 and veh.v == 5.0


def test_propagate_no_backup_clamps(roadway):
    """no_backup 时位移与速度都不小于0。"""
    veh = Entity(id=2, lane=LaneTag.MAIN, s=20.0, v=0.5)

    clamped = propagate(veh, -4.0, 0.5, roadway, no_backup=True)
    assert clamped.s == pytest.approx(20.0)
    assert clamped.v == 0.0

    free = propagate(veh, -4.0, 0.5, roadway, no_backup=False)
    assert free.s == pytest.approx(19.75)
    assert free.v == pytest.approx(-1.5)


def test_propagate_through_merge_point(roadway):
    """匝道末端之后继续行驶到主路汇入点之后。"""
    veh = Entity(id=EGO_ID, lane=LaneTag.MERGE, s=49.0, v=4.0)
    nxt = propagate(veh, 0.0, 0.5, roadway)

    assert nxt.lane == LaneTag.MAIN
    assert nxt.s == pytest.approx(101.0)


def test_wrap_around_background_vehicle(roadway):
    """距主路终点 2.0 以内的背景车辆回到起点，速度不变。"""
    near_end = Entity(id=2, lane=LaneTag.MAIN, s=148.0, v=6.5)
    wrapped = wrap_around(near_end, roadway)
    assert wrapped.s == 0.0
    assert wrapped.v == 6.5
    assert wrapped.lane == LaneTag.MAIN

    before_tol = Entity(id=2, lane=LaneTag.MAIN, s=147.9, v=6.5)
    assert wrap_around(before_tol, roadway) == before_tol


def test_wrap_around_skips_ego_and_merge_lane(roadway):
    """自车与匝道车辆从不循环。"""
    ego = Entity(id=EGO_ID, lane=LaneTag.MAIN, s=150.0, v=10.0)
    assert wrap_around(ego, roadway) == ego

    merging = Entity(id=3, lane=LaneTag.MERGE, s=50.0, v=10.0)
    assert wrap_around(merging, roadway) == merging


def test_time_to_merge(roadway):
    """到达汇入点的时间及无穷大哨兵。"""
    veh = Entity(id=EGO_ID, lane=LaneTag.MERGE, s=30.0, v=10.0)

    assert time_to_merge(roadway, veh) == pytest.approx(2.0)
    assert time_to_merge(roadway, veh, 2.0) == pytest.approx((-10.0 + math.sqrt(180.0)) / 2.0)
    # 判别式为负：停车前到不了汇入点
    assert math.isinf(time_to_merge(roadway, veh, -10.0))

    stopped = veh.with_state(v=0.0)
    assert math.isinf(time_to_merge(roadway, stopped))

    at_merge = Entity(id=2, lane=LaneTag.MAIN, s=100.0, v=0.0)
    assert time_to_merge(roadway, at_merge) == 0.0

    passed = Entity(id=2, lane=LaneTag.MAIN, s=110.0, v=5.0)
    assert math.isinf(time_to_merge(roadway, passed))
    assert math.isinf(time_to_merge(roadway, passed, 1.0))


def test_distance_projection(roadway):
    """匝道车辆按到汇入点的距离投影到主路。"""
    assert distance_projection(roadway, Entity(id=2, lane=LaneTag.MAIN, s=42.0, v=0.0)) == 42.0
    merging = Entity(id=EGO_ID, lane=LaneTag.MERGE, s=30.0, v=0.0)
    assert distance_projection(roadway, merging) == pytest.approx(80.0)


def test_collision_time(roadway):
    """碰撞时间：匀速接近与无碰撞哨兵。"""
    veh = Entity(id=2, lane=LaneTag.MAIN, s=90.0, v=10.0)

    # 相对位置 5，相对速度 -2
    merger = Entity(id=EGO_ID, lane=LaneTag.MERGE, s=45.0, v=8.0)
    assert collision_time(roadway, veh, merger, 0.0, 0.0) == pytest.approx(2.5)

    # 相对速度与相对加速度都为0
    same_speed = merger.with_state(v=10.0)
    assert collision_time(roadway, veh, same_speed, 0.0, 0.0) is None

    # 判别式为负
    assert collision_time(roadway, veh, same_speed, 2.0, 0.0) is None


def test_braking_distance():
    assert braking_distance(10.0, 2.0, -2.0) == pytest.approx(16.0)


def test_constant_acceleration_prediction(roadway):
    """速度限制在 [0, v_des]，不后退。"""
    veh = Entity(id=2, lane=LaneTag.MAIN, s=0.0, v=4.0)

    accelerating = constant_acceleration_prediction(roadway, veh, 2.0, 2.0, 6.0)
    assert accelerating.v == pytest.approx(6.0)
    assert accelerating.s == pytest.approx(5.0)

    cruising = constant_acceleration_prediction(roadway, veh, 0.0, 2.0, 6.0)
    assert cruising.v == pytest.approx(4.0)
    assert cruising.s == pytest.approx(8.0)

    braking = constant_acceleration_prediction(roadway, veh, -4.0, 5.0, 6.0)
    assert braking.v == 0.0
    assert braking.s == pytest.approx(2.0)
