#!/usr/bin/env python3
"""
测试特征编解码：紧凑特征、哨兵约定、重建与全局特征
"""

from __future__ import annotations
import math
from dataclasses import replace

import numpy as np
import pytest
import torch

from merging_mdp.core.types import EGO_ID, Entity, LaneTag, get_by_id
from merging_mdp.environments.merging_mdp import GenerativeMergingMDP
from merging_mdp.features.codec import NUM_FEATURES, SENTINEL, FeatureCodec


pytestmark = pytest.mark.unit


@pytest.fixture
def codec(mdp):
    return FeatureCodec(mdp)


@pytest.fixture
def main_ego_state(make_state):
    """自车已在主路 s=110，前后各有一辆车。"""
    return make_state([
        Entity(id=EGO_ID, lane=LaneTag.MAIN, s=110.0, v=8.0),
        Entity(id=2, lane=LaneTag.MAIN, s=125.0, v=6.0),
        Entity(id=3, lane=LaneTag.MAIN, s=95.0, v=7.0),
    ], acc=1.0)


@pytest.fixture
def merge_ego_state(make_state):
    """自车在匝道 s=30，距汇入点 20 米。"""
    return make_state([
        Entity(id=2, lane=LaneTag.MAIN, s=104.0, v=5.0),
        Entity(id=3, lane=LaneTag.MAIN, s=70.0, v=6.0),
        Entity(id=EGO_ID, lane=LaneTag.MERGE, s=30.0, v=9.0),
    ], acc=-1.0)


def test_ego_only_uses_sentinels(codec, make_state):
    state = make_state([Entity(id=EGO_ID, lane=LaneTag.MERGE, s=0.0, v=10.0)])
    expected = [-50.0, 10.0, 0.0] + [SENTINEL, SENTINEL, 0.0] * 4
    np.testing.assert_allclose(codec.extract(state), expected)


def test_extract_main_lane_ego(codec, main_ego_state):
    features = codec.extract(main_ego_state)
    assert features.shape == (NUM_FEATURES,)
    np.testing.assert_allclose(features, [
        10.0, 8.0, 1.0,
        15.0, 6.0, 0.0,
        15.0, 6.0, 0.0,
        15.0, 7.0, 0.0,
        15.0, 7.0, 0.0,
    ])


def test_extract_merge_lane_ego(codec, merge_ego_state):
    s_main = 100.0 - 20.0 * math.cos(math.pi / 7)
    np.testing.assert_allclose(codec.extract(merge_ego_state), [
        -20.0, 9.0, -1.0,
        4.0, 5.0, 0.0,
        104.0 - s_main, 5.0, 0.0,
        s_main - 70.0, 6.0, 0.0,
        30.0, 6.0, 0.0,
    ])


def test_observation_flags(config, merge_ego_state, cooperative_driver):
    """不观测速度时速度槽为0；观测合作系数时写入驾驶员的合作系数。"""
    flagged = replace(config, observe_speed=False, observe_cooperation=True)
    mdp = GenerativeMergingMDP(flagged)
    mdp.set_driver(2, cooperative_driver(cooperation=0.7))
    features = FeatureCodec(mdp).extract(merge_ego_state)

    assert features[4] == 0.0
    assert features[5] == pytest.approx(0.7)
    assert features[7] == 0.0
    assert features[8] == pytest.approx(0.7)
    # 没有驾驶员模型的车辆合作系数记为0
    assert features[11] == 0.0
    assert features[14] == 0.0


def test_normalize_round_trip(codec, merge_ego_state):
    raw = codec.extract(merge_ego_state)
    normalized = codec.normalize(raw)

    assert normalized is not raw
    assert normalized[0] == pytest.approx(-20.0 / 100.0)
    assert normalized[1] == pytest.approx(9.0 / 15.0)
    assert normalized[2] == pytest.approx(-1.0 / -4.0)
    np.testing.assert_allclose(codec.unnormalize(normalized), raw)
    np.testing.assert_allclose(codec.encode(merge_ego_state), normalized)


def test_reconstruct_main_lane_ego(codec, main_ego_state):
    rebuilt = codec.decode(codec.encode(main_ego_state))

    assert rebuilt.ego_info.acc == pytest.approx(1.0)
    ego = get_by_id(rebuilt.scene, EGO_ID)
    assert ego.lane == LaneTag.MAIN
    assert ego.s == pytest.approx(110.0)
    assert ego.v == pytest.approx(8.0)

    # 四个邻车按特征顺序编号
    placed = {veh.id: (veh.lane, veh.s, veh.v) for veh in rebuilt.scene if veh.id != EGO_ID}
    assert sorted(placed) == [EGO_ID + 1, EGO_ID + 2, EGO_ID + 3, EGO_ID + 4]
    assert placed[EGO_ID + 1] == (LaneTag.MAIN, pytest.approx(125.0), pytest.approx(6.0))
    assert placed[EGO_ID + 2] == (LaneTag.MAIN, pytest.approx(125.0), pytest.approx(6.0))
    assert placed[EGO_ID + 3] == (LaneTag.MAIN, pytest.approx(95.0), pytest.approx(7.0))
    assert placed[EGO_ID + 4] == (LaneTag.MAIN, pytest.approx(95.0), pytest.approx(7.0))


def test_reconstruct_merge_lane_ego(codec, merge_ego_state):
    rebuilt = codec.reconstruct(codec.encode(merge_ego_state))

    ego = rebuilt.ego
    assert ego.lane == LaneTag.MERGE
    assert ego.s == pytest.approx(30.0)
    assert ego.v == pytest.approx(9.0)

    positions = {veh.id: veh.s for veh in rebuilt.scene if veh.id != EGO_ID}
    assert positions[EGO_ID + 1] == pytest.approx(104.0)
    assert positions[EGO_ID + 2] == pytest.approx(104.0)
    assert positions[EGO_ID + 3] == pytest.approx(70.0)
    assert positions[EGO_ID + 4] == pytest.approx(70.0)

    # 重建场景再编码得到相同特征
    np.testing.assert_allclose(codec.encode(rebuilt), codec.encode(merge_ego_state), atol=1e-9)


def test_reconstruct_skips_missing_neighbors(codec, make_state):
    state = make_state([
        Entity(id=EGO_ID, lane=LaneTag.MAIN, s=110.0, v=8.0),
        Entity(id=2, lane=LaneTag.MAIN, s=125.0, v=6.0),
    ])
    rebuilt = codec.reconstruct(codec.encode(state))
    ids = sorted(veh.id for veh in rebuilt.scene)
    assert ids == [EGO_ID, EGO_ID + 1, EGO_ID + 2]


def test_encode_batch_and_tensor(codec, main_ego_state, merge_ego_state):
    batch = codec.encode_batch([main_ego_state, merge_ego_state])
    assert batch.shape == (2, NUM_FEATURES)
    np.testing.assert_allclose(batch[1], codec.encode(merge_ego_state))
    assert codec.encode_batch([]).shape == (0, NUM_FEATURES)

    tensor = codec.to_tensor([main_ego_state, merge_ego_state])
    assert tensor.dtype == torch.float32
    assert tuple(tensor.shape) == (2, NUM_FEATURES)


def test_feature_info(codec):
    info = codec.feature_info
    assert info['total_dim'] == NUM_FEATURES
    assert info['feature_ranges']['merge_rear'] == (12, 15)
    assert info['scales']['acceleration'] == -4.0


def test_global_extract_skips_ego_anywhere(codec, make_state):
    """全局特征按场景顺序排列背景车辆，自车位置不影响结果。"""
    state = make_state([
        Entity(id=2, lane=LaneTag.MAIN, s=20.0, v=5.0),
        Entity(id=EGO_ID, lane=LaneTag.MERGE, s=10.0, v=10.0),
        Entity(id=3, lane=LaneTag.MAIN, s=60.0, v=4.0),
    ], acc=0.5)
    features = codec.global_extract(state)
    np.testing.assert_allclose(features, [
        -40.0, 10.0, 0.5,
        20.0, 5.0, 0.5,
        60.0, 4.0, 0.5,
    ])


def test_global_extract_observed_cooperation(config, make_state, cooperative_driver):
    mdp = GenerativeMergingMDP(replace(config, observe_cooperation=True))
    mdp.set_driver(2, cooperative_driver(cooperation=0.2))
    state = make_state([
        Entity(id=EGO_ID, lane=LaneTag.MERGE, s=10.0, v=10.0),
        Entity(id=2, lane=LaneTag.MAIN, s=20.0, v=5.0),
        Entity(id=3, lane=LaneTag.MAIN, s=60.0, v=4.0),
    ])
    features = FeatureCodec(mdp).global_extract(state)
    assert features[5] == pytest.approx(0.2)
    # 未知驾驶员
    assert features[8] == 0.5


def test_global_normalize(codec):
    raw = np.array([-40.0, 10.0, 0.5, 20.0, 5.0, 0.5])
    normalized = codec.global_normalize(raw)
    np.testing.assert_allclose(normalized, [-0.4, 10.0 / 15.0, -0.125, 0.2, 5.0 / 15.0, 0.5])
    np.testing.assert_allclose(codec.global_unnormalize(normalized), raw)

    with pytest.raises(ValueError):
        codec.global_normalize(np.zeros(5))
