#!/usr/bin/env python3
"""
测试 Gym 风格的汇入环境封装
"""

from __future__ import annotations
from dataclasses import replace

import numpy as np
import pytest

from merging_mdp.environments.merging_env import MergingDrivingEnv
from merging_mdp.features.codec import NUM_FEATURES


pytestmark = pytest.mark.integration


@pytest.fixture
def env(config):
    env = MergingDrivingEnv(config)
    yield env
    env.close()


def test_reset_returns_observation_and_info(env):
    obs, info = env.reset(seed=0)
    assert obs.shape == (NUM_FEATURES,)
    assert obs.dtype == np.float32
    assert env.observation_space.contains(obs)
    assert info['n_cars'] == 4
    assert info['state'] is env.state


def test_reset_with_seed_is_reproducible(env):
    obs1, _ = env.reset(seed=12)
    obs2, _ = env.reset(seed=12)
    np.testing.assert_array_equal(obs1, obs2)


def test_step_before_reset_raises(env):
    with pytest.raises(RuntimeError):
        env.step(0)


@pytest.mark.parametrize("action", [-1, 7, 2.5])
def test_invalid_action_raises(env, action):
    env.reset(seed=0)
    with pytest.raises(ValueError):
        env.step(action)


def test_step_result(env):
    env.reset(seed=0)
    result = env.step(6)

    assert result.observation.shape == (NUM_FEATURES,)
    assert result.observation.dtype == np.float32
    assert isinstance(result.reward, float)
    assert result.info['step'] == 1
    assert result.info['acceleration'] == 0.0
    assert result.info['state'] is env.state


def test_action_index_maps_to_hard_brake(env):
    env.reset(seed=0)
    result = env.step(0)
    assert result.info['acceleration'] == env.config.max_deceleration


def test_truncation_after_max_episode_steps(config):
    env = MergingDrivingEnv(replace(config, max_episode_steps=3))
    env.reset(seed=1)

    results = [env.step(6) for _ in range(3)]
    assert [r.truncated for r in results] == [False, False, True]
    assert not any(r.terminated for r in results)
    assert results[-1].info['episode_reward'] == pytest.approx(sum(r.reward for r in results))
