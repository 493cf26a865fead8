"""汇入环境模型的 Gymnasium 风格封装

将生成式环境模型（initial_state/step/reward/is_terminal）封装为标准的
reset/step 交互接口，观测为归一化后的 15 维特征向量。
"""

from __future__ import annotations
from typing import Dict, Any, Tuple, Optional
import logging

import numpy as np

from merging_mdp.config.merging_config import EnvironmentConfig, get_global_config
from merging_mdp.core.environment import Box, Discrete, DrivingEnvironment, StepResult
from merging_mdp.core.types import AugmentedScene
from merging_mdp.environments.merging_mdp import GenerativeMergingMDP
from merging_mdp.features.codec import FeatureCodec, NUM_FEATURES


logger = logging.getLogger(__name__)


class MergingDrivingEnv(DrivingEnvironment[np.ndarray, int]):
    """将 GenerativeMergingMDP 封装为 Gym 环境

    动作空间为 Discrete(7)，动作索引 k 对应模型动作 k+1
    （0 = 急刹，6 = 松开）。
    """

    def __init__(self, config: Optional[EnvironmentConfig] = None):
        """初始化汇入环境

        Args:
            config: 环境配置（如为None则使用全局配置）
        """
        self.config = config if config is not None else get_global_config()
        self.mdp = GenerativeMergingMDP(self.config)
        self.codec = FeatureCodec(self.mdp)
        self.max_episode_steps = self.config.max_episode_steps

        self._observation_space = Box(low=-np.inf, high=np.inf, shape=(NUM_FEATURES,))
        self._action_space = Discrete(7)

        # 环境状态
        self._rng = np.random.default_rng(self.config.random_seed)
        self._state: Optional[AugmentedScene] = None
        self._step_count = 0
        self._episode_reward = 0.0

    @property
    def observation_space(self) -> Box:
        return self._observation_space

    @property
    def action_space(self) -> Discrete:
        return self._action_space

    @property
    def state(self) -> Optional[AugmentedScene]:
        """当前完整场景"""
        return self._state

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """重置环境并采样新的初始场景

        Args:
            seed: 随机种子（为None时沿用当前随机数生成器）
            options: 额外选项（暂未使用）

        Returns:
            (初始观测, info 字典)
        """
        if seed is not None:
            self._rng = np.random.default_rng(seed)

        self._state = self.mdp.initial_state(self._rng)
        self._step_count = 0
        self._episode_reward = 0.0

        info = {
            'n_cars': self.mdp.n_cars_main,
            'state': self._state,
        }
        return self.codec.encode(self._state).astype(np.float32), info

    def step(self, action: int) -> StepResult[np.ndarray]:
        """执行一步仿真

        Args:
            action: 动作索引 0~6

        Returns:
            StepResult 包含下一个观测、奖励等
        """
        if self._state is None:
            raise RuntimeError("Must call reset() before step()")
        if not self._action_space.contains(action):
            raise ValueError(f"Invalid action index: {action}")

        mdp_action = int(action) + 1
        next_state = self.mdp.step(self._state, mdp_action, self._rng)
        reward = self.mdp.reward(self._state, mdp_action, next_state)

        collision = self.mdp.is_collision(next_state)
        terminated = self.mdp.is_terminal(next_state)
        self._step_count += 1
        truncated = (not terminated) and self._step_count >= self.max_episode_steps

        self._state = next_state
        self._episode_reward += reward

        info = {
            'collision': collision,
            'goal_reached': self.mdp.reach_goal(next_state.ego),
            'acceleration': next_state.ego_info.acc,
            'step': self._step_count,
            'episode_reward': self._episode_reward,
            'state': next_state,
        }
        if terminated or truncated:
            logger.debug(f"Episode finished after {self._step_count} steps, "
                         f"reward={self._episode_reward:.3f}")

        return StepResult(
            observation=self.codec.encode(next_state).astype(np.float32),
            reward=reward,
            terminated=terminated,
            truncated=truncated,
            info=info,
        )
