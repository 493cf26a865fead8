"""
汇入场景环境配置模块

集中管理道路几何、初始状态分布、奖励、背景车辆驾驶员模型等参数。
配置对象构造后不可变；需要修改时用 dataclasses.replace 生成新对象，
并行 worker 之间通过深拷贝环境实例隔离。
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging
import math
import os

import yaml

from merging_mdp.core.types import VehicleDef


logger = logging.getLogger(__name__)


TRAFFIC_SPEED_POLICIES = ("mixed", "fast", "default")
DRIVER_TYPE_POLICIES = ("random", "binary", "aggressive", "cooperative")


@dataclass(frozen=True)
class RoadwayConfig:
    """道路几何配置"""
    main_lane_length: float = 100.0      # 主路起点到汇入点的长度（米）
    after_merge_length: float = 50.0     # 汇入点之后主路延伸长度（米）
    merge_lane_length: float = 50.0      # 匝道长度（米）
    merge_lane_angle: float = math.pi / 7  # 匝道与主路夹角（弧度）
    lane_width: float = 3.0              # 车道宽度（米）
    main_lane_vmax: float = 15.0         # 主路限速（m/s），也是速度归一化常数
    merge_lane_vmax: float = 10.0        # 匝道限速（m/s）

    def __post_init__(self):
        assert self.main_lane_length > 0, "main_lane_length must be positive"
        assert self.after_merge_length >= 0, "after_merge_length must be non-negative"
        assert self.merge_lane_length > 0, "merge_lane_length must be positive"
        assert 0 < self.merge_lane_angle < math.pi / 2, "merge_lane_angle must be in (0, pi/2)"
        assert self.main_lane_vmax > 0, "main_lane_vmax must be positive"

    @property
    def main_lane_end(self) -> float:
        """主路终点弧长"""
        return self.main_lane_length + self.after_merge_length


@dataclass(frozen=True)
class InitialStateConfig:
    """初始状态分布配置"""
    n_cars_main: int = 1                 # 主路背景车辆数
    max_cars: int = 16                   # 最大车辆数（也是主路起始槽位数）
    min_cars: int = 0                    # 随机车辆数下限
    random_n_cars: bool = False          # 每次采样时是否重新随机车辆数
    traffic_speed: str = "mixed"         # 期望速度策略: "mixed" | "fast" | "default"
    driver_type: str = "random"          # 合作系数策略: "random" | "binary" | "aggressive" | "cooperative"
    max_burn_in: int = 20                # 预热步数上限
    min_burn_in: int = 10                # 预热步数下限
    initial_ego_velocity: float = 10.0   # 自车初始速度（m/s）
    initial_velocity: float = 5.0        # 背景车辆初始速度均值（m/s）
    initial_velocity_std: float = 1.0    # 背景车辆初始速度标准差
    ego_velocity_noise: bool = False     # 自车初始速度是否使用带噪声的采样值


@dataclass(frozen=True)
class RewardConfig:
    """奖励函数相关配置"""
    collision_cost: float = -1.0         # 碰撞惩罚
    goal_reward: float = 1.0             # 到达目标奖励
    hard_brake_cost: float = 0.0         # 迫使后车急刹的惩罚


@dataclass(frozen=True)
class DriverConfig:
    """背景车辆驾驶员模型（合作型 IDM）配置"""
    a_max: float = 2.0                   # 最大加速度（m/s²）
    d_cmf: float = 2.0                   # 舒适减速度（m/s²，正值）
    d_max: float = 2.0                   # 最大减速度（m/s²，正值）
    T: float = 1.5                       # 期望时距（秒）
    s_min: float = 2.0                   # 最小净间距（米）
    delta: float = 4.0                   # 加速度指数
    sigma: float = 0.0                   # 动作噪声标准差，0 表示确定性
    fov: float = 20.0                    # 开始考虑汇入车辆的距离（米，汇入点之前）
    comfort_decel_threshold: float = -2.0  # 低于该加速度视为急刹（m/s²，负值）

    def __post_init__(self):
        assert self.a_max > 0 and self.d_cmf > 0 and self.d_max > 0
        assert self.sigma >= 0, "sigma must be non-negative"
        assert self.comfort_decel_threshold < 0, "comfort_decel_threshold must be negative"


@dataclass(frozen=True)
class EnvironmentConfig:
    """汇入环境全局配置容器"""
    roadway: RoadwayConfig = field(default_factory=RoadwayConfig)
    initial_state: InitialStateConfig = field(default_factory=InitialStateConfig)
    reward: RewardConfig = field(default_factory=RewardConfig)
    driver: DriverConfig = field(default_factory=DriverConfig)
    car_def: VehicleDef = field(default_factory=VehicleDef)

    # 时间与动作离散化
    dt: float = 0.5                                          # 时间步长（秒）
    jerk_levels: Tuple[float, ...] = (-1.0, -0.5, 0.0, 0.5, 1.0)   # 动作2-6对应的加速度增量
    accel_levels: Tuple[float, ...] = (-4.0, -2.0, -1.0, 0.0, 1.0, 2.0)  # 旧版加速度离散（仅作记录）
    max_deceleration: float = -4.0                           # 最大减速度（m/s²，负值）
    max_acceleration: float = 3.5                            # 最大加速度（m/s²）
    comfortable_acceleration: float = 2.0                    # 舒适加速度（m/s²）
    discount_factor: float = 0.95                            # 折扣因子

    # 特征可观测性
    observe_cooperation: bool = False    # 特征中是否暴露合作系数
    observe_speed: bool = True           # 特征中是否暴露邻车速度

    # Episode 配置
    max_episode_steps: int = 100         # Gym 适配器的截断步数
    random_seed: int = 2025

    def __post_init__(self):
        # YAML/字典加载时序列为 list，统一转为 tuple 保持不可变
        object.__setattr__(self, "jerk_levels", tuple(float(x) for x in self.jerk_levels))
        object.__setattr__(self, "accel_levels", tuple(float(x) for x in self.accel_levels))
        assert len(self.jerk_levels) == 5, "jerk_levels must have 5 entries"
        assert len(self.accel_levels) == 6, "accel_levels must have 6 entries"
        assert self.max_deceleration < 0 < self.max_acceleration, \
            "max_deceleration must be negative and max_acceleration positive"
        assert 0 < self.discount_factor <= 1, "discount_factor must be in (0, 1]"

    def validate(self) -> None:
        """检查初始状态采样所需参数，非法时抛出 ValueError。

        在采样初始状态时调用，保证配置错误尽早暴露而不是生成退化场景。
        """
        init = self.initial_state
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if init.max_cars <= 0:
            raise ValueError(f"max_cars must be positive, got {init.max_cars}")
        if init.random_n_cars:
            if init.min_cars < 0 or init.min_cars > init.max_cars:
                raise ValueError(
                    f"Invalid car count range [{init.min_cars}, {init.max_cars}]")
        else:
            if init.n_cars_main <= 0:
                raise ValueError(f"n_cars_main must be positive, got {init.n_cars_main}")
            if init.n_cars_main > init.max_cars:
                raise ValueError(
                    f"Cannot place {init.n_cars_main} cars on {init.max_cars} slots")
        if init.min_burn_in < 0 or init.min_burn_in > init.max_burn_in:
            raise ValueError(
                f"Invalid burn-in range [{init.min_burn_in}, {init.max_burn_in}]")
        if init.initial_velocity_std < 0:
            raise ValueError("initial_velocity_std must be non-negative")
        if init.traffic_speed not in TRAFFIC_SPEED_POLICIES:
            raise ValueError(f"Unknown traffic speed policy: {init.traffic_speed}")
        if init.driver_type not in DRIVER_TYPE_POLICIES:
            raise ValueError(f"Unknown driver type: {init.driver_type}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["jerk_levels"] = list(self.jerk_levels)
        data["accel_levels"] = list(self.accel_levels)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnvironmentConfig":
        """从嵌套字典构造配置，缺省字段使用默认值。"""
        data = dict(data)
        sections = {
            "roadway": RoadwayConfig,
            "initial_state": InitialStateConfig,
            "reward": RewardConfig,
            "driver": DriverConfig,
            "car_def": VehicleDef,
        }
        for key, section_cls in sections.items():
            if key in data and isinstance(data[key], dict):
                data[key] = section_cls(**data[key])
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EnvironmentConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info(f"Loaded environment config from {path}")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


# 全局配置实例
_global_config: Optional[EnvironmentConfig] = None


def get_global_config() -> EnvironmentConfig:
    """获取全局配置实例"""
    global _global_config
    if _global_config is None:
        _global_config = EnvironmentConfig()
    return _global_config


def set_global_config(config: EnvironmentConfig):
    """设置全局配置实例"""
    global _global_config
    _global_config = config


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


# 从环境变量加载配置
def load_config_from_env(base: Optional[EnvironmentConfig] = None) -> EnvironmentConfig:
    """从环境变量覆盖配置，返回新的配置对象"""
    config = base if base is not None else get_global_config()
    init_changes: Dict[str, Any] = {}
    changes: Dict[str, Any] = {}

    # 时间配置
    if 'MERGE_DT' in os.environ:
        changes['dt'] = float(os.environ['MERGE_DT'])
    if 'MERGE_DISCOUNT' in os.environ:
        changes['discount_factor'] = float(os.environ['MERGE_DISCOUNT'])

    # 初始状态配置
    if 'MERGE_N_CARS' in os.environ:
        init_changes['n_cars_main'] = int(os.environ['MERGE_N_CARS'])
    if 'MERGE_RANDOM_N_CARS' in os.environ:
        init_changes['random_n_cars'] = _env_bool(os.environ['MERGE_RANDOM_N_CARS'])
    if 'MERGE_TRAFFIC_SPEED' in os.environ:
        init_changes['traffic_speed'] = os.environ['MERGE_TRAFFIC_SPEED']
    if 'MERGE_DRIVER_TYPE' in os.environ:
        init_changes['driver_type'] = os.environ['MERGE_DRIVER_TYPE']

    # 可观测性配置
    if 'MERGE_OBSERVE_COOPERATION' in os.environ:
        changes['observe_cooperation'] = _env_bool(os.environ['MERGE_OBSERVE_COOPERATION'])
    if 'MERGE_OBSERVE_SPEED' in os.environ:
        changes['observe_speed'] = _env_bool(os.environ['MERGE_OBSERVE_SPEED'])

    # 系统配置
    if 'MERGE_SEED' in os.environ:
        changes['random_seed'] = int(os.environ['MERGE_SEED'])

    if init_changes:
        changes['initial_state'] = replace(config.initial_state, **init_changes)
    if changes:
        logger.info(f"Environment overrides: {sorted(changes)}")
        config = replace(config, **changes)
    return config


# 预设配置模板
class ConfigPresets:
    """预设配置模板"""

    @staticmethod
    def default() -> EnvironmentConfig:
        """默认配置：单辆背景车，随机合作系数"""
        return EnvironmentConfig()

    @staticmethod
    def dense_traffic() -> EnvironmentConfig:
        """密集车流：每次随机 4~16 辆背景车"""
        return EnvironmentConfig(
            initial_state=InitialStateConfig(random_n_cars=True, min_cars=4, max_cars=16),
        )

    @staticmethod
    def cooperative_traffic() -> EnvironmentConfig:
        """全部背景车完全让行"""
        return EnvironmentConfig(
            initial_state=InitialStateConfig(n_cars_main=8, driver_type="cooperative"),
        )

    @staticmethod
    def aggressive_traffic() -> EnvironmentConfig:
        """全部背景车忽略汇入车辆"""
        return EnvironmentConfig(
            initial_state=InitialStateConfig(n_cars_main=8, driver_type="aggressive"),
        )

    @staticmethod
    def fully_observable() -> EnvironmentConfig:
        """特征中暴露合作系数"""
        return EnvironmentConfig(
            initial_state=InitialStateConfig(n_cars_main=8, random_n_cars=False),
            observe_cooperation=True,
        )
