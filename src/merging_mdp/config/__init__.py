"""
配置模块

提供汇入环境的统一配置管理
"""

from merging_mdp.config.merging_config import (
    RoadwayConfig,
    InitialStateConfig,
    RewardConfig,
    DriverConfig,
    EnvironmentConfig,
    ConfigPresets,
    get_global_config,
    set_global_config,
    load_config_from_env,
    TRAFFIC_SPEED_POLICIES,
    DRIVER_TYPE_POLICIES,
)

__all__ = [
    'RoadwayConfig',
    'InitialStateConfig',
    'RewardConfig',
    'DriverConfig',
    'EnvironmentConfig',
    'ConfigPresets',
    'get_global_config',
    'set_global_config',
    'load_config_from_env',
    'TRAFFIC_SPEED_POLICIES',
    'DRIVER_TYPE_POLICIES',
]
