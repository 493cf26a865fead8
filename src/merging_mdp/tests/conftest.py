"""Pytest configuration and fixtures for merging_mdp tests."""

import sys
from pathlib import Path
import pytest
import numpy as np
import torch

# Add src directory to path for imports
src_path = Path(__file__).parent.parent.parent
sys.path.insert(0, str(src_path))

from merging_mdp.agents.drivers import CooperativeCarFollowing, IntelligentDriverModel
from merging_mdp.config import EnvironmentConfig, InitialStateConfig
from merging_mdp.core.types import AugmentedScene, EgoInfo, Entity, LaneTag
from merging_mdp.environments.merging_mdp import GenerativeMergingMDP


@pytest.fixture(autouse=True)
def reset_random_seeds():
    """Reset random seeds before each test for reproducibility."""
    np.random.seed(42)
    torch.manual_seed(42)


@pytest.fixture
def rng():
    """Provide a seeded random generator."""
    return np.random.default_rng(2025)


@pytest.fixture
def config():
    """Default environment configuration with four background vehicles."""
    return EnvironmentConfig(initial_state=InitialStateConfig(n_cars_main=4))


@pytest.fixture
def mdp(config):
    return GenerativeMergingMDP(config)


@pytest.fixture
def make_vehicle():
    """Factory for entities: make_vehicle(id, lane, s, v)."""
    def _make(vehicle_id, lane=LaneTag.MAIN, s=0.0, v=0.0):
        return Entity(id=vehicle_id, lane=lane, s=s, v=v)
    return _make


@pytest.fixture
def make_state():
    """Factory for augmented scenes from a list of entities."""
    def _make(entities, acc=0.0):
        return AugmentedScene(scene=tuple(entities), ego_info=EgoInfo(acc=acc))
    return _make


@pytest.fixture
def cooperative_driver():
    """Factory for background drivers with a given cooperation and desired speed."""
    def _make(cooperation=0.0, v_des=15.0, sigma=0.0):
        return CooperativeCarFollowing(idm=IntelligentDriverModel(v_des=v_des, sigma=sigma),
                                       cooperation=cooperation)
    return _make


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
