"""Generative model of the highway on-ramp merging scenario.

The model exposes what a sample-based planner or learner needs:
- ``initial_state(rng)``: sampler for initial traffic scenes
- ``step(state, action, rng)``: one-step stochastic transition
- ``reward`` and ``is_terminal``: reward/termination oracle
- the discrete action set ``1..7`` and the discount factor

The model owns a mutable map from vehicle id to driver model. It is rebuilt
on every initial-state draw and only mutated afterwards for the ego's
pending action and the ego acceleration broadcast to background drivers.
One instance serves exactly one episode at a time; use ``fork()`` to get an
independent copy for another worker.
"""

from __future__ import annotations
from typing import Dict, Optional
import copy
import logging

import numpy as np

from merging_mdp.agents.drivers import (
    CooperativeCarFollowing,
    DriverModel,
    EgoDriver,
    IntelligentDriverModel,
)
from merging_mdp.config.merging_config import EnvironmentConfig
from merging_mdp.core.environment import Discrete
from merging_mdp.core.types import (
    EGO_ID,
    AugmentedScene,
    EgoInfo,
    Entity,
    LaneTag,
    Scene,
    find_index,
    get_by_id,
    make_scene,
)
from merging_mdp.dynamics.kinematics import propagate, wrap_around
from merging_mdp.environments.rewards import create_default_reward
from merging_mdp.geometry.footprint import collision_checker
from merging_mdp.geometry.roadway import MergingRoadway
from merging_mdp.perception.neighbors import find_neighbor


logger = logging.getLogger(__name__)


HARD_BRAKE = 1
RELEASE = 7

MIXED_SPEEDS = (4.0, 5.0, 6.0)
MIXED_SPEED_WEIGHTS = (0.2, 0.3, 0.5)
FAST_SPEED = 15.0
COOPERATION_GRID = np.round(np.linspace(0.0, 1.0, 101), 2)
BINARY_COOPERATION_WEIGHTS = (0.9, 0.1)


class GenerativeMergingMDP:
    """Highway merging environment model.

    Args:
        config: Environment configuration, defaults to ``EnvironmentConfig()``
    """

    def __init__(self, config: Optional[EnvironmentConfig] = None):
        self.config = config if config is not None else EnvironmentConfig()
        self.roadway = MergingRoadway(self.config.roadway)
        self.action_space = Discrete(7, start=HARD_BRAKE)
        self.main_lane_slots = np.linspace(
            0.0, self.roadway.lane_end(LaneTag.MAIN), max(self.config.initial_state.max_cars, 0))
        self.n_cars_main = self.config.initial_state.n_cars_main
        self.driver_models: Dict[int, DriverModel] = {}
        self.reset_driver_models()
        self.reward_function = create_default_reward(self)

    # ------------------------------------------------------------------
    # Action space
    # ------------------------------------------------------------------

    def actions(self) -> Discrete:
        return self.action_space

    def action_index(self, a: int) -> int:
        return a

    def discount(self) -> float:
        return self.config.discount_factor

    def decode_action(self, prev_acc: float, a: int) -> float:
        """Map a discrete action to the acceleration commanded to the ego.

        Action 1 brakes at ``max_deceleration`` and action 7 releases to 0,
        both regardless of ``prev_acc``. Actions 2-6 add a jerk level to the
        previously commanded acceleration, clamped to the physical bounds.

        Raises:
            ValueError: If ``a`` is not in ``1..7``
        """
        if not self.action_space.contains(a):
            raise ValueError(f"Unknown action: {a}")
        cfg = self.config
        if a == HARD_BRAKE:
            return cfg.max_deceleration
        if a == RELEASE:
            return 0.0
        acc = prev_acc + cfg.jerk_levels[a - 2]
        return min(max(acc, cfg.max_deceleration), cfg.max_acceleration)

    # ------------------------------------------------------------------
    # Driver models
    # ------------------------------------------------------------------

    def reset_driver_models(self) -> None:
        self.driver_models = {EGO_ID: EgoDriver(0.0)}

    def set_driver(self, vehicle_id: int, model: DriverModel) -> None:
        self.driver_models[vehicle_id] = model

    def _make_background_driver(self) -> CooperativeCarFollowing:
        d = self.config.driver
        idm = IntelligentDriverModel(
            v_des=self.roadway.main_lane_vmax,
            a_max=d.a_max,
            d_cmf=d.d_cmf,
            d_max=d.d_max,
            T=d.T,
            s_min=d.s_min,
            delta=d.delta,
            sigma=d.sigma,
        )
        return CooperativeCarFollowing(idm=idm, fov=d.fov,
                                       comfort_decel_threshold=d.comfort_decel_threshold)

    def _draw_desired_speed(self, rng: np.random.Generator) -> float:
        policy = self.config.initial_state.traffic_speed
        if policy == "mixed":
            return float(rng.choice(MIXED_SPEEDS, p=MIXED_SPEED_WEIGHTS))
        if policy == "fast":
            return FAST_SPEED
        return self.roadway.main_lane_vmax

    def _draw_cooperation(self, rng: np.random.Generator) -> float:
        policy = self.config.initial_state.driver_type
        if policy == "random":
            return float(rng.choice(COOPERATION_GRID))
        if policy == "binary":
            return float(rng.choice((0.0, 1.0), p=BINARY_COOPERATION_WEIGHTS))
        if policy == "aggressive":
            return 0.0
        return 1.0

    # ------------------------------------------------------------------
    # Initial state
    # ------------------------------------------------------------------

    def initial_state(self, rng: np.random.Generator) -> AugmentedScene:
        """Sample an initial traffic scene.

        Background vehicles are placed on distinct main-lane slots, given a
        cooperative car-following driver, and simulated for a random burn-in
        period before the ego is inserted at the entrance of the merge lane.

        Args:
            rng: Random source, the only one used

        Returns:
            Initial augmented scene with the ego last and ego acceleration 0

        Raises:
            ValueError: If the configuration cannot produce a valid scene
        """
        cfg = self.config
        init = cfg.initial_state
        cfg.validate()

        if init.random_n_cars:
            self.n_cars_main = int(rng.integers(init.min_cars, init.max_cars + 1))
        else:
            self.n_cars_main = init.n_cars_main
        n = self.n_cars_main

        self.reset_driver_models()
        start_positions = rng.choice(self.main_lane_slots, size=n, replace=False)
        start_velocities = init.initial_velocity + init.initial_velocity_std * rng.standard_normal(n)
        ego = self._initial_merge_car_state(rng)

        vehicles = []
        for i in range(n):
            vehicle_id = EGO_ID + i + 1
            vehicles.append(Entity(id=vehicle_id, lane=LaneTag.MAIN,
                                   s=float(start_positions[i]), v=float(start_velocities[i]),
                                   definition=cfg.car_def))
            driver = self._make_background_driver()
            driver.set_desired_speed(self._draw_desired_speed(rng))
            driver.cooperation = self._draw_cooperation(rng)
            self.driver_models[vehicle_id] = driver
        scene: Scene = tuple(vehicles)

        burn_in = int(rng.integers(init.min_burn_in, init.max_burn_in + 1))
        logger.debug(f"Sampling initial state: {n} background cars, {burn_in} burn-in steps")
        for _ in range(burn_in):
            scene = self._simulate(scene, rng, no_backup=False)

        return AugmentedScene(scene=make_scene(scene + (ego,)), ego_info=EgoInfo(acc=0.0))

    def _initial_merge_car_state(self, rng: np.random.Generator) -> Entity:
        init = self.config.initial_state
        # the noisy draw is always made so the random stream is identical either way
        v0 = init.initial_velocity + init.initial_velocity_std * rng.standard_normal()
        if not init.ego_velocity_noise:
            v0 = init.initial_ego_velocity
        return Entity(id=EGO_ID, lane=LaneTag.MERGE, s=0.0, v=float(v0),
                      definition=self.config.car_def)

    def reset_main_car_state(self, entity: Entity, rng: np.random.Generator) -> Entity:
        """Respawn ``entity`` at the beginning of the main lane with a noisy speed."""
        init = self.config.initial_state
        v0 = init.initial_velocity + init.initial_velocity_std * rng.standard_normal()
        return entity.with_state(lane=LaneTag.MAIN, s=0.0, v=float(v0), t=0.0, phi=0.0)

    def spread_out_initialization(self, rng: np.random.Generator) -> np.ndarray:
        """Evenly spaced main-lane positions starting from a random slot."""
        n = self.n_cars_main
        positions = np.zeros(n)
        if n == 0:
            return positions
        lane_end = self.roadway.lane_end(LaneTag.MAIN)
        gap_length = lane_end // n
        positions[0] = rng.choice(self.main_lane_slots)
        for i in range(1, n):
            positions[i] = (positions[i - 1] + gap_length) % lane_end
        return positions

    def clamp_speed(self, entity: Entity) -> Entity:
        """Clamp the speed of ``entity`` to ``[0, main_lane_vmax]``."""
        return entity.with_state(v=min(max(entity.v, 0.0), self.roadway.main_lane_vmax))

    # ------------------------------------------------------------------
    # Transition
    # ------------------------------------------------------------------

    def _simulate(self, scene: Scene, rng: np.random.Generator, no_backup: bool) -> Scene:
        # every driver observes the same pre-step scene
        accelerations = []
        for veh in scene:
            driver = self.driver_models[veh.id]
            driver.observe(scene, self.roadway, veh.id)
            accelerations.append(driver.sample_action(rng))
        return tuple(
            wrap_around(propagate(veh, acc, self.config.dt, self.roadway, no_backup), self.roadway)
            for veh, acc in zip(scene, accelerations)
        )

    def step(self, state: AugmentedScene, action: int, rng: np.random.Generator) -> AugmentedScene:
        """Sample the successor of ``state`` under ``action``.

        Background drivers receive the ego acceleration of the *previous*
        step, so they react to the ego's maneuver with a one-step lag.

        Args:
            state: Current augmented scene
            action: Discrete action in ``1..7``
            rng: Random source

        Returns:
            Successor augmented scene carrying the newly commanded ego acceleration
        """
        ego_acc = self.decode_action(state.ego_info.acc, action)
        ego_driver = self.driver_models.get(EGO_ID)
        if isinstance(ego_driver, EgoDriver):
            ego_driver.acc = ego_acc
        else:
            self.driver_models[EGO_ID] = EgoDriver(ego_acc)
        for veh in state.scene:
            if veh.id == EGO_ID or veh.lane != LaneTag.MAIN:
                continue
            driver = self.driver_models[veh.id]
            if isinstance(driver, CooperativeCarFollowing):
                driver.other_acc = state.ego_info.acc
        next_scene = self._simulate(state.scene, rng, no_backup=True)
        return AugmentedScene(scene=next_scene, ego_info=EgoInfo(acc=ego_acc))

    gen = step

    # ------------------------------------------------------------------
    # Reward and termination
    # ------------------------------------------------------------------

    def reach_goal(self, ego: Entity) -> bool:
        return ego.lane == LaneTag.MAIN and ego.s >= self.roadway.lane_end(LaneTag.MAIN)

    def is_collision(self, state: AugmentedScene) -> bool:
        return collision_checker(state.scene, self.roadway, EGO_ID)

    def caused_hard_brake(self, scene: Scene) -> bool:
        """Whether the vehicle right behind the ego in its own lane commanded a hard brake.

        While the ego is still on the merge lane only merge-lane vehicles are
        searched, so main-lane traffic is never blamed on an ego that has not
        merged yet.
        """
        ego_index = find_index(scene, EGO_ID)
        if ego_index is None:
            return False
        rear = find_neighbor(scene, self.roadway, scene[ego_index], rear=True)
        if rear is None:
            return False
        driver = self.driver_models.get(rear.id)
        return isinstance(driver, CooperativeCarFollowing) and driver.is_hard_braking()

    def reward(self, state: AugmentedScene, action: int, next_state: AugmentedScene) -> float:
        return self.reward_function.compute(state, action, next_state, {})

    def is_terminal(self, state: AugmentedScene) -> bool:
        return self.is_collision(state) or self.reach_goal(get_by_id(state.scene, EGO_ID))

    # ------------------------------------------------------------------

    def fork(self) -> "GenerativeMergingMDP":
        """Independent deep copy (configuration, roadway and driver models)."""
        return copy.deepcopy(self)

    def cooperation_of(self, vehicle_id: int) -> Optional[float]:
        driver = self.driver_models.get(vehicle_id)
        if isinstance(driver, CooperativeCarFollowing):
            return driver.cooperation
        return None
