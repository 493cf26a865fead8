"""Feature codec between merging scenes and fixed-length vectors.

The compact codec maps an augmented scene to 15 features:

    [0:3]   ego distance to merge point, ego speed, ego commanded acceleration
    [3:6]   front neighbor            (headway, speed, cooperation)
    [6:9]   main-lane neighbor ahead  (headway, speed, cooperation)
    [9:12]  main-lane neighbor behind (headway, speed, cooperation)
    [12:15] rear neighbor at the merge point (headway, speed, cooperation)

All slots start at ``SENTINEL``. For each neighbor triple the cooperation
slot is zeroed first; headway and speed are only written when the neighbor
exists. Speed is written as 0 when speeds are not observed, cooperation as
0 when cooperation is not observed. Slot order and sentinel conventions are
part of the interchange format.

The global codec is one-way: the ego triple followed by one
``(position, speed, cooperation)`` triple per background vehicle, with 0.5
in the cooperation slot when cooperation is not observed.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional, Sequence
import numpy as np

from merging_mdp.core.types import (
    EGO_ID,
    AugmentedScene,
    EgoInfo,
    Entity,
    LaneTag,
    get_by_id,
    make_scene,
)
from merging_mdp.perception.neighbors import get_neighbors

if TYPE_CHECKING:
    import torch
    from merging_mdp.environments.merging_mdp import GenerativeMergingMDP


NUM_FEATURES = 15
SENTINEL = -3.0
UNOBSERVED_COOPERATION = 0.5

# offsets of the neighbor triples, in feature order
FRONT, FORE_MAIN, REAR_MAIN, MERGE_REAR = 3, 6, 9, 12


class FeatureCodec:
    """Encoder/decoder between ``AugmentedScene`` and feature vectors.

    Args:
        mdp: Environment model providing roadway, configuration and driver models
    """

    def __init__(self, mdp: "GenerativeMergingMDP"):
        self.mdp = mdp
        self.roadway = mdp.roadway
        cfg = mdp.config
        self.observe_speed = cfg.observe_speed
        self.observe_cooperation = cfg.observe_cooperation
        self.distance_scale = cfg.roadway.main_lane_length
        self.speed_scale = cfg.roadway.main_lane_vmax
        self.acc_scale = cfg.max_deceleration
        self._scales = np.array(
            [self.distance_scale, self.speed_scale, self.acc_scale]
            + [self.distance_scale, self.speed_scale, 1.0] * 4
        )

    # ------------------------------------------------------------------
    # Compact codec
    # ------------------------------------------------------------------

    def extract(self, state: AugmentedScene) -> np.ndarray:
        """Raw (unnormalized) 15-feature vector of ``state``."""
        scene = state.scene
        features = np.full(NUM_FEATURES, SENTINEL)
        ego = get_by_id(scene, EGO_ID)
        features[0] = self.roadway.dist_to_merge(ego)
        features[1] = ego.v
        features[2] = state.ego_info.acc

        neighbors = get_neighbors(scene, self.roadway, EGO_ID)
        for offset, result in ((FRONT, neighbors.front),
                               (FORE_MAIN, neighbors.fore_main),
                               (REAR_MAIN, neighbors.rear_main),
                               (MERGE_REAR, neighbors.merge_rear)):
            features[offset + 2] = 0.0
            if result is None:
                continue
            features[offset] = result.gap
            features[offset + 1] = get_by_id(scene, result.id).v if self.observe_speed else 0.0
            if self.observe_cooperation:
                cooperation = self.mdp.cooperation_of(result.id)
                features[offset + 2] = cooperation if cooperation is not None else 0.0
        return features

    def normalize(self, features: np.ndarray) -> np.ndarray:
        """Rescale a raw feature vector; returns a new array."""
        return np.asarray(features, dtype=np.float64) / self._scales

    def unnormalize(self, features: np.ndarray) -> np.ndarray:
        """Inverse of ``normalize``; returns a new array."""
        return np.asarray(features, dtype=np.float64) * self._scales

    def encode(self, state: AugmentedScene) -> np.ndarray:
        return self.normalize(self.extract(state))

    def reconstruct(self, normalized: np.ndarray) -> AugmentedScene:
        """Approximate scene from a normalized compact feature vector.

        Only the ego and the four neighbors are recovered, from their relative
        positions and speeds. Neighbors whose headway slot holds the sentinel
        are not placed. Cooperation and true vehicle ids are not recovered:
        neighbors get ids ``EGO_ID + 1`` to ``EGO_ID + 4`` in feature order.
        """
        f = self.unnormalize(normalized)
        roadway = self.roadway
        car_def = self.mdp.config.car_def

        d_ego, v_ego, a_ego = f[0], f[1], f[2]
        if d_ego < 0.0:
            ego = Entity(id=EGO_ID, lane=LaneTag.MERGE,
                         s=float(roadway.lane_length(LaneTag.MERGE) + d_ego), v=float(v_ego),
                         definition=car_def)
        else:
            ego = Entity(id=EGO_ID, lane=LaneTag.MAIN, s=float(roadway.merge_s + d_ego),
                         v=float(v_ego), definition=car_def)
        on_main = ego.lane == LaneTag.MAIN
        # reference for the own-lane neighbors: the ego itself, or the merge point
        s_own = ego.s if on_main else roadway.merge_s
        s_main = roadway.main_lane_projection(ego)

        placements = (
            (FRONT, lambda h: s_own + h),
            (FORE_MAIN, lambda h: s_main + h),
            (REAR_MAIN, lambda h: s_main - h),
            (MERGE_REAR, lambda h: s_own - h),
        )
        entities: List[Entity] = [ego]
        for i, (offset, place) in enumerate(placements, start=1):
            headway, speed = f[offset], f[offset + 1]
            if np.isclose(headway, SENTINEL):
                continue
            entities.append(Entity(id=EGO_ID + i, lane=LaneTag.MAIN, s=float(place(headway)),
                                   v=float(speed), definition=car_def))
        return AugmentedScene(scene=make_scene(entities), ego_info=EgoInfo(acc=float(a_ego)))

    def decode(self, normalized: np.ndarray) -> AugmentedScene:
        return self.reconstruct(normalized)

    def encode_batch(self, states: Sequence[AugmentedScene]) -> np.ndarray:
        """Encode a batch of states.

        Returns:
            Normalized feature array of shape (batch_size, NUM_FEATURES)
        """
        if not states:
            return np.zeros((0, NUM_FEATURES))
        return np.stack([self.encode(state) for state in states], axis=0)

    def to_tensor(self, states: Sequence[AugmentedScene],
                  device: Optional["torch.device"] = None) -> "torch.Tensor":
        """Normalized batch as a float32 tensor for learning components."""
        import torch

        return torch.as_tensor(self.encode_batch(states), dtype=torch.float32, device=device)

    @property
    def feature_info(self) -> dict:
        """Get information about feature dimensions and structure."""
        return {
            'total_dim': NUM_FEATURES,
            'sentinel': SENTINEL,
            'feature_ranges': {
                'ego': (0, 3),
                'front': (FRONT, FRONT + 3),
                'fore_main': (FORE_MAIN, FORE_MAIN + 3),
                'rear_main': (REAR_MAIN, REAR_MAIN + 3),
                'merge_rear': (MERGE_REAR, MERGE_REAR + 3),
            },
            'scales': {
                'distance': self.distance_scale,
                'speed': self.speed_scale,
                'acceleration': self.acc_scale,
                'cooperation': 1.0,
            },
        }

    # ------------------------------------------------------------------
    # Global codec
    # ------------------------------------------------------------------

    def global_extract(self, state: AugmentedScene) -> np.ndarray:
        """Raw ``3 + 3 * n_background`` vector of the whole scene.

        Background vehicles appear in scene order, wherever the ego sits.
        """
        ego = get_by_id(state.scene, EGO_ID)
        background = [veh for veh in state.scene if veh.id != EGO_ID]
        features = np.zeros(3 + 3 * len(background))
        features[0] = self.roadway.dist_to_merge(ego)
        features[1] = ego.v
        features[2] = state.ego_info.acc
        for i, veh in enumerate(background):
            base = 3 + 3 * i
            features[base] = veh.s
            features[base + 1] = veh.v
            cooperation = None
            if self.observe_cooperation:
                cooperation = self.mdp.cooperation_of(veh.id)
            features[base + 2] = UNOBSERVED_COOPERATION if cooperation is None else cooperation
        return features

    def _global_scales(self, size: int) -> np.ndarray:
        if size < 3 or (size - 3) % 3 != 0:
            raise ValueError(f"Invalid global feature length: {size}")
        n_background = (size - 3) // 3
        return np.array(
            [self.distance_scale, self.speed_scale, self.acc_scale]
            + [self.distance_scale, self.speed_scale, 1.0] * n_background
        )

    def global_normalize(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(features, dtype=np.float64)
        return features / self._global_scales(features.size)

    def global_unnormalize(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(features, dtype=np.float64)
        return features * self._global_scales(features.size)
