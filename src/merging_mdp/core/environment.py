"""Gym-style interfaces for the merging environment model.

Spaces, the per-step result container, the episodic environment base
class and reward components. Spaces sample from an explicit
``numpy.random.Generator``; there is no global random state anywhere in the
package.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Tuple, TypeVar, Generic
from dataclasses import dataclass, field
import numpy as np


ObsType = TypeVar("ObsType")
ActType = TypeVar("ActType")


@dataclass
class StepResult(Generic[ObsType]):
    """Outcome of ``DrivingEnvironment.step``.

    Attributes:
        observation: Encoded successor state
        reward: Reward of the transition
        terminated: Collision or goal reached
        truncated: Episode cut by the step limit
        info: Diagnostics (collision flag, commanded acceleration, full scene, ...)
    """
    observation: ObsType
    reward: float
    terminated: bool
    truncated: bool
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return self.terminated or self.truncated


class Space(ABC):
    """Set of valid observations or actions."""

    @abstractmethod
    def sample(self, rng: np.random.Generator) -> Any:
        """Draw a uniform element using ``rng``."""

    @abstractmethod
    def contains(self, x: Any) -> bool:
        """Membership test."""


class Box(Space):
    """Axis-aligned box in R^n, e.g. ``Box(-np.inf, np.inf, shape=(15,))`` for features."""

    def __init__(self, low: float | np.ndarray, high: float | np.ndarray,
                 shape: Tuple[int, ...] | None = None, dtype: type = np.float32):
        if np.isscalar(low):
            if shape is None:
                raise ValueError("Box with scalar bounds needs an explicit shape")
            low = np.full(shape, low)
            high = np.full(shape, high)
        self.low = np.asarray(low, dtype=dtype)
        self.high = np.asarray(high, dtype=dtype)
        if self.low.shape != self.high.shape:
            raise ValueError(f"Bound shapes differ: {self.low.shape} vs {self.high.shape}")
        self.shape = self.low.shape
        self.dtype = dtype

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return rng.uniform(self.low, self.high, self.shape).astype(self.dtype)

    def contains(self, x: Any) -> bool:
        x = np.asarray(x)
        if x.shape != self.shape:
            return False
        return bool(np.all(x >= self.low) and np.all(x <= self.high))


class Discrete(Space):
    """Integers ``start .. start + n - 1``.

    The model's longitudinal actions are ``Discrete(7, start=1)``; the Gym
    adapter exposes the same set shifted to ``Discrete(7)``.
    """

    def __init__(self, n: int, start: int = 0):
        self.n = n
        self.start = start

    def sample(self, rng: np.random.Generator) -> int:
        return int(self.start + rng.integers(self.n))

    def contains(self, x: Any) -> bool:
        return isinstance(x, (int, np.integer)) and self.start <= x < self.start + self.n

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.start + self.n))

    def __len__(self) -> int:
        return self.n


class DrivingEnvironment(ABC, Generic[ObsType, ActType]):
    """Episodic environment with the Gymnasium ``reset``/``step`` protocol."""

    @abstractmethod
    def reset(self, seed: int | None = None,
              options: Dict[str, Any] | None = None) -> Tuple[ObsType, Dict[str, Any]]:
        """Start a new episode.

        Args:
            seed: Reseeds the environment's generator when given
            options: Environment-specific options

        Returns:
            (initial observation, info)
        """

    @abstractmethod
    def step(self, action: ActType) -> StepResult[ObsType]:
        """Advance the episode by one decision step."""

    def close(self) -> None:
        pass

    @property
    @abstractmethod
    def observation_space(self) -> Space:
        ...

    @property
    @abstractmethod
    def action_space(self) -> Space:
        ...


class RewardFunction(ABC):
    """One additive term of the transition reward."""

    @abstractmethod
    def compute(self, state: Any, action: Any, next_state: Any, info: Dict[str, Any]) -> float:
        """Reward of ``state --action--> next_state``.

        Args:
            state: State before the transition
            action: Action taken
            next_state: Sampled successor
            info: Extra context, may be empty

        Returns:
            Scalar reward term
        """


class CompositeRewardFunction(RewardFunction):
    """Weighted sum of reward terms.

    Example:
        CompositeRewardFunction([(GoalReward(mdp), 1.0), (CollisionCost(mdp), 1.0)])
    """

    def __init__(self, components: List[Tuple[RewardFunction, float]]):
        self.components = components

    def compute(self, state: Any, action: Any, next_state: Any, info: Dict[str, Any]) -> float:
        return sum((weight * term.compute(state, action, next_state, info)
                    for term, weight in self.components), 0.0)
