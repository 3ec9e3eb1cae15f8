"""
Simulation State Definitions

This module defines the core data structures of the herding engine: the sheep
and dog agents, the dog behaviour modes, the immutable parameter record shared
by every operation in a run, and the snapshot handed to consumers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

# -----------------------------------------------------------------------------
# Dog Modes
# -----------------------------------------------------------------------------


class DogMode(str, Enum):
    """Fixed behavioural strategy of a dog."""

    HERD = "herd"  # Guide the flock toward the pen
    FETCH = "fetch"  # Bring back the worst straggler
    PATROL = "patrol"  # Walk the fence, chase sheep that get close to it
    BLOCK = "block"  # Stand in the flock's escape route

    @classmethod
    def parse(cls, value: "str | DogMode") -> "DogMode":
        if isinstance(value, DogMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown dog mode {value!r} (expected one of {known})")


ALL_MODES: Tuple[DogMode, ...] = (
    DogMode.HERD,
    DogMode.FETCH,
    DogMode.PATROL,
    DogMode.BLOCK,
)


# -----------------------------------------------------------------------------
# Parameters
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FlockParams:
    """
    Immutable configuration for one simulation run.

    Distances are in world units, speeds in world units per unit of time.
    """

    # Sheep
    separation_weight: float = 0.15
    cohesion_weight: float = 0.4
    alignment_weight: float = 0.3
    max_sheep_speed: float = 0.8
    sheep_radius: float = 1.5  # Neighbour radius for all three steering rules

    # Dogs
    dog_speed: float = 0.9
    dog_influence_radius: float = 2.0
    dog_repulsion_strength: float = 0.8
    patrol_margin: float = 1.0

    # World
    world_size: float = 20.0
    pen_center: Tuple[float, float] = (17.0, 17.0)

    # Perturbations (0 disables the random draw entirely)
    dog_noise: float = 0.0
    sheep_noise: float = 0.0

    # Herd zigzag
    herd_zigzag_frequency: float = 2.0
    herd_zigzag_speed_factor: float = 0.8

    def __post_init__(self):
        if not self.world_size > 0:
            raise ValueError(f"world_size must be positive, got {self.world_size}")

        non_negative = (
            "max_sheep_speed",
            "sheep_radius",
            "dog_speed",
            "dog_influence_radius",
            "patrol_margin",
            "dog_noise",
            "sheep_noise",
        )
        for name in non_negative:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

        pen = tuple(float(c) for c in self.pen_center)
        if len(pen) != 2:
            raise ValueError(f"pen_center must have 2 components, got {self.pen_center!r}")
        # Frozen dataclass: normalise the stored value through object.__setattr__
        object.__setattr__(self, "pen_center", pen)

    @property
    def pen(self) -> np.ndarray:
        """Pen centre as a NumPy vector."""
        return np.array(self.pen_center, dtype=np.float64)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["pen_center"] = list(self.pen_center)
        return d


# -----------------------------------------------------------------------------
# Agents
# -----------------------------------------------------------------------------


def _vec(v) -> np.ndarray:
    return np.array(v, dtype=np.float64).reshape(2)


@dataclass(eq=False)
class Sheep:
    """A flock member. Pure data; the force model and stepper mutate it."""

    position: np.ndarray
    velocity: np.ndarray
    id: int = 0

    def __post_init__(self):
        self.position = _vec(self.position)
        self.velocity = _vec(self.velocity)


@dataclass(eq=False)
class Dog:
    """A controller agent with a fixed behavioural mode."""

    position: np.ndarray
    velocity: np.ndarray
    mode: DogMode = DogMode.HERD
    target: Optional[np.ndarray] = None  # None until the controller picks one
    id: int = 0

    def __post_init__(self):
        self.position = _vec(self.position)
        self.velocity = _vec(self.velocity)
        self.mode = DogMode.parse(self.mode)
        if self.target is not None:
            self.target = _vec(self.target)


def positions(agents: Sequence) -> np.ndarray:
    """n-by-2 array of agent positions (copied)."""
    if len(agents) == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return np.array([a.position for a in agents], dtype=np.float64)


def velocities(agents: Sequence) -> np.ndarray:
    """n-by-2 array of agent velocities (copied)."""
    if len(agents) == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return np.array([a.velocity for a in agents], dtype=np.float64)


# -----------------------------------------------------------------------------
# World State
# -----------------------------------------------------------------------------


@dataclass
class FlockState:
    """
    Snapshot of the simulation at a specific time step.
    This is what rendering, logging and metric code reads.
    """

    # n-by-2 arrays
    flock: np.ndarray
    flock_velocities: np.ndarray

    # m-by-2 arrays
    dogs: np.ndarray
    dog_velocities: np.ndarray

    modes: List[str] = field(default_factory=list)
    targets: List[Optional[np.ndarray]] = field(default_factory=list)

    t: float = 0.0

    @classmethod
    def capture(
        cls, flock: Sequence[Sheep], dogs: Sequence[Dog], t: float = 0.0
    ) -> "FlockState":
        return cls(
            flock=positions(flock),
            flock_velocities=velocities(flock),
            dogs=positions(dogs),
            dog_velocities=velocities(dogs),
            modes=[d.mode.value for d in dogs],
            targets=[None if d.target is None else d.target.copy() for d in dogs],
            t=t,
        )

    def to_dict(self) -> dict:
        """Convert the snapshot to plain Python types."""
        return {
            "t": self.t,
            "flock": self.flock.tolist(),
            "flock_velocities": self.flock_velocities.tolist(),
            "dogs": self.dogs.tolist(),
            "dog_velocities": self.dog_velocities.tolist(),
            "modes": list(self.modes),
            "targets": [None if tg is None else tg.tolist() for tg in self.targets],
        }
