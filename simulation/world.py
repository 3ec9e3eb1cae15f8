"""
World Simulation

This module advances the herding simulation in discrete time steps. It holds
the reflective boundary policy, the `step` function that updates every dog and
then every sheep, and the `World` class that owns a flock, its dogs, the
random source and the simulation clock.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np

from herding.dogs import DogController
from herding.forces import sheep_velocity
from herding.state import (
    ALL_MODES,
    Dog,
    FlockParams,
    FlockState,
    Sheep,
    positions,
    velocities,
)
from simulation.scenarios import create_dogs, create_flock

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Configuration
# -----------------------------------------------------------------------------

DEFAULT_DT = 1.0


# -----------------------------------------------------------------------------
# Movement & Boundaries
# -----------------------------------------------------------------------------


def advance(agent, dt: float = DEFAULT_DT) -> None:
    """Move an agent along its velocity for `dt`."""
    agent.position = agent.position + agent.velocity * dt


def apply_boundary(agent, world_size: float) -> None:
    """
    Reflective walls: per axis, an agent outside [0, world_size] has that
    velocity component negated and the position clamped back into range.
    """
    for axis in range(2):
        x = agent.position[axis]
        if x < 0.0 or x > world_size:
            agent.velocity[axis] = -agent.velocity[axis]
            agent.position[axis] = min(max(x, 0.0), world_size)


# -----------------------------------------------------------------------------
# Stepper
# -----------------------------------------------------------------------------


def step(
    flock: Sequence[Sheep],
    dogs: Sequence[Dog],
    params: FlockParams,
    dt: float = DEFAULT_DT,
    *,
    t: float = 0.0,
    rng: Optional[np.random.Generator] = None,
    controller: Optional[DogController] = None,
) -> None:
    """
    Advance every agent by one time step, in place.

    Dogs go first, in list order; then sheep, in list order. Each agent's
    velocity is updated and its position advanced before the next agent is
    looked at, so later agents see the new positions of earlier ones. Sheep
    react to the dogs' positions after the dogs have moved.

    Args:
        flock: Sheep, mutated in place.
        dogs: Dogs, mutated in place.
        params: Run parameters.
        dt: Time step.
        t: Simulation time at the start of the step.
        rng: Random source for patrol targets and noise. Ignored when a
            controller is given (the controller's own source is used).
        controller: Dog controller to reuse across steps.
    """
    if controller is None:
        controller = DogController(params, rng)
    ws = params.world_size

    # Sheep do not move during the dog phase, so one view serves every dog.
    if len(dogs) > 0:
        P = positions(flock)
        V = velocities(flock)
        view = controller.view(P, V, t)
        for i, dog in enumerate(dogs):
            controller.update(i, dogs, P, V, t, view=view)
            advance(dog, dt)
            apply_boundary(dog, ws)

    D = positions(dogs)
    P = positions(flock)
    V = velocities(flock)
    for i, sheep in enumerate(flock):
        sheep.velocity = sheep_velocity(i, P, V, D, params)
        advance(sheep, dt)
        if params.sheep_noise > 0:
            sheep.velocity = sheep.velocity + (
                controller.rng.normal(size=2) * params.sheep_noise
            )
        apply_boundary(sheep, ws)

        # Later sheep in this loop see this one's new state.
        P[i] = sheep.position
        V[i] = sheep.velocity


# -----------------------------------------------------------------------------
# World Class
# -----------------------------------------------------------------------------


class World:
    """
    A flock and its dogs in a square world, with a clock and a random source.
    """

    def __init__(
        self,
        flock: Sequence[Sheep],
        dogs: Sequence[Dog],
        params: Optional[FlockParams] = None,
        *,
        dt: float = DEFAULT_DT,
        seed: int = 0,
        rng: Optional[np.random.Generator] = None,
    ):
        if not dt > 0:
            raise ValueError(f"dt must be positive, got {dt}")

        self.flock: List[Sheep] = list(flock)
        self.dogs: List[Dog] = list(dogs)
        self.params = params if params is not None else FlockParams()
        self.dt = dt
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.controller = DogController(self.params, self.rng)

        # Simulation time
        self.t = 0.0
        self.steps_taken = 0
        self.paused = False

        logger.debug(
            "World created: %d sheep, %d dogs (%s), world_size=%.1f",
            len(self.flock),
            len(self.dogs),
            ", ".join(d.mode.value for d in self.dogs) or "none",
            self.params.world_size,
        )

    @classmethod
    def random(
        cls,
        n_sheep: int,
        n_dogs: int,
        params: Optional[FlockParams] = None,
        modes: Sequence = ALL_MODES,
        *,
        dt: float = DEFAULT_DT,
        seed: int = 0,
    ) -> "World":
        """Build a world with uniformly spawned sheep and dogs from one seed."""
        params = params if params is not None else FlockParams()
        rng = np.random.default_rng(seed)
        flock = create_flock(n_sheep, params.world_size, rng)
        dogs = create_dogs(n_dogs, params, modes, rng)
        return cls(flock, dogs, params, dt=dt, rng=rng)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def num_sheep(self) -> int:
        return len(self.flock)

    @property
    def num_dogs(self) -> int:
        return len(self.dogs)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def step(self) -> None:
        """Advance the simulation by one time step."""
        if self.paused:
            return

        step(
            self.flock,
            self.dogs,
            self.params,
            self.dt,
            t=self.t,
            controller=self.controller,
        )

        # Advance time
        self.t += self.dt
        self.steps_taken += 1

    def run(
        self,
        steps: int,
        callback: Optional[Callable[["World"], None]] = None,
    ) -> None:
        """Step `steps` times, calling `callback(world)` after each step."""
        for _ in range(steps):
            self.step()
            if callback is not None:
                callback(self)

    def get_state(self) -> FlockState:
        """Get the current simulation state."""
        return FlockState.capture(self.flock, self.dogs, self.t)

    def pause(self):
        """Toggle simulation pause state."""
        self.paused = not self.paused
