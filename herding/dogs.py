"""
Dog Behaviour Controller

This module implements the per-step steering of the dogs. Every dog carries a
fixed `DogMode`; each mode maps to one behaviour function in `BEHAVIORS` that
looks at the flock and returns the dog's new velocity and target (or None to
leave the dog as it is this step).

After the mode-specific update, every dog gets the same post-processing:
optional isotropic noise, a hard clamp to `dog_speed`, and then dog-dog
avoidance. Avoidance is added after the clamp, so a dog that is dodging
another one can briefly move faster than `dog_speed`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

import numpy as np

from herding.state import Dog, DogMode, FlockParams, Sheep, positions, velocities
from herding.utils import clamp_speed, norm, norm_rows, perpendicular, smooth_push

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

# All distances below are multiples of dog_influence_radius.
HERD_STANDOFF = 1.2  # How far behind the flock centre the herding dog stands
HERD_SETTLED = 0.3  # Within this of the ideal spot the dog starts zigzagging
HERD_ZIGZAG_AMPLITUDE = 0.3

FETCH_PEN_WEIGHT = 0.2  # Straggler score = dist_to_center + w * dist_to_pen

PATROL_REACHED = 0.5  # Pick a new patrol target once this close to the old one
PATROL_DANGER = 2.0  # Multiple of patrol_margin counted as "near the fence"

BLOCK_LOOKAHEAD = 0.25  # Multiple of world_size
BLOCK_STANDOFF = 1.5

AVOIDANCE_RADIUS = 0.9
AVOIDANCE_THRESHOLD = 0.2


# -----------------------------------------------------------------------------
# Data Structures
# -----------------------------------------------------------------------------


@dataclass
class FlockView:
    """Read-only view of the flock handed to every behaviour function."""

    P: np.ndarray  # n-by-2 sheep positions
    V: np.ndarray  # n-by-2 sheep velocities
    center: np.ndarray
    params: FlockParams
    t: float  # Simulation time, drives the herd zigzag
    rng: np.random.Generator

    @property
    def empty(self) -> bool:
        return self.P.shape[0] == 0


@dataclass
class Steering:
    """Result of a behaviour function."""

    velocity: np.ndarray
    target: np.ndarray


Behavior = Callable[[Dog, FlockView], Optional[Steering]]


def flock_center(P: np.ndarray) -> np.ndarray:
    """Mean sheep position; the origin for an empty flock."""
    if P.shape[0] == 0:
        return np.zeros(2)
    return np.mean(P, axis=0)


# -----------------------------------------------------------------------------
# Behaviours
# -----------------------------------------------------------------------------


def herd_behavior(dog: Dog, view: FlockView) -> Optional[Steering]:
    """Stand behind the flock, opposite the pen, and zigzag once in position."""
    if view.empty:
        return None

    p = view.params
    r = p.dog_influence_radius
    direction_to_pen = norm(p.pen - view.center)
    ideal = view.center - direction_to_pen * r * HERD_STANDOFF

    if np.linalg.norm(dog.position - ideal) > r * HERD_SETTLED:
        return Steering(norm(ideal - dog.position) * p.dog_speed, ideal)

    # In position: sweep sideways to keep the flock moving.
    swing = np.sin(view.t * p.herd_zigzag_frequency)
    zigzag = swing * perpendicular(direction_to_pen) * r * HERD_ZIGZAG_AMPLITUDE
    target = ideal + zigzag
    speed = p.dog_speed * p.herd_zigzag_speed_factor
    return Steering(norm(target - dog.position) * speed, target)


def select_straggler(P: np.ndarray, center: np.ndarray, pen: np.ndarray) -> int:
    """Index of the sheep far from the flock centre and far from the pen."""
    dist_to_center = np.linalg.norm(P - center, axis=1)
    dist_to_pen = np.linalg.norm(P - pen, axis=1)
    # argmax keeps the first of equal scores
    return int(np.argmax(dist_to_center + FETCH_PEN_WEIGHT * dist_to_pen))


def fetch_behavior(dog: Dog, view: FlockView) -> Optional[Steering]:
    """Get behind the worst straggler so it is pushed back to the flock."""
    if view.empty:
        return None

    p = view.params
    sheep_pos = view.P[select_straggler(view.P, view.center, p.pen)]
    direction_to_center = norm(view.center - sheep_pos)
    target = sheep_pos - direction_to_center * p.dog_influence_radius
    return Steering(norm(target - dog.position) * p.dog_speed, target)


def find_sheep_near_boundary(P: np.ndarray, params: FlockParams) -> Optional[int]:
    """
    Index of the sheep closest to the fence, if any is within the danger margin.

    Ties go to the first sheep found.
    """
    danger_margin = params.patrol_margin * PATROL_DANGER
    closest = None
    min_boundary_dist = params.world_size

    for i, (x, y) in enumerate(P):
        boundary_dist = min(x, y, params.world_size - x, params.world_size - y)
        if boundary_dist < danger_margin and boundary_dist < min_boundary_dist:
            min_boundary_dist = boundary_dist
            closest = i

    return closest


def random_patrol_point(params: FlockParams, rng: np.random.Generator) -> np.ndarray:
    """Uniform point along a uniformly chosen fence, inset by patrol_margin."""
    W = params.world_size
    margin = params.patrol_margin

    side = int(rng.integers(4))
    along = rng.uniform() * W

    if side == 0:  # Left
        return np.array([margin, along])
    elif side == 1:  # Top
        return np.array([along, W - margin])
    elif side == 2:  # Right
        return np.array([W - margin, along])
    else:  # Bottom
        return np.array([along, margin])


def patrol_behavior(dog: Dog, view: FlockView) -> Optional[Steering]:
    """Walk the fence; go after any sheep that gets too close to it."""
    p = view.params
    target = dog.target

    if target is None or np.linalg.norm(dog.position - target) < (
        p.dog_influence_radius * PATROL_REACHED
    ):
        idx = find_sheep_near_boundary(view.P, p)
        # The fence point is drawn only when no sheep needs chasing.
        if idx is not None:
            target = view.P[idx].copy()
            logger.debug("Dog %d patrolling toward sheep %d at %s", dog.id, idx, target)
        else:
            target = random_patrol_point(p, view.rng)
            logger.debug("Dog %d patrolling toward fence point %s", dog.id, target)

    # Unit speed: patrol velocity is not rescaled to dog_speed.
    return Steering(norm(target - dog.position), target)


def block_behavior(dog: Dog, view: FlockView) -> Optional[Steering]:
    """Stand between the flock and the point it is heading for."""
    if view.empty:
        return None

    p = view.params
    W = p.world_size
    heading = norm(np.sum(norm_rows(view.V), axis=0))

    escape_point = np.clip(view.center + heading * W * BLOCK_LOOKAHEAD, 0.0, W)
    ideal = (
        view.center
        + norm(escape_point - view.center) * p.dog_influence_radius * BLOCK_STANDOFF
    )
    return Steering(norm(ideal - dog.position) * p.dog_speed, ideal)


BEHAVIORS: Dict[DogMode, Behavior] = {
    DogMode.HERD: herd_behavior,
    DogMode.FETCH: fetch_behavior,
    DogMode.PATROL: patrol_behavior,
    DogMode.BLOCK: block_behavior,
}


# -----------------------------------------------------------------------------
# Dog-Dog Avoidance
# -----------------------------------------------------------------------------


def avoid_other_dogs(i: int, D: np.ndarray, params: FlockParams) -> np.ndarray:
    """
    Velocity to add to dog `i` to keep clear of the other dogs.

    Returns the zero vector unless the summed push exceeds AVOIDANCE_THRESHOLD.
    """
    avoidance_radius = params.dog_influence_radius * AVOIDANCE_RADIUS
    avoidance = np.zeros(2)

    for j in range(D.shape[0]):
        if j == i:
            continue
        delta = D[i] - D[j]
        distance = np.linalg.norm(delta)
        if distance < avoidance_radius:
            avoidance += norm(delta) * smooth_push(distance, avoidance_radius)

    if np.linalg.norm(avoidance) > AVOIDANCE_THRESHOLD:
        return norm(avoidance) * params.dog_speed
    return np.zeros(2)


# -----------------------------------------------------------------------------
# Controller
# -----------------------------------------------------------------------------


class DogController:
    """
    Applies the dog behaviour state machine.

    The controller holds the run parameters and the shared random source;
    everything else is passed per call.
    """

    def __init__(
        self,
        params: FlockParams,
        rng: Optional[np.random.Generator] = None,
    ):
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()

    def view(self, P: np.ndarray, V: np.ndarray, t: float) -> FlockView:
        return FlockView(
            P=P, V=V, center=flock_center(P), params=self.params, t=t, rng=self.rng
        )

    def steer(self, dog: Dog, view: FlockView) -> np.ndarray:
        """Mode-specific update followed by noise and the speed clamp."""
        steering = BEHAVIORS[dog.mode](dog, view)
        velocity = dog.velocity
        if steering is not None:
            velocity = steering.velocity
            dog.target = steering.target

        if self.params.dog_noise > 0:
            velocity = velocity + self.rng.normal(size=2) * self.params.dog_noise

        return clamp_speed(velocity, self.params.dog_speed)

    def update(
        self,
        index: int,
        dogs: Sequence[Dog],
        P: np.ndarray,
        V: np.ndarray,
        t: float = 0.0,
        view: Optional[FlockView] = None,
    ) -> None:
        """Set the velocity (and target) of `dogs[index]` for this step."""
        if view is None:
            view = self.view(P, V, t)
        dog = dogs[index]
        velocity = self.steer(dog, view)
        dog.velocity = velocity + avoid_other_dogs(index, positions(dogs), self.params)


def update_dog(
    index: int,
    flock: Sequence[Sheep],
    dogs: Sequence[Dog],
    params: FlockParams,
    t: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """Object-level entry point: run the controller once for `dogs[index]`."""
    DogController(params, rng).update(
        index, dogs, positions(flock), velocities(flock), t
    )
