"""
Flock Force Model

Computes the per-step velocity of one sheep from the three local steering
rules (separation, cohesion, alignment) and the repulsion exerted by nearby
dogs. Neighbour scans are exact pairwise scans over the whole flock,
vectorised with NumPy.

The kernels take the flock as n-by-2 arrays plus the index of the sheep being
updated; `compute_sheep_velocity` and `update_sheep` are the object-level
wrappers over them.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from herding.state import Dog, FlockParams, Sheep, positions, velocities
from herding.utils import FORCE_EPS, NEAR_ZERO, clamp_speed, norm, norm_rows

# -----------------------------------------------------------------------------
# Steering Rules
# -----------------------------------------------------------------------------


def separation(i: int, P: np.ndarray, radius: float) -> np.ndarray:
    """Sum of (p_i - p_j) / (d^2 + eps) over other sheep closer than `radius`."""
    delta = P[i] - P
    d = np.sqrt(np.sum(delta**2, axis=1))
    mask = d < radius
    mask[i] = False
    if not np.any(mask):
        return np.zeros(2)
    return np.sum(delta[mask] / (d[mask] ** 2 + FORCE_EPS)[:, None], axis=0)


def _neighbour_mask(i: int, P: np.ndarray, radius: float) -> np.ndarray:
    # The radius test admits sheep i itself (distance 0), as well as any
    # flockmate sharing its exact position.
    d = np.sqrt(np.sum((P - P[i]) ** 2, axis=1))
    return d < radius


def cohesion(i: int, P: np.ndarray, radius: float) -> np.ndarray:
    """Unit vector toward the mean position of neighbours within `radius`."""
    mask = _neighbour_mask(i, P, radius)
    if not np.any(mask):
        return np.zeros(2)
    direction = np.mean(P[mask], axis=0) - P[i]
    return norm(direction, NEAR_ZERO)


def alignment(i: int, P: np.ndarray, V: np.ndarray, radius: float) -> np.ndarray:
    """Unit vector from the sheep's velocity toward its neighbours' mean velocity."""
    mask = _neighbour_mask(i, P, radius)
    if not np.any(mask):
        return np.zeros(2)
    vel_diff = np.mean(V[mask], axis=0) - V[i]
    return norm(vel_diff, NEAR_ZERO)


def dog_repulsion(p: np.ndarray, D: np.ndarray, params: FlockParams) -> np.ndarray:
    """Push away from every dog within the influence radius, falling off as 1/d."""
    if D.shape[0] == 0:
        return np.zeros(2)

    delta = p - D
    d = np.sqrt(np.sum(delta**2, axis=1))
    mask = d < params.dog_influence_radius
    if not np.any(mask):
        return np.zeros(2)

    scale = params.dog_repulsion_strength / (d[mask] + FORCE_EPS)
    return np.sum(norm_rows(delta[mask]) * scale[:, None], axis=0)


# -----------------------------------------------------------------------------
# Combined Update
# -----------------------------------------------------------------------------


def sheep_velocity(
    i: int, P: np.ndarray, V: np.ndarray, D: np.ndarray, params: FlockParams
) -> np.ndarray:
    """
    New velocity of sheep `i` given flock positions/velocities and dog positions.

    Args:
        i: Index of the sheep in `P` / `V`.
        P: n-by-2 sheep positions.
        V: n-by-2 sheep velocities.
        D: m-by-2 dog positions (may be empty).
        params: Run parameters.

    Returns:
        The updated velocity, clamped to `max_sheep_speed`.
    """
    r = params.sheep_radius
    sep = separation(i, P, r)
    coh = cohesion(i, P, r)
    ali = alignment(i, P, V, r)
    dog_force = dog_repulsion(P[i], D, params)

    v = (
        V[i]
        + sep * params.separation_weight
        + coh * params.cohesion_weight
        + ali * params.alignment_weight
        + dog_force
    )
    return clamp_speed(v, params.max_sheep_speed)


def compute_sheep_velocity(
    index: int, flock: Sequence[Sheep], dogs: Sequence[Dog], params: FlockParams
) -> np.ndarray:
    """Object-level wrapper around `sheep_velocity`; does not mutate anything."""
    return sheep_velocity(
        index, positions(flock), velocities(flock), positions(dogs), params
    )


def update_sheep(
    index: int, flock: Sequence[Sheep], dogs: Sequence[Dog], params: FlockParams
) -> None:
    """Replace `flock[index].velocity` with its next-step value."""
    flock[index].velocity = compute_sheep_velocity(index, flock, dogs, params)
