"""
Scenario Spawning Functions

This module builds the initial population of a run: the flock and the dogs
used by the stepper, plus a few geometric spawn patterns (uniform, clusters,
circle) for sheep positions. Every function draws from the random generator it
is given so a run is reproducible from a single seed.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from herding.state import ALL_MODES, Dog, DogMode, FlockParams, Sheep

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


# -----------------------------------------------------------------------------
# Agents
# -----------------------------------------------------------------------------


def create_flock(
    n: int,
    world_size: float,
    rng: Optional[np.random.Generator] = None,
    velocity_scale: float = 1.0,
) -> List[Sheep]:
    """
    Creates n sheep at uniform positions in [0, world_size]^2.

    Args:
        n: Number of sheep.
        world_size: Side length of the square world.
        rng: Random generator.
        velocity_scale: Standard deviation of each initial velocity component.

    Returns:
        List of sheep with ids 0..n-1.
    """
    rng = _rng(rng)
    flock = []
    for i in range(n):
        pos = rng.uniform(size=2) * world_size
        vel = rng.normal(size=2) * velocity_scale
        flock.append(Sheep(position=pos, velocity=vel, id=i))
    return flock


def flock_from_positions(
    xy: np.ndarray,
    rng: Optional[np.random.Generator] = None,
    velocity_scale: float = 1.0,
) -> List[Sheep]:
    """Creates one sheep per row of `xy` with normal random velocities."""
    rng = _rng(rng)
    xy = np.asarray(xy, dtype=float).reshape(-1, 2)
    return [
        Sheep(position=p, velocity=rng.normal(size=2) * velocity_scale, id=i)
        for i, p in enumerate(xy)
    ]


def create_dogs(
    n: int,
    params: FlockParams,
    modes: Sequence = ALL_MODES,
    rng: Optional[np.random.Generator] = None,
) -> List[Dog]:
    """
    Creates n dogs at uniform positions, each with a mode drawn uniformly
    (with replacement) from `modes`.

    Raises:
        ValueError: If dogs are requested but `modes` is empty.
    """
    parsed = [DogMode.parse(m) for m in modes]
    if n > 0 and not parsed:
        raise ValueError("create_dogs needs at least one mode to draw from")

    rng = _rng(rng)
    dogs = []
    for i in range(n):
        pos = rng.uniform(size=2) * params.world_size
        vel = rng.normal(size=2)
        mode = parsed[int(rng.integers(len(parsed)))]
        dogs.append(Dog(position=pos, velocity=vel, mode=mode, target=None, id=i))
    return dogs


# -----------------------------------------------------------------------------
# Spawning Functions
# -----------------------------------------------------------------------------


def spawn_uniform(
    N: int, world_size: float, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """
    Generates N points uniformly distributed within [0, world_size]^2.

    Returns:
        (N, 2) array of point coordinates.
    """
    rng = _rng(rng)
    return rng.uniform(0.0, world_size, size=(N, 2))


def spawn_clusters(
    N: int,
    k: int,
    world_size: float,
    spread: float = 1.0,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Generates N points distributed in k Gaussian clusters.

    Args:
        N: Total number of points.
        k: Number of clusters.
        world_size: Side length of the world; points are clipped into it.
        spread: Standard deviation of the clusters.
        rng: Random generator.

    Returns:
        (N, 2) array of point coordinates.
    """
    rng = _rng(rng)
    k = max(1, k)
    inset = min(3.0 * spread, 0.25 * world_size)

    # Cluster centres well within the world
    centers = rng.uniform(inset, world_size - inset, size=(k, 2))

    base = N // k
    extras = N - base * k
    # Distribute points among clusters
    sizes = [base + (1 if i < extras else 0) for i in range(k)]

    pts = [c + rng.normal(scale=spread, size=(size, 2)) for c, size in zip(centers, sizes)]
    return np.clip(np.vstack(pts), 0.0, world_size)


def spawn_circle(
    N: int,
    center: Tuple[float, float] = (10.0, 10.0),
    radius: float = 3.0,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Generates N points uniformly distributed within a circle.

    Returns:
        (N, 2) array of point coordinates.
    """
    rng = _rng(rng)
    c = np.array(center, float)

    # Random angles and radii (sqrt for uniform area distribution)
    th = rng.random(N) * 2 * np.pi
    r = radius * np.sqrt(rng.random(N))

    return c + np.stack([r * np.cos(th), r * np.sin(th)], axis=1)
