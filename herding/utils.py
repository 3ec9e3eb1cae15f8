"""
Herding Utilities

This module provides the vector helpers shared by the force model and the dog
controller: normalisation with a near-zero guard, speed clamping and the
linear falloff used for dog-dog avoidance.
"""

from __future__ import annotations

import numpy as np

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

# Vectors shorter than this normalise to zero instead of blowing up.
NEAR_ZERO = 1e-10

# Added to distances in force denominators.
FORCE_EPS = 1e-5


# -----------------------------------------------------------------------------
# Vector Operations
# -----------------------------------------------------------------------------


def norm(v: np.ndarray, eps: float = NEAR_ZERO) -> np.ndarray:
    """
    Normalize a vector `v` to unit length.

    Args:
        v: Input vector (NumPy array).
        eps: Magnitudes below this return the zero vector.

    Returns:
        The normalized unit vector, or zeros for a near-zero input.
    """
    v = np.asarray(v, dtype=np.float64)
    x = np.linalg.norm(v)
    if x < eps:
        return np.zeros_like(v)
    return v / x


def norm_rows(V: np.ndarray, eps: float = NEAR_ZERO) -> np.ndarray:
    """Row-wise `norm` for an n-by-2 array."""
    V = np.asarray(V, dtype=np.float64)
    L = np.linalg.norm(V, axis=1)
    out = np.zeros_like(V)
    ok = L >= eps
    out[ok] = V[ok] / L[ok, None]
    return out


def clamp_speed(v: np.ndarray, max_speed: float) -> np.ndarray:
    """Rescale `v` to `max_speed` if it is faster, keeping its direction."""
    speed = np.linalg.norm(v)
    if speed > max_speed:
        return v / speed * max_speed
    return v


def perpendicular(v: np.ndarray) -> np.ndarray:
    """Rotate a 2-vector by +90 degrees."""
    return np.array([-v[1], v[0]], dtype=np.float64)


# -----------------------------------------------------------------------------
# Force Functions
# -----------------------------------------------------------------------------


def smooth_push(
    dist: float | np.ndarray, rs: float, eps: float = 0.0
) -> float | np.ndarray:
    """
    Calculate a linear influence scalar in [0, 1] based on distance.

    The influence is 1.0 when distance is 0, and linearly decreases to 0.0
    at distance `rs`. Beyond `rs`, the influence is 0.0.

    Args:
        dist: Distance from the source (float or NumPy array).
        rs: The maximum influence distance.
        eps: Optional padding on `rs` for callers that may pass rs == 0.

    Returns:
        Influence value in [0, 1] for non-negative distances.
    """
    return np.maximum(0.0, 1.0 - dist / (rs + eps))
