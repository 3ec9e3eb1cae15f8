"""
Herding Engine

This package contains the motion-update engine: agent state and parameters,
the flock force model, the dog behaviour controller, vector utilities and
named parameter presets.
"""

from . import utils
from .dogs import DogController, update_dog
from .forces import compute_sheep_velocity, update_sheep
from .state import ALL_MODES, Dog, DogMode, FlockParams, FlockState, Sheep

__all__ = [
    "ALL_MODES",
    "Dog",
    "DogController",
    "DogMode",
    "FlockParams",
    "FlockState",
    "Sheep",
    "compute_sheep_velocity",
    "update_dog",
    "update_sheep",
    "utils",
]
