"""
Parameter Presets

This module is the single source of named `FlockParams` configurations, with
support for overriding individual fields and for building parameters from
plain dictionaries (e.g. parsed from a command line or a notebook cell).
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional, Union

from herding.state import FlockParams

# -----------------------------------------------------------------------------
# Data Structures
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ParamsPreset:
    """A named, documented parameter set."""

    key: str
    name: str
    description: str
    params: FlockParams

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "params": self.params.to_dict(),
        }


# -----------------------------------------------------------------------------
# Presets
# -----------------------------------------------------------------------------

PARAM_PRESETS: Dict[str, ParamsPreset] = {
    "default": ParamsPreset(
        key="default",
        name="Sheepdog",
        description="Flock of sheep worked by dogs, pen in the top-right corner",
        params=FlockParams(),
    ),
    "flocking": ParamsPreset(
        key="flocking",
        name="Free flocking",
        description="Slower, noisier sheep with a wider neighbourhood; meant to run without dogs",
        params=FlockParams(
            max_sheep_speed=0.4,
            sheep_radius=2.0,
            sheep_noise=0.2,
        ),
    ),
    "lively": ParamsPreset(
        key="lively",
        name="Lively dogs",
        description="Default flock with small random jitter on dog movement",
        params=FlockParams(dog_noise=0.05),
    ),
}


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------


def list_presets() -> List[str]:
    return sorted(PARAM_PRESETS)


def get_preset(key: str, **overrides: Any) -> FlockParams:
    """
    Look up a preset by key and apply field overrides.

    Raises:
        KeyError: If `key` is not a known preset.
    """
    if key not in PARAM_PRESETS:
        raise KeyError(f"Unknown preset {key!r}; known presets: {', '.join(list_presets())}")
    params = PARAM_PRESETS[key].params
    if overrides:
        params = replace(params, **overrides)
    return params


def params_from_dict(data: Dict[str, Any]) -> FlockParams:
    """
    Create FlockParams from a dictionary, ignoring unknown keys.

    Missing keys use the dataclass defaults.
    """
    known_fields = {f.name for f in fields(FlockParams)}
    filtered = {k: v for k, v in data.items() if k in known_fields}
    if "pen_center" in filtered:
        filtered["pen_center"] = tuple(filtered["pen_center"])
    return FlockParams(**filtered)


def build_params(
    config: Optional[Union[str, Dict[str, Any], FlockParams]] = None
) -> FlockParams:
    """
    Build FlockParams from the accepted config formats.

    Args:
        config: Can be:
            - None: the "default" preset
            - str: a preset key
            - dict: if its "key" names a preset, that preset with the other
                    entries overlaid; otherwise a complete custom config
            - FlockParams: used as-is

    Returns:
        The resulting FlockParams.
    """
    if config is None:
        return PARAM_PRESETS["default"].params

    if isinstance(config, str):
        return get_preset(config)

    if isinstance(config, dict):
        key = config.get("key")
        if key and key in PARAM_PRESETS:
            base = PARAM_PRESETS[key].params.to_dict()
            base.update(config)
            return params_from_dict(base)
        return params_from_dict(config)

    if isinstance(config, FlockParams):
        return config

    raise TypeError(f"Unsupported params config type: {type(config)}")
