"""
Flock Metrics

This module provides lightweight per-step measurements of a run (how spread
out the flock is, how aligned it is, how much of it is in the pen) and an
accumulator that summarises them and exports them as a pandas DataFrame.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from herding.state import FlockParams, FlockState
from herding.utils import norm_rows

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

PEN_RADIUS = 2.0  # Radius of the pen drawn around pen_center
MAX_STEPS_IN_MEMORY = 1000
STEPS_TO_KEEP_HEAD = 100


# -----------------------------------------------------------------------------
# Measurements
# -----------------------------------------------------------------------------


def polarization(V: np.ndarray) -> float:
    """
    Norm of the mean unit heading: 1.0 when every sheep moves the same way,
    near 0.0 for random headings. Stationary sheep count as zero headings.
    """
    if V.shape[0] == 0:
        return 0.0
    return float(np.linalg.norm(np.mean(norm_rows(V), axis=0)))


def fraction_in_pen(P: np.ndarray, pen: np.ndarray, radius: float = PEN_RADIUS) -> float:
    if P.shape[0] == 0:
        return 0.0
    d = np.linalg.norm(P - pen, axis=1)
    return float(np.count_nonzero(d <= radius) / P.shape[0])


@dataclass
class StepMetrics:
    """Metrics captured at one simulation step."""

    t: float  # Simulation time
    fraction_in_pen: float  # Fraction of sheep within the pen radius
    spread_radius: float  # Max distance from the flock centre
    mean_spread: float  # Mean distance from the flock centre
    polarization: float  # Alignment of headings, in [0, 1]
    center_to_pen: float  # Distance from flock centre to pen centre
    max_dog_speed: float  # Fastest dog this step (0 without dogs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def measure(
    state: FlockState, params: FlockParams, pen_radius: float = PEN_RADIUS
) -> Optional[StepMetrics]:
    """Compute StepMetrics for a snapshot; None for an empty flock."""
    P = state.flock
    if P.shape[0] == 0:
        return None

    center = np.mean(P, axis=0)
    distances = np.linalg.norm(P - center, axis=1)
    pen = params.pen

    if state.dog_velocities.shape[0] > 0:
        max_dog_speed = float(np.max(np.linalg.norm(state.dog_velocities, axis=1)))
    else:
        max_dog_speed = 0.0

    return StepMetrics(
        t=float(state.t),
        fraction_in_pen=fraction_in_pen(P, pen, pen_radius),
        spread_radius=float(np.max(distances)),
        mean_spread=float(np.mean(distances)),
        polarization=polarization(state.flock_velocities),
        center_to_pen=float(np.linalg.norm(center - pen)),
        max_dog_speed=max_dog_speed,
    )


# -----------------------------------------------------------------------------
# Run Accumulator
# -----------------------------------------------------------------------------


@dataclass
class RunMetrics:
    """
    Metrics for a whole run.

    Step-level data is kept in memory and truncated for long runs (the first
    STEPS_TO_KEEP_HEAD steps, or half the window if that is smaller, and the
    most recent ones are kept).
    """

    run_id: str
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None

    steps: List[StepMetrics] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    max_steps_in_memory: int = MAX_STEPS_IN_MEMORY

    def __post_init__(self):
        if self.max_steps_in_memory < 1:
            raise ValueError(
                f"max_steps_in_memory must be at least 1, got {self.max_steps_in_memory}"
            )

    def add_step(self, step: StepMetrics):
        """Add a step's metrics, potentially discarding old steps."""
        self.steps.append(step)
        if len(self.steps) > self.max_steps_in_memory:
            # Small windows split evenly between head and tail
            keep_first = min(STEPS_TO_KEEP_HEAD, self.max_steps_in_memory // 2)
            keep_last = self.max_steps_in_memory - keep_first
            self.steps = self.steps[:keep_first] + self.steps[-keep_last:]

    def record(self, state: FlockState, params: FlockParams) -> None:
        step = measure(state, params)
        if step is not None:
            self.add_step(step)

    def compute_summary(self) -> Dict[str, Any]:
        """Compute summary statistics from step data."""
        if not self.steps:
            return self.summary

        self.ended_at = time.time()

        fractions = [s.fraction_in_pen for s in self.steps]
        spreads = [s.spread_radius for s in self.steps]
        polar = [s.polarization for s in self.steps]
        times = [s.t for s in self.steps]

        def time_to_threshold(values: List[float], threshold: float) -> Optional[float]:
            for i, v in enumerate(values):
                if v >= threshold:
                    return times[i]
            return None

        self.summary = {
            "time_to_pen_fraction_50": time_to_threshold(fractions, 0.5),
            "time_to_pen_fraction_90": time_to_threshold(fractions, 0.9),
            "final_fraction_in_pen": fractions[-1],
            "max_spread_radius": max(spreads),
            "min_spread_radius": min(spreads),
            "avg_spread_radius": sum(spreads) / len(spreads),
            "avg_polarization": sum(polar) / len(polar),
            "initial_center_to_pen": self.steps[0].center_to_pen,
            "final_center_to_pen": self.steps[-1].center_to_pen,
            "num_steps": len(self.steps),
            "total_simulation_time": times[-1],
            "wall_clock_duration": self.ended_at - self.started_at,
        }
        return self.summary

    def to_frame(self) -> pd.DataFrame:
        """Step metrics as a DataFrame indexed by simulation time."""
        columns = [f for f in StepMetrics.__dataclass_fields__]
        df = pd.DataFrame([s.to_dict() for s in self.steps], columns=columns)
        return df.set_index("t")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "summary": self.summary,
            "steps": [s.to_dict() for s in self.steps[-STEPS_TO_KEEP_HEAD:]],
            "num_steps_total": len(self.steps),
        }
