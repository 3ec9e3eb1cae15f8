"""
Headless Simulation Runner

Runs a sheepdog simulation from the command line and prints flock metrics
every few steps, followed by a summary of the run.

Example:
    python -m simulation.run --sheep 100 --dogs 3 --steps 200 --seed 7
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from herding.presets import get_preset, list_presets
from herding.state import ALL_MODES, DogMode
from simulation import metrics, scenarios
from simulation.world import World

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Configuration
# -----------------------------------------------------------------------------

SPAWN_TYPES = ("uniform", "clusters", "circle")


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------


def build_world(args: argparse.Namespace) -> World:
    """Create the world described by the parsed arguments."""
    params = get_preset(args.preset)
    modes = [DogMode.parse(m) for m in args.modes]
    rng = np.random.default_rng(args.seed)
    ws = params.world_size

    if args.spawn == "uniform":
        xy = scenarios.spawn_uniform(args.sheep, ws, rng)
    elif args.spawn == "clusters":
        xy = scenarios.spawn_clusters(args.sheep, args.clusters, ws, spread=1.0, rng=rng)
    else:  # circle
        xy = scenarios.spawn_circle(
            args.sheep, center=(ws / 2, ws / 2), radius=ws / 6, rng=rng
        )
    flock = scenarios.flock_from_positions(xy, rng)

    dogs = scenarios.create_dogs(args.dogs, params, modes, rng)
    return World(flock, dogs, params, dt=args.dt, rng=rng)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run a headless sheepdog simulation.")
    p.add_argument("--sheep", type=int, default=100, help="Number of sheep")
    p.add_argument("--dogs", type=int, default=3, help="Number of dogs")
    p.add_argument(
        "--modes",
        nargs="+",
        default=[m.value for m in ALL_MODES],
        help="Dog modes to draw from (with replacement)",
    )
    p.add_argument("--steps", type=int, default=200, help="Simulation steps")
    p.add_argument("--dt", type=float, default=1.0, help="Time step")
    p.add_argument("--seed", type=int, default=0, help="Random seed")
    p.add_argument("--preset", choices=list_presets(), default="default")
    p.add_argument("--spawn", choices=SPAWN_TYPES, default="uniform")
    p.add_argument(
        "--clusters", type=int, default=3, help="# clusters for spawn=clusters"
    )
    p.add_argument(
        "--report-every", type=int, default=20, help="Print metrics every N steps"
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = p.parse_args(argv)

    if args.sheep < 0 or args.dogs < 0 or args.steps < 0:
        p.error("--sheep, --dogs and --steps must be non-negative")
    if args.report_every < 1:
        p.error("--report-every must be at least 1")
    try:
        args.modes = [DogMode.parse(m).value for m in args.modes]
    except ValueError as e:
        p.error(str(e))
    if not args.dt > 0:
        p.error("--dt must be positive")

    return args


# -----------------------------------------------------------------------------
# Main Execution
# -----------------------------------------------------------------------------


def run(args: argparse.Namespace) -> metrics.RunMetrics:
    """Run the simulation, printing a metrics row every `report_every` steps."""
    W = build_world(args)
    run_metrics = metrics.RunMetrics(run_id=f"seed-{args.seed}")
    run_metrics.record(W.get_state(), W.params)

    logger.info(
        "Starting run: %d sheep, %d dogs, %d steps", W.num_sheep, W.num_dogs, args.steps
    )
    start = time.time()

    def on_step(world: World) -> None:
        run_metrics.record(world.get_state(), world.params)
        if world.steps_taken % args.report_every == 0 and run_metrics.steps:
            row = run_metrics.steps[-1].to_dict()
            print(
                f"step {world.steps_taken:5d}  t={row['t']:7.1f}  "
                f"in_pen={row['fraction_in_pen']:.2f}  "
                f"spread={row['spread_radius']:6.2f}  "
                f"polar={row['polarization']:.2f}"
            )

    W.run(args.steps, callback=on_step)
    logger.info("Finished %d steps in %.2fs", args.steps, time.time() - start)

    summary = run_metrics.compute_summary()
    if summary:
        print()
        print(pd.Series(summary, dtype=object).to_string())
    return run_metrics


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    run(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
