#!/usr/bin/env python3
"""
Registration Score Evaluation - Command Line Interface
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tools.score_eval import run_score_eval

app = typer.Typer(
    name="regeval",
    help="Registration score-grid evaluation CLI",
    add_completion=False,
)
console = Console()


@app.command()
def run(
    config: Path = typer.Argument(
        ...,
        help="Path to score evaluation config YAML file"
    ),
    idx1: Optional[int] = typer.Option(
        None, "--idx1",
        help="'Fixed' index of pose/pointcloud to be used"
    ),
    idx2: Optional[int] = typer.Option(
        None, "--idx2",
        help="'Moving' index of pose/pointcloud to be used"
    ),
    dimidx1: Optional[int] = typer.Option(
        None, "--dimidx1",
        help="Outer sweep axis (0,1,2,3,4,5 -> x,y,z,roll,pitch,yaw)"
    ),
    dimidx2: Optional[int] = typer.Option(
        None, "--dimidx2",
        help="Inner sweep axis (0,1,2,3,4,5 -> x,y,z,roll,pitch,yaw)"
    ),
    iters: Optional[int] = typer.Option(
        None, "--iters",
        help="Number of evaluated pair offsets (idx1 + iter, idx2 + iter)"
    ),
    iter_step: Optional[int] = typer.Option(
        None, "--iter-step",
        help="Iter step size"
    ),
    iter_all_poses: Optional[bool] = typer.Option(
        None, "--iter-all-poses/--no-iter-all-poses",
        help="Iterate over all available poses"
    ),
    out_file: Optional[str] = typer.Option(
        None, "--out-file", "-o",
        help="Prefix for the output files"
    ),
    save_global_ts: Optional[bool] = typer.Option(
        None, "--save-global-ts/--no-save-global-ts",
        help="Write global trajectories of all estimators"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w",
        help="Threads used for grid scoring"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level",
        help="Logging level: DEBUG, INFO, WARNING, ERROR"
    ),
):
    """Evaluate objective score grids and estimators on scan pairs."""
    overrides = {
        "idx1": idx1,
        "idx2": idx2,
        "dimidx1": dimidx1,
        "dimidx2": dimidx2,
        "iters": iters,
        "iter_step": iter_step,
        "iter_all_poses": iter_all_poses,
        "workers": workers,
        "output.out_file": out_file,
        "output.save_global_ts": save_global_ts,
    }
    exit_code = run_score_eval(config, overrides, log_level.upper() if log_level else None)
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command()
def grid(
    offset_size: int = typer.Option(
        100, "--offset-size",
        help="Half-width N of the sweep, 2N+1 points per axis"
    ),
    incr_dist: float = typer.Option(
        0.01, "--incr-dist",
        help="Incremental steps for distance directions (x,y,z)"
    ),
    incr_ang: float = typer.Option(
        0.002, "--incr-ang",
        help="Incremental steps for angular directions (R,P,Y)"
    ),
    dimidx1: int = typer.Option(0, "--dimidx1", help="Outer sweep axis"),
    dimidx2: int = typer.Option(1, "--dimidx2", help="Inner sweep axis"),
):
    """Show the offset lattice a run would evaluate."""
    from pydantic import ValidationError
    from regeval.common.config import GridConfig
    from regeval.common.errors import ConfigurationError
    from regeval.evaluation.grid import OffsetGridGenerator
    from regeval.utils.math_utils import AXIS_NAMES

    try:
        generator = OffsetGridGenerator(GridConfig(
            offset_size=offset_size, incr_dist=incr_dist, incr_ang=incr_ang
        ))
        offsets = generator.generate_2d_sweep(dimidx1, dimidx2)
    except (ConfigurationError, ValidationError) as e:
        console.print(f"[red]✗ Invalid grid: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Offset Grid")
    table.add_column("Axis", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Points", style="green")
    table.add_column("Min", style="yellow")
    table.add_column("Max", style="yellow")

    for axis, role in ((dimidx1, "outer"), (dimidx2, "inner")):
        values = generator.axis_values(axis)
        table.add_row(AXIS_NAMES[axis], role, str(len(values)),
                      f"{values[0]:.4f}", f"{values[-1]:.4f}")

    console.print(table)
    console.print(f"Total offsets: {len(offsets)}")


@app.command("show-trajectory")
def show_trajectory(
    trajectory_file: Path = typer.Argument(
        ...,
        help="Trajectory file written with the rpy format"
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Rows to show"),
):
    """Print the poses of an exported trajectory file."""
    from regeval.io.pose_io import read_pose_vectors

    if not trajectory_file.exists():
        console.print(f"[red]✗ Error: File not found: {trajectory_file}[/red]")
        raise typer.Exit(1)

    try:
        poses = read_pose_vectors(trajectory_file)
    except ValueError as e:
        console.print(f"[red]✗ Error reading {trajectory_file}: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{trajectory_file.name} ({len(poses)} poses)")
    table.add_column("#", style="cyan")
    for name in ("x", "y", "z", "roll", "pitch", "yaw"):
        table.add_column(name, style="green")

    for i, v in enumerate(poses[:limit]):
        table.add_row(str(i), *(f"{x:.4f}" for x in v))

    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
