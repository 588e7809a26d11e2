"""CLI entry point for primfit.

Usage:
    primfit run                          # Run full pipeline
    primfit run-step plane_candidate -i '{...}'   # Run single step
    primfit info                         # Show pipeline info
    primfit describe cloud.ply -s 0 -s 1 -s 2  # Fit one candidate
"""

from __future__ import annotations

import math
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from primfit.core.logging import setup_logging

app = typer.Typer(name="primfit", help="RANSAC plane primitive fitting")
console = Console()

DEFAULT_CONFIG = Path("configs/pipeline.yaml")


@app.command()
def run(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Run the full pipeline."""
    from primfit.core.pipeline_runner import load_pipeline_config, run_pipeline

    setup_logging(load_pipeline_config(config).log_level)
    run_pipeline(config)


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name (e.g. plane_candidate)"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
) -> None:
    """Run a single pipeline step."""
    import json

    from primfit.core.pipeline_runner import build_step, load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    setup_logging(pipeline_cfg.log_level)
    entry = next((s for s in pipeline_cfg.steps if s.name == step_name), None)
    if entry is None:
        console.print(f"[red]Step '{step_name}' not found in pipeline config[/red]")
        raise typer.Exit(1)

    step = build_step(entry, pipeline_cfg.data_root)

    input_data = dict(entry.input)
    if input_json:
        input_data.update(json.loads(input_json))
    missing = [name for name in step.get_input_schema().get("required", []) if name not in input_data]
    if missing:
        console.print(f"[yellow]Step '{step_name}' requires input fields: {missing}[/yellow]")
        console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
        console.print(f'  primfit run-step {step_name} -i \'{{"field": "value"}}\'')
        raise typer.Exit(1)

    console.print(f"[green]Running step: {step_name}[/green]")
    output = step.execute(step.input_type(**input_data))
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2)}")


@app.command()
def info(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Show pipeline steps and their status."""
    from primfit.core.pipeline_runner import load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    table = Table(title=f"Pipeline: {pipeline_cfg.project_name}")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Module", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("Config", style="dim")
    table.add_column("Depends On", style="dim")

    for i, step in enumerate(pipeline_cfg.steps, 1):
        table.add_row(
            str(i),
            step.name,
            step.module,
            "Y" if step.enabled else "N",
            step.config_file or "(defaults)",
            ", ".join(step.depends_on) if step.depends_on else "-",
        )
    console.print(table)


@app.command()
def describe(
    cloud: Path = typer.Argument(..., help="Oriented point cloud (.ply with normals or .npz)"),
    sample: list[int] = typer.Option(..., "--sample", "-s", help="Point index of the minimal sample (3x)"),
    inlier_threshold: float = typer.Option(0.02, help="Inlier distance (scene units)"),
    angle_threshold: float = typer.Option(20.0, help="Normal deviation (degrees)"),
    res: float = typer.Option(0.01, help="Footprint raster resolution"),
    component_res: float = typer.Option(0.05, help="Connected-component raster cell size"),
) -> None:
    """Construct one plane candidate and print its descriptor."""
    from primfit.primitives import PlanePrimitive, PrimitiveConfig
    from primfit.steps.s01_plane_candidate.step import evaluate_candidate
    from primfit.utils.io import load_oriented_cloud

    setup_logging("WARNING")
    if len(sample) != 3:
        console.print(f"[red]A plane needs 3 sample points, got {len(sample)}[/red]")
        raise typer.Exit(1)

    points, normals = load_oriented_cloud(cloud)
    if max(sample) >= len(points) or min(sample) < 0:
        console.print(f"[red]Sample indices out of range for {len(points)} points[/red]")
        raise typer.Exit(1)

    angle = math.radians(angle_threshold)
    plane = PlanePrimitive(
        config=PrimitiveConfig(connectedness_res=res, current_connectedness_res=component_res)
    )
    if not plane.construct(points[sample], normals[sample], inlier_threshold, angle):
        console.print("[yellow]Sample rejected: degenerate or normals disagree[/yellow]")
        raise typer.Exit(1)
    evaluate_candidate(plane, points, normals, inlier_threshold, angle)

    table = Table(title=f"Plane from sample {sample}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    data = plane.shape_data()
    table.add_row("equation", ", ".join(f"{v:.4f}" for v in data[0:4]))
    table.add_row("extents", ", ".join(f"{v:.4f}" for v in data[4:6]))
    table.add_row("center", ", ".join(f"{v:.4f}" for v in data[6:9]))
    table.add_row("quaternion (xyzw)", ", ".join(f"{v:.4f}" for v in data[9:13]))
    table.add_row("conforming", str(len(plane.conforming_inds)))
    table.add_row("supporting", str(len(plane.supporting_inds)))
    table.add_row("hull vertices", str(len(plane.convex_hull)))
    table.add_row("footprint", "Y" if plane.has_footprint else "N")
    console.print(table)


if __name__ == "__main__":
    app()
