"""
Score evaluation command implementation.
Runs the score grid and all estimators over the configured scan pairs.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from regeval.common.config import LogLevel, ScoreEvalConfig
from regeval.common.data_structures import EstimatorName
from regeval.common.errors import ConfigurationError

console = Console()


def load_config_with_overrides(config: Path, overrides: Dict[str, Any]) -> ScoreEvalConfig:
    """
    Load a YAML config and apply command line overrides.

    Top-level keys are replaced; 'output.<key>' keys go to the output
    section. None values are ignored.

    Raises:
        ConfigurationError: If the file cannot be read
        ValidationError: If the resulting configuration is invalid
    """
    try:
        with open(config, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config {config}: {e}") from e

    for key, value in overrides.items():
        if value is None:
            continue
        if key.startswith("output."):
            data.setdefault("output", {})[key.split(".", 1)[1]] = value
        else:
            data[key] = value

    return ScoreEvalConfig(**data)


def run_score_eval(
    config: Path,
    overrides: Optional[Dict[str, Any]] = None,
    log_level: Optional[str] = None
) -> int:
    """
    Run the score evaluation.

    Args:
        config: Path to the score evaluation YAML file
        overrides: Command line values replacing config entries
        log_level: Logging level overriding the config

    Returns:
        Exit code, 0 on success and 1 on a configuration error
    """
    from regeval.evaluation.session import EvaluationSession, setup_logging

    if not config.exists():
        console.print(f"[red]✗ Error: Config file not found: {config}[/red]")
        return 1

    try:
        eval_config = load_config_with_overrides(config, overrides or {})
    except ConfigurationError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        return 1
    except ValidationError as e:
        console.print(f"[red]✗ Invalid configuration:[/red]\n{e}")
        return 1

    try:
        level = LogLevel(log_level) if log_level else eval_config.logging.level
    except ValueError:
        console.print(f"[red]✗ Error: Unknown log level: {log_level}[/red]")
        return 1
    setup_logging(level, eval_config.logging.file, eval_config.logging.console)

    console.print("\n[bold]Registration Score Evaluation[/bold]")
    console.print(f"  Config: {config}")
    console.print(f"  Backend: {eval_config.backend}")
    console.print(f"  Sweep axes: {eval_config.dimidx1}, {eval_config.dimidx2}")

    try:
        session = EvaluationSession(eval_config)
        results = session.run(export=True)
    except ConfigurationError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        return 1

    table = Table(title="Final Global Poses")
    table.add_column("Estimator", style="cyan")
    table.add_column("x", style="green")
    table.add_column("y", style="green")
    table.add_column("z", style="green")
    table.add_column("yaw", style="yellow")

    for name in EstimatorName:
        v = session.trajectories.as_vectors(name)
        if len(v) == 0:
            continue
        table.add_row(name.value, f"{v[-1, 0]:.4f}", f"{v[-1, 1]:.4f}",
                      f"{v[-1, 2]:.4f}", f"{v[-1, 5]:.4f}")

    console.print(table)
    console.print(f"\n[green]✓ Evaluated {len(results)} pairs[/green], "
                  f"output prefix: {eval_config.output.out_file}")
    return 0
