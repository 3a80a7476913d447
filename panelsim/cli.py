"""
CLI for the Hausman-under-missingness Monte Carlo harness.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="panelsim",
    help="Monte Carlo study of Hausman test reliability under missing panel data",
)
console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging with rich output."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_design(design_path: Optional[Path]):
    from panelsim.config.settings import get_settings
    from panelsim.engine.scenarios import load_sweep_design

    path = design_path or get_settings().sweep_config
    try:
        return load_sweep_design(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not load sweep design: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def scenarios(
    design_path: Optional[Path] = typer.Option(None, "--design", help="Sweep design YAML"),
):
    """Show the feasible / excluded partition of the sweep design."""
    from panelsim.config.settings import get_settings
    from panelsim.engine.scenarios import enumerate_scenarios

    setup_logging(get_settings().log_level)
    design = _load_design(design_path)
    feasible, infeasible = enumerate_scenarios(design)

    console.print(f"[bold]Combinations:[/bold] {design.n_combinations}")
    console.print(f"[bold]Feasible:[/bold] {len(feasible)}")
    console.print(f"[bold]Excluded:[/bold] {len(infeasible)}")

    shapes = {}
    for issue in infeasible:
        key = (issue.params.panel_shape, issue.params.complexity)
        shapes.setdefault(key, issue)

    if shapes:
        table = Table(title="Excluded Shape × Complexity Pairs")
        table.add_column("Panel Shape", style="cyan")
        table.add_column("Complexity", style="white")
        table.add_column("N", style="white")
        table.add_column("T", style="white")
        table.add_column("k", style="white")
        table.add_column("Reason", style="yellow")
        for (shape, complexity), issue in shapes.items():
            p = issue.params
            table.add_row(
                shape, complexity, str(p.n_units), str(p.n_periods),
                str(p.n_covariates), issue.message,
            )
        console.print(table)


@app.command()
def trial(
    panel_shape: str = typer.Argument(..., help="Panel shape, e.g. 'Wide Panel'"),
    complexity: str = typer.Argument(..., help="Complexity, e.g. 'Simple'"),
    mechanism: str = typer.Argument(..., help="Random, Early Exit, Late Missing, Cyclical"),
    dropout: float = typer.Argument(..., help="Dropout rate, e.g. 0.10"),
    replications: Optional[int] = typer.Option(None, min=1, help="Replications (default: settings)"),
    seed: Optional[int] = typer.Option(None, help="Master seed (default: settings)"),
    design_path: Optional[Path] = typer.Option(None, "--design", help="Sweep design YAML"),
):
    """Run replications of a single scenario and print outcome counts."""
    from panelsim.config.settings import get_settings
    from panelsim.engine.sweep import SweepController

    settings = get_settings()
    setup_logging(settings.log_level)
    design = _load_design(design_path)

    try:
        index, params = design.find(panel_shape, complexity, mechanism, dropout)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not params.is_feasible:
        console.print(
            f"[red]Scenario is infeasible: T ({params.n_periods}) < "
            f"k + 1 ({params.n_covariates + 1})[/red]"
        )
        raise typer.Exit(1)

    controller = SweepController(
        design=design,
        n_replications=settings.n_replications if replications is None else replications,
        master_seed=settings.master_seed if seed is None else seed,
        significance_level=settings.significance_level,
        n_jobs=settings.n_jobs,
    )

    console.print(f"[bold]Running {controller.n_replications} trials: {params.label}[/bold]")
    table = controller.run_scenario(params, scenario_index=index)
    df = table.to_dataframe()

    for reason, n in table.status_counts().items():
        console.print(f"  {reason}: {n}")

    successes = df["specificity"].dropna()
    if len(successes):
        console.print(f"\nSpecificity: {successes.mean():.3f} ({len(successes)} successful)")
        console.print(f"Median p-value: {df['p_value'].median():.4f}")


@app.command()
def sweep(
    replications: Optional[int] = typer.Option(None, min=1, help="Replications per scenario"),
    seed: Optional[int] = typer.Option(None, help="Master seed (default: settings)"),
    jobs: Optional[int] = typer.Option(None, help="Parallel workers (default: settings)"),
    output: Optional[Path] = typer.Option(None, help="Output directory"),
    design_path: Optional[Path] = typer.Option(None, "--design", help="Sweep design YAML"),
):
    """Run the full scenario sweep and save the results tables."""
    from panelsim.config.settings import get_settings
    from panelsim.engine.aggregator import failure_rates, infeasible_to_dataframe
    from panelsim.engine.sweep import SweepController

    settings = get_settings()
    setup_logging(settings.log_level)
    design = _load_design(design_path)

    try:
        controller = SweepController(
            design=design,
            n_replications=settings.n_replications if replications is None else replications,
            master_seed=settings.master_seed if seed is None else seed,
            significance_level=settings.significance_level,
            n_jobs=settings.n_jobs if jobs is None else jobs,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[bold]Running sweep: {design.n_combinations} combinations × "
        f"{controller.n_replications} replications[/bold]"
    )
    result = controller.run()
    console.print(result.summary())

    output_dir = output or settings.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    df = result.results.to_dataframe()
    results_path = output_dir / "results.csv"
    excluded_path = output_dir / "excluded_scenarios.csv"
    df.to_csv(results_path, index=False)
    infeasible_to_dataframe(result.infeasible).to_csv(excluded_path, index=False)
    console.print(f"\nResults saved to {results_path}")
    console.print(f"Excluded scenarios saved to {excluded_path}")

    rates = failure_rates(df, by="mechanism")
    table = Table(title="Failure Rates by Mechanism")
    table.add_column("Mechanism", style="cyan")
    table.add_column("Runs", style="white")
    table.add_column("Successful", style="white")
    table.add_column("Failure Rate", style="yellow")
    for row in rates.itertuples(index=False):
        table.add_row(
            row.mechanism,
            str(row.total_runs),
            str(row.successful_runs),
            f"{row.failure_rate:.3f}",
        )
    console.print(table)


@app.command()
def config():
    """Show current settings."""
    from panelsim.config.settings import get_settings

    settings = get_settings()
    table = Table(title="panelsim Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("master_seed", str(settings.master_seed))
    table.add_row("n_replications", str(settings.n_replications))
    table.add_row("significance_level", str(settings.significance_level))
    table.add_row("n_jobs", str(settings.n_jobs))
    table.add_row("sweep_config", str(settings.sweep_config or "[dim]<reference>[/dim]"))
    table.add_row("output_dir", str(settings.output_dir))
    table.add_row("log_level", settings.log_level)
    console.print(table)


if __name__ == "__main__":
    app()
