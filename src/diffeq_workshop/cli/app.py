"""Typer CLI application for diffeq-workshop."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from typer import Argument, Exit, Option, Typer

import diffeq_workshop
from diffeq_workshop.catalog import EXERCISES, ExerciseSpec
from diffeq_workshop.cli._types import Exercise
from diffeq_workshop.core import EnsembleSolution, ODESolution
from diffeq_workshop.plotting import plot_result, save_csv, save_figure
from diffeq_workshop.solvers import AlgebraicSolveError

app = Typer(add_completion=False, context_settings={"help_option_names": ["-h", "--help"]})
_console = Console()

# final-state components shown in the summary table
_MAX_SHOWN = 6


@app.callback()
def main() -> None:
    """diffeq-workshop: run the differential equations workshop exercises."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_console, show_path=verbose)],
        force=True,
    )


def _print_exercises() -> None:
    _console.print()
    _console.print("[bold cyan]◆[/]  Available exercises")
    _console.print("[dim]│[/]")
    for ex in Exercise:
        _console.print(f"[dim]│[/]  [bold cyan]{ex.value:<26}[/] [bold]{ex.label}[/]")
        _console.print(f"[dim]│[/]  {' ' * 26} [dim]{ex.description}[/]")
        _console.print("[dim]│[/]")
    _console.print()


def _format_state(u: Any) -> str:
    shown = ", ".join(f"{x:.6g}" for x in u[:_MAX_SHOWN])
    return f"[{shown}{', …' if len(u) > _MAX_SHOWN else ''}]"


def _summary_table(spec: ExerciseSpec, result: ODESolution | EnsembleSolution) -> Table:
    table = Table(title=spec.title, show_header=False, title_justify="left")
    table.add_column("key", style="dim")
    table.add_column("value")
    if isinstance(result, EnsembleSolution):
        ok = sum(sol.successful for sol in result)
        table.add_row("Trajectories", str(len(result)))
        table.add_row("Successful", f"{ok}/{len(result)}")
        table.add_row("Method", result[0].method)
        table.add_row("Elapsed", f"{result.elapsed:.2f} s")
        return table
    style = "green" if result.successful else "red"
    table.add_row("Return code", f"[{style}]{result.retcode.value}[/]")
    table.add_row("Method", result.method)
    table.add_row("Saved points", str(len(result)))
    table.add_row("Steps", str(result.stats.nsteps))
    table.add_row("RHS evaluations", str(result.stats.nfev))
    table.add_row("Final time", f"{result.t[-1]:g}")
    table.add_row("Final state", _format_state(result.final))
    if result.message and not result.successful:
        table.add_row("Message", result.message)
    return table


@app.command("list")
def list_exercises() -> None:
    """List the available exercises."""
    _print_exercises()


@app.command()
def run(
    exercise_str: Annotated[str, Argument(metavar="EXERCISE", help="Exercise to run")],
    method: Annotated[
        str | None,
        Option("--method", "-m", help="Override the exercise's method.", show_default=False),
    ] = None,
    abstol: Annotated[
        float | None, Option("--abstol", help="Absolute tolerance.", show_default=False)
    ] = None,
    reltol: Annotated[
        float | None, Option("--reltol", help="Relative tolerance.", show_default=False)
    ] = None,
    output: Annotated[
        Path, Option("--output", "-o", help="Directory for the CSV and figure.")
    ] = Path("results"),
    plot: Annotated[bool, Option("--plot/--no-plot", help="Save a figure.")] = True,
    verbose: Annotated[bool, Option("--verbose", "-v", help="Debug logging.")] = False,
) -> None:
    """Solve an exercise and export its solution."""
    _configure_logging(verbose)

    try:
        exercise = Exercise(exercise_str)
    except ValueError:
        valid = ", ".join(f"'{ex.value}'" for ex in Exercise)
        _console.print()
        _console.print(f"[bold red]Error:[/] [bold]{exercise_str!r}[/] is not a valid exercise.")
        _console.print(f"[dim]Valid values:[/] {valid}")
        raise Exit(code=2) from None

    spec = EXERCISES[exercise.value]
    overrides: dict[str, float] = {}
    if abstol is not None:
        overrides["abstol"] = abstol
    if reltol is not None:
        overrides["reltol"] = reltol

    _console.print()
    _console.print(f"[bold cyan]●[/]  diffeq-workshop v{diffeq_workshop.__version__}")
    _console.print("[dim]│[/]")
    _console.print(f"[bold green]◇[/]  Solving {exercise.label}")

    try:
        result = spec.run(method, **overrides)
    except ValueError as exc:
        _console.print(f"[bold red]Error:[/] {exc}")
        raise Exit(code=2) from None
    except AlgebraicSolveError as exc:
        _console.print(f"[bold red]Error:[/] {exc}")
        raise Exit(code=1) from None

    _console.print(_summary_table(spec, result))

    output.mkdir(parents=True, exist_ok=True)
    created = [save_csv(result, output / f"{exercise.value}.csv", spec.names)]
    if plot:
        fig = plot_result(result, names=spec.names, title=spec.title)
        created.append(save_figure(fig, output / f"{exercise.value}.png"))

    _console.print("[dim]│[/]")
    for path in created:
        _console.print(f"[dim]│[/]  {path}")
    _console.print("[dim]│[/]")

    if not result.successful:
        _console.print("[bold red]●[/]  Solve failed.")
        raise Exit(code=1)
    _console.print("[bold cyan]●[/]  Done!")
    _console.print()
