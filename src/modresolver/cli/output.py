"""Rich output formatting helpers for the modresolver CLI.

Renders a successful resolution as tables of selected and provided mods,
and an infeasible one as one panel per independent error.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from modresolver.core.solver import ModSolveResult, SolverErrorReport

console = Console()


def print_resolution_summary(result: ModSolveResult) -> None:
    """Print the selected and provided mods of a successful resolution.

    Args:
        result: The driver's result.
    """
    console.print(
        Panel("[bold green]Resolution successful[/bold green]",
              title="Mod Resolution")
    )
    if not result.selected:
        console.print("[dim]No mods selected.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Mod", style="bold")
    table.add_column("Version")
    table.add_column("Key", style="dim")
    table.add_column("Source", style="dim")
    for mod_id in sorted(result.selected):
        candidate = result.selected[mod_id]
        label = Text(mod_id)
        if candidate.mandatory:
            label.append(" *", style="bold cyan")
        table.add_row(label, candidate.version.friendly(), candidate.key, candidate.source or "-")
    console.print(table)

    if result.provided:
        provided = Table(title="Provided Mods", show_header=True, header_style="bold")
        provided.add_column("Mod", style="bold")
        provided.add_column("Provided By")
        for mod_id in sorted(result.provided):
            provided.add_row(mod_id, result.provided[mod_id].mod_id)
        console.print(provided)

    rejected = sum(len(pool) for pool in result.rejected.values())
    if rejected:
        console.print(f"[dim]{rejected} candidate(s) not loaded.[/dim]")


def print_errors(errors: list[SolverErrorReport]) -> None:
    """Print every independent error of an infeasible resolution.

    Args:
        errors: Reports in discovery order.
    """
    console.print(
        Panel(f"[bold red]Resolution failed[/bold red] ({len(errors)} error(s))",
              title="Mod Resolution")
    )
    for number, error in enumerate(errors, start=1):
        # Messages contain version ranges such as "[1.0,2.0)"; never parse markup.
        console.print(
            Panel(Text(error.message), title=f"Error {number}", border_style="red")
        )


def print_failure(message: str) -> None:
    """Print a single non-resolution failure (bad manifest, timeout)."""
    console.print(Text(message, style="bold red"))

