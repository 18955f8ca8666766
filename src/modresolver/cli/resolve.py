"""``modresolver resolve <manifest>`` — Pick the best valid set of mods.

Loads a YAML candidate manifest, runs the resolver and prints either the
selected mods or every independent error that prevents a valid selection.

Exit Codes:
    0 — A valid selection was found.
    1 — No valid selection exists (errors are printed).
    2 — The manifest or the candidates it describes are malformed.
    3 — Resolution was cancelled by ``--timeout``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
import threading
from pathlib import Path

import click

from modresolver.cli.manifest import load_manifest
from modresolver.config import SolverConfig
from modresolver.core.solver import (
    DefinitionFailure,
    Infeasible,
    ModSolver,
    Solved,
    SolveOutcome,
)
from modresolver.exceptions import ConfigError, ManifestError

logger = logging.getLogger(__name__)


def _outcome_to_json(outcome: SolveOutcome) -> dict:
    """Convert a solve outcome to a JSON-serializable dict."""
    if isinstance(outcome, Solved):
        return {"status": "solved", **outcome.result.to_dict()}
    if isinstance(outcome, Infeasible):
        return {
            "status": "infeasible",
            "errors": [error.to_dict() for error in outcome.errors],
        }
    if isinstance(outcome, DefinitionFailure):
        return {"status": "invalid", "message": str(outcome.error)}
    return {"status": "timeout", "message": str(outcome.error)}


def _run(solver: ModSolver, candidates: list, timeout: float | None) -> SolveOutcome:
    """Solve, cancelling the solver from a timer thread after *timeout* seconds."""
    if timeout is None:
        return solver.solve(candidates)
    timer = threading.Timer(timeout, solver.cancel)
    timer.daemon = True
    timer.start()
    try:
        return solver.solve(candidates)
    finally:
        timer.cancel()


@click.command("resolve")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Give up after this many seconds (exit code 3).",
)
@click.option(
    "--optimise-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop optimising after this many seconds and keep the best valid set found.",
)
@click.option(
    "--max-errors",
    type=click.IntRange(min=1),
    default=None,
    help="Report at most this many independent errors.",
)
@click.option("--debug", is_flag=True, help="Log every solver step to stderr.")
def resolve_command(
    manifest: str,
    output_format: str,
    timeout: float | None,
    optimise_timeout: float | None,
    max_errors: int | None,
    debug: bool,
) -> None:
    """Resolve the mod candidates listed in MANIFEST.

    Every mandatory candidate is loaded; among the others the resolver
    prefers newer versions and skips IF_REQUIRED mods nobody needs.

    Exit code 0 on success, 1 if no valid set exists, 2 on a malformed
    manifest, 3 on timeout.
    """
    as_json = output_format.lower() == "json"
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        config = SolverConfig.from_env()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    overrides: dict = {}
    if optimise_timeout is not None:
        overrides["optimise_timeout"] = optimise_timeout
    if max_errors is not None:
        overrides["max_errors"] = max_errors
    if debug:
        overrides["debug_solving"] = True
    config = dataclasses.replace(config, **overrides)

    try:
        candidates = load_manifest(Path(manifest))
    except ManifestError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    logger.debug("Loaded %d candidates from %s", len(candidates), manifest)
    outcome = _run(ModSolver(config), candidates, timeout)

    from modresolver.cli.output import (
        print_errors,
        print_failure,
        print_resolution_summary,
    )

    if as_json:
        click.echo(json.dumps(_outcome_to_json(outcome), indent=2))
    elif isinstance(outcome, Solved):
        print_resolution_summary(outcome.result)
    elif isinstance(outcome, Infeasible):
        print_errors(outcome.errors)
    else:
        print_failure(f"Error: {outcome.error}")

    if isinstance(outcome, Solved):
        sys.exit(0)
    if isinstance(outcome, Infeasible):
        sys.exit(1)
    if isinstance(outcome, DefinitionFailure):
        sys.exit(2)
    sys.exit(3)
