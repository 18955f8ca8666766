"""Resolution Driver and Error Decomposition.

All public names are re-exported here so callers can write
``from modresolver.core.solver import ModSolver``.
"""

from modresolver.core.solver.driver import (
    ModSolver,
    candidate_weight,
    find_mandatory,
    group_candidates,
    partition_solution,
)
from modresolver.core.solver.errors import (
    blame_single_rule,
    decompose_errors,
    describe_error,
    fallback_error_description,
)
from modresolver.core.solver.models import (
    DefinitionFailure,
    Infeasible,
    ModSolveResult,
    Solved,
    SolveOutcome,
    SolverErrorReport,
    TimedOut,
)

__all__ = [
    "DefinitionFailure",
    "Infeasible",
    "ModSolveResult",
    "ModSolver",
    "SolveOutcome",
    "Solved",
    "SolverErrorReport",
    "TimedOut",
    "blame_single_rule",
    "candidate_weight",
    "decompose_errors",
    "describe_error",
    "fallback_error_description",
    "find_mandatory",
    "group_candidates",
    "partition_solution",
]
