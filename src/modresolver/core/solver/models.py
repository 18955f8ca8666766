"""Result types of the resolution driver.

``ModSolveResult`` is the success contract handed to materialisation,
``SolverErrorReport`` describes one independent reason why no selection
exists. ``SolveOutcome`` wraps either of them (or a definition / timeout
failure) for callers that prefer an explicit result over exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from modresolver.core.metadata import ModCandidate
from modresolver.exceptions import DefinitionError, SolverTimeoutError

if TYPE_CHECKING:
    from modresolver.core.rules import Rule


@dataclass
class ModSolveResult:
    """The optimised, valid selection of mods.

    Attributes:
        selected: Mod id to the candidate loaded under that id.
        provided: Provided mod id to the candidate that provides it.
        rejected: Mod id to every candidate of that id that was not loaded.
    """

    selected: dict[str, ModCandidate] = field(default_factory=dict)
    provided: dict[str, ModCandidate] = field(default_factory=dict)
    rejected: dict[str, list[ModCandidate]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Serialize to the ``{selected: {id: key}, provided: {id: key}}`` contract."""
        return {
            "selected": {
                mod_id: candidate.key for mod_id, candidate in sorted(self.selected.items())
            },
            "provided": {
                mod_id: candidate.key for mod_id, candidate in sorted(self.provided.items())
            },
        }


@dataclass
class SolverErrorReport:
    """One independent error found while decomposing an infeasible problem.

    Attributes:
        root_ids: Mod ids of the mandatory mods at the root of the error.
        message: Human readable explanation.
        cause: The rule that was blamed (and removed) for this error, or
            None when decomposition could not remove anything.
        involved: Every rule of the minimal unsatisfiable core.
    """

    root_ids: list[str]
    message: str
    cause: Rule | None = None
    involved: list[Rule] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"root_ids": list(self.root_ids), "message": self.message}


# ---------------------------------------------------------------------------
# SolveOutcome: explicit result of ModSolver.solve
# ---------------------------------------------------------------------------


@dataclass
class Solved:
    result: ModSolveResult


@dataclass
class Infeasible:
    errors: list[SolverErrorReport]


@dataclass
class DefinitionFailure:
    error: DefinitionError


@dataclass
class TimedOut:
    error: SolverTimeoutError


SolveOutcome = Union[Solved, Infeasible, DefinitionFailure, TimedOut]
