"""modresolver exception hierarchy.

All public exceptions inherit from ModResolverError, giving callers a single
base class to catch when they want to handle any resolver-specific failure
without swallowing unrelated errors.

Infeasibility is *not* an error of the engine itself: ``RuleContext.has_solution``
simply returns False. Only the resolution driver turns an infeasible problem
into a ``ModSolvingException`` once every independent cause has been collected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from modresolver.core.solver.models import SolverErrorReport


class ModResolverError(Exception):
    """Base exception for all modresolver errors."""


class DefinitionError(ModResolverError, ValueError):
    """Raised when a rule, option or candidate pool is malformed.

    Covers empty clauses, impossible cardinalities, unregistered options and
    duplicated mandatory candidates. These are caller bugs: they are thrown
    immediately and never recovered from.
    """


class DuplicateMandatoryError(DefinitionError):
    """Raised when more than one mandatory candidate claims the same mod id.

    Attributes:
        duplicates: Mapping of mod id to the keys of every mandatory
            candidate found for it.
    """

    def __init__(self, duplicates: dict[str, list[str]]) -> None:
        self.duplicates = duplicates
        if len(duplicates) == 1:
            mod_id, keys = next(iter(duplicates.items()))
            message = f"Duplicate mandatory mod {mod_id!r}: {', '.join(keys)}"
        else:
            lines = [
                f"  - {mod_id}: {', '.join(keys)}"
                for mod_id, keys in sorted(duplicates.items())
            ]
            message = (
                f"Found {len(duplicates)} duplicated mandatory mods!\n"
                + "\n".join(lines)
            )
        super().__init__(message)


class SolverStateError(ModResolverError, RuntimeError):
    """Raised when the constraint engine is used out of order.

    For example adding a rule after ``has_solution()`` succeeded, or asking
    for an error explanation when the last solve was satisfiable.
    """


class SolverTimeoutError(ModResolverError):
    """Raised when a solve was cancelled or ran out of time.

    Kept distinct from infeasibility so callers can tell "no valid
    configuration" apart from "gave up".
    """


class ModSolvingError(ModResolverError):
    """Raised when an internal invariant of the resolver is violated.

    Signals a bug in rule construction rather than bad user data, e.g. the
    optimiser failing after feasibility was proven, or two candidates
    claiming one mod id in a returned solution.
    """


class ModSolvingException(ModResolverError):
    """Raised when no valid selection of mods exists.

    Carries every independent error found by error decomposition, in the
    order they were discovered.

    Attributes:
        errors: The ``SolverErrorReport`` list describing each cause.
    """

    def __init__(self, errors: Sequence[SolverErrorReport]) -> None:
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = self.errors[0].message
        else:
            message = f"Found {len(self.errors)} errors while resolving mods!"
            for number, error in enumerate(self.errors, start=1):
                message += f"\n\nError {number}:\n{error.message}"
        super().__init__(message)


class ManifestError(ModResolverError):
    """Raised when a candidate manifest file cannot be loaded.

    Covers unreadable files, malformed YAML and missing required fields.
    """


class ConfigError(ModResolverError, ValueError):
    """Raised when a ``MODRESOLVER_*`` environment variable is malformed."""
