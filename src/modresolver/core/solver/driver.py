"""Resolution driver: from candidate pools to a selected mod set.

The driver translates candidates into options and rules, runs the engine
and maps the optimised assignment back to mod candidates:

1. Candidates are grouped into one pool per mod id and sorted newest first.
   Two mandatory candidates for one id are a definition error.
2. Every candidate becomes a ``MainModLoadOption``. A mandatory candidate
   gets a ``MandatoryModIdDefinition`` and pushes every other claimant of
   its id under an ``OverriddenModIdDefinition``; any other id gets a single
   ``OptionalModIdDefinition``.
3. Every ``provides`` entry becomes a ``ProvidedModOption`` aliasing its
   provider, so dependencies on the provided id see it transparently.
4. Every dependency and breakage becomes a Depends/Breaks rule.
5. The engine is solved. On success the true options are partitioned into
   selected, provided and rejected candidates; on failure error
   decomposition collects every independent error.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from modresolver.config import SolverConfig
from modresolver.core.engine import RuleContext
from modresolver.core.metadata import LoadType, ModCandidate
from modresolver.core.options import LoadOption, MainModLoadOption, ProvidedModOption
from modresolver.core.rules import (
    MandatoryModIdDefinition,
    OptionalModIdDefinition,
    OverriddenModIdDefinition,
    create_breakage_rule,
    create_dependency_rule,
)
from modresolver.core.solver.errors import decompose_errors
from modresolver.core.solver.models import (
    DefinitionFailure,
    Infeasible,
    ModSolveResult,
    Solved,
    SolveOutcome,
    TimedOut,
)
from modresolver.exceptions import (
    DefinitionError,
    DuplicateMandatoryError,
    ModSolvingError,
    ModSolvingException,
    SolverTimeoutError,
)

logger = logging.getLogger(__name__)

# IF_REQUIRED mods are discouraged, IF_POSSIBLE (and ALWAYS) mods encouraged.
WEIGHT_IF_REQUIRED = 1000
WEIGHT_IF_POSSIBLE = -1000


def group_candidates(candidates: Iterable[ModCandidate]) -> dict[str, list[ModCandidate]]:
    """Group *candidates* by mod id, each pool sorted newest version first.

    Equal versions are ordered by candidate key, so the result is the same
    for every input order.
    """
    pools: dict[str, list[ModCandidate]] = defaultdict(list)
    for candidate in candidates:
        pools[candidate.mod_id].append(candidate)

    for pool in pools.values():
        pool.sort(key=lambda c: c.key)
        pool.sort(key=lambda c: c.version, reverse=True)
    return dict(sorted(pools.items()))


def find_mandatory(pools: dict[str, list[ModCandidate]]) -> dict[str, ModCandidate]:
    """Return the single mandatory candidate of every pool that has one.

    Raises:
        DuplicateMandatoryError: If any pool holds more than one mandatory
            candidate. Every such pool is reported at once.
    """
    mandatory: dict[str, ModCandidate] = {}
    duplicates: dict[str, list[str]] = {}
    for mod_id, pool in pools.items():
        mandated = [candidate for candidate in pool if candidate.mandatory]
        if len(mandated) > 1:
            duplicates[mod_id] = [candidate.key for candidate in mandated]
        elif mandated:
            mandatory[mod_id] = mandated[0]
    if duplicates:
        raise DuplicateMandatoryError(duplicates)
    return mandatory


def candidate_weight(candidate: ModCandidate, index: int) -> int:
    """Optimisation weight of a non-mandatory candidate at pool position *index*.

    The base comes from ``load_type`` plus the pool index, so newer versions
    are cheaper. An explicit ``weight`` is added on top of that base, which
    keeps every candidate of a pool on one scale.
    """
    if candidate.load_type is LoadType.IF_REQUIRED:
        weight = WEIGHT_IF_REQUIRED
    else:
        weight = WEIGHT_IF_POSSIBLE
    # Always prefer newer versions
    weight += index
    if candidate.weight is not None:
        weight += candidate.weight
    return weight


class ModSolver:
    """Finds the best valid set of mods among a list of candidates.

    Each call builds a fresh ``RuleContext``; the solver itself keeps no
    state between calls apart from the context of the running call, which
    ``cancel`` uses.

    Args:
        config: Solver settings. Defaults to ``SolverConfig()``.
    """

    def __init__(self, config: SolverConfig | None = None) -> None:
        self.config = config if config is not None else SolverConfig()
        self._context: RuleContext | None = None
        self._cancelled = False

    @property
    def context(self) -> RuleContext | None:
        """The context of the current (or last) call."""
        return self._context

    def cancel(self) -> None:
        """Abort the running call; it raises ``SolverTimeoutError``.

        Safe to call from any thread, even before the call has built its
        context. A cancelled solver stays cancelled.
        """
        self._cancelled = True
        ctx = self._context
        if ctx is not None:
            ctx.hard_cancel()

    def solve(self, candidates: Iterable[ModCandidate]) -> SolveOutcome:
        """Like ``find_compatible_set``, but returns an explicit outcome.

        Internal invariant violations (``ModSolvingError``) still raise.
        """
        try:
            return Solved(self.find_compatible_set(candidates))
        except ModSolvingException as exc:
            return Infeasible(exc.errors)
        except DefinitionError as exc:
            return DefinitionFailure(exc)
        except SolverTimeoutError as exc:
            return TimedOut(exc)

    def find_compatible_set(self, candidates: Iterable[ModCandidate]) -> ModSolveResult:
        """Select the best valid set of mods.

        Args:
            candidates: Every candidate found by discovery.

        Returns:
            The selected, provided and rejected candidates.

        Raises:
            ModSolvingException: If no valid set exists. Carries every
                independent error.
            DefinitionError: If the candidates are malformed (e.g. two
                mandatory candidates for one id).
            SolverTimeoutError: If the call was cancelled.
            ModSolvingError: If an internal invariant is violated.
        """
        pools = group_candidates(candidates)
        mandatory = find_mandatory(pools)

        ctx = RuleContext(self.config)
        self._context = ctx
        if self._cancelled:
            ctx.hard_cancel()
        self._define(ctx, pools, mandatory)

        errors = decompose_errors(ctx, self.config.max_errors)
        if errors:
            raise ModSolvingException(errors)

        result = partition_solution(ctx.get_solution(), pools)
        logger.debug(
            "Selected %d mods (%d provided)", len(result.selected), len(result.provided)
        )
        return result

    def _define(
        self,
        ctx: RuleContext,
        pools: dict[str, list[ModCandidate]],
        mandatory: dict[str, ModCandidate],
    ) -> None:
        defined: set[str] = set()
        provided_ids: set[str] = set()

        for mod_id, pool in pools.items():
            mandated = mandatory.get(mod_id)
            index = 0

            for candidate in pool:
                if candidate is mandated:
                    option = MainModLoadOption(candidate, -1)
                    ctx.add_option(option)
                    ctx.add_rule(MandatoryModIdDefinition(option))
                    ctx.add_rule(OverriddenModIdDefinition(option))
                    defined.add(mod_id)
                else:
                    option = MainModLoadOption(candidate, -1 if len(pool) == 1 else index)
                    ctx.add_option(option, candidate_weight(candidate, index))
                    index += 1
                    if mandated is None and mod_id not in defined:
                        ctx.add_rule(OptionalModIdDefinition(mod_id))
                        defined.add(mod_id)

                for provided in candidate.provides:
                    ctx.add_option(ProvidedModOption(option, provided))
                    provided_ids.add(provided.mod_id)

                self._define_links(ctx, option, candidate)

        # Ids that only exist as provided aliases still load at most once.
        for mod_id in sorted(provided_ids - defined):
            ctx.add_rule(OptionalModIdDefinition(mod_id))

    def _define_links(
        self, ctx: RuleContext, option: LoadOption, candidate: ModCandidate
    ) -> None:
        for dependency in candidate.depends:
            ctx.add_rule(create_dependency_rule(ctx, option, dependency))
        for breakage in candidate.breaks:
            ctx.add_rule(create_breakage_rule(ctx, option, breakage))


def partition_solution(
    solution: list[LoadOption], pools: dict[str, list[ModCandidate]]
) -> ModSolveResult:
    """Split the true options of a solution into selected and provided mods.

    Raises:
        ModSolvingError: If one mod id is claimed twice.
    """
    result = ModSolveResult()

    for option in solution:
        if isinstance(option, ProvidedModOption):
            mod_id = option.mod_id
            if mod_id in result.provided:
                raise ModSolvingError(
                    f"Duplicate provided ModCandidate for {mod_id}"
                    " - something has gone wrong internally!"
                )
            if mod_id in result.selected:
                raise ModSolvingError(
                    f"{mod_id} is already provided by {result.selected[mod_id]!r}"
                    " - something has gone wrong internally!"
                )
            result.provided[mod_id] = option.provider.candidate
        elif isinstance(option, MainModLoadOption):
            mod_id = option.mod_id
            if mod_id in result.selected:
                raise ModSolvingError(
                    f"Duplicate result ModCandidate for {mod_id}"
                    " - something has gone wrong internally!"
                )
            if mod_id in result.provided:
                raise ModSolvingError(
                    f"{mod_id} is already provided by {result.provided[mod_id]!r}"
                    " - something has gone wrong internally!"
                )
            result.selected[mod_id] = option.candidate

    for mod_id, pool in pools.items():
        chosen = result.selected.get(mod_id)
        rejected = [candidate for candidate in pool if candidate is not chosen]
        if rejected:
            result.rejected[mod_id] = rejected

    return result
