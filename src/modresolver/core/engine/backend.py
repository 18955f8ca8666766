"""python-sat backends for the two solving phases.

``ExplainingBackend`` answers "is there any valid selection?" with a CDCL
solver. Every rule's clauses are guarded by a selector literal that is
assumed true, so an unsatisfiable answer comes with an assumption core that
names the responsible rules. The core is then shrunk by deletion until no
single rule can be dropped from it.

``OptimisingBackend`` answers "which valid selection is cheapest?" with the
RC2 MaxSAT algorithm over the same hard clauses plus one soft unit clause per
weighted option.

Both backends run their oracle through ``solve_limited`` with interrupts
enabled, so ``interrupt()`` may be called from another thread to abort the
current call. An aborted call raises ``SolverTimeoutError``.

References
----------
.. [RC2] Ignatiev, A., Morgado, A., Marques-Silva, J. (2019). "RC2: an
   Efficient MaxSAT Solver." JSAT 11.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pysat.examples.rc2 import RC2
from pysat.formula import WCNF, IDPool
from pysat.solvers import Solver

from modresolver.core.engine.definitions import LiteralOf, RuleDefinition
from modresolver.exceptions import ModSolvingError, SolverTimeoutError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Feasibility with explanations
# ---------------------------------------------------------------------------


class ExplainingBackend:
    """Feasibility solver that can explain an unsatisfiable answer.

    Args:
        solver_name: python-sat solver name (e.g. "g3").
        top: Highest variable id used by options.
        definitions: ``(rule_index, definitions)`` pairs for every live rule.
        literal_of: Maps an option literal to its SAT literal.
    """

    def __init__(
        self,
        solver_name: str,
        top: int,
        definitions: Sequence[tuple[int, Sequence[RuleDefinition]]],
        literal_of: LiteralOf,
    ) -> None:
        self._solver = Solver(name=solver_name)
        self._pool = IDPool(start_from=top + 1)
        self._selectors: list[int] = []
        self._rule_of: dict[int, int] = {}

        for rule_index, rule_definitions in definitions:
            if not rule_definitions:
                continue
            selector = self._pool.id(("rule", rule_index))
            self._selectors.append(selector)
            self._rule_of[selector] = rule_index
            for definition in rule_definitions:
                for clause in definition.encode(literal_of, self._pool):
                    self._solver.add_clause(clause + [-selector])

    def solve(self) -> bool:
        """Check whether every rule can hold at once."""
        return self._solve(self._selectors)

    def model(self) -> list[int]:
        return list(self._solver.get_model() or [])

    def minimal_core(self) -> list[int]:
        """Return the rule indices of a minimal unsatisfiable core.

        Must only be called right after ``solve()`` returned False.
        """
        reported = set(self._solver.get_core() or [])
        core = [lit for lit in self._selectors if lit in reported]
        i = 0
        while i < len(core):
            trial = core[:i] + core[i + 1 :]
            if self._solve(trial):
                # core[i] is needed.
                i += 1
            else:
                smaller = set(self._solver.get_core() or [])
                core = [lit for lit in trial if lit in smaller]
        return [self._rule_of[lit] for lit in core]

    def interrupt(self) -> None:
        self._solver.interrupt()

    def delete(self) -> None:
        self._solver.delete()

    def _solve(self, assumptions: list[int]) -> bool:
        result = self._solver.solve_limited(
            assumptions=assumptions, expect_interrupt=True
        )
        if result is None:
            self._solver.clear_interrupt()
            raise SolverTimeoutError("Mod collection took too long to be resolved")
        return result


# ---------------------------------------------------------------------------
# Weighted optimisation
# ---------------------------------------------------------------------------


class CancellableRC2(RC2):
    """RC2 whose oracle calls can be interrupted from another thread."""

    def compute_(self):
        if self.adapt:
            self.adapt_am1()

        while True:
            result = self.oracle.solve_limited(
                assumptions=self.sels + self.sums, expect_interrupt=True
            )
            if result is None:
                self.oracle.clear_interrupt()
                raise SolverTimeoutError("Mod collection took too long to be optimised")
            if result:
                return True

            self.get_core()
            if not self.core:
                # The hard part alone is unsatisfiable.
                return False
            self.process_core()


class OptimisingBackend:
    """Weighted MaxSAT solver minimising the total weight of true options.

    A positive weight ``w`` on variable ``v`` becomes the soft clause
    ``[-v]`` with weight ``w``; a negative one becomes ``[v]`` with weight
    ``-w``. Both cost exactly ``|w|`` more than the preferred value, so the
    optimum of the soft clauses is the optimum of the linear objective.

    Args:
        solver_name: python-sat solver name used as RC2's oracle.
        top: Highest variable id used by options.
        definitions: Definitions of every live rule.
        literal_of: Maps an option literal to its SAT literal.
        weights: ``(variable, weight)`` pairs for every registered option.
    """

    def __init__(
        self,
        solver_name: str,
        top: int,
        definitions: Sequence[RuleDefinition],
        literal_of: LiteralOf,
        weights: Sequence[tuple[int, int]],
    ) -> None:
        pool = IDPool(start_from=top + 1)
        formula = WCNF()
        for definition in definitions:
            for clause in definition.encode(literal_of, pool):
                formula.append(clause)

        for var, weight in weights:
            if weight > 0:
                formula.append([-var], weight=weight)
            elif weight < 0:
                formula.append([var], weight=-weight)

        logger.debug(
            "Optimising %d hard and %d soft clauses",
            len(formula.hard),
            len(formula.soft),
        )
        self._rc2 = CancellableRC2(formula, solver=solver_name)

    def compute(self) -> list[int]:
        """Run the optimisation to completion and return the model.

        Raises:
            SolverTimeoutError: If the run was interrupted.
            ModSolvingError: If the hard clauses turn out unsatisfiable.
        """
        model = self._rc2.compute()
        if model is None:
            raise ModSolvingError(
                "We just solved this! Something must have gone wrong internally..."
            )
        return list(model)

    @property
    def cost(self) -> int:
        return self._rc2.cost

    def interrupt(self) -> None:
        self._rc2.oracle.interrupt()

    def delete(self) -> None:
        self._rc2.delete()
