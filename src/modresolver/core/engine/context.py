"""Constraint engine: owns options, rules and the two-phase solve.

Solving happens in stages:

1. ``DEFINE`` -- options and rules are registered. Every option and rule
   receives a dense arena index; all per-option and per-rule state (weights,
   emitted definitions) lives in index-addressed lists.
2. ``SOLVE`` -- ``has_solution()`` submits every rule's clauses to the
   explaining backend. While it keeps answering "no", rules may still be
   removed or redefined and ``has_solution()`` called again.
3. ``RE_SOLVING`` -- a solution exists and the optimising backend has been
   built with the same clauses plus the option weights.
4. ``OPTIMISE`` -- ``get_solution()`` is running the optimiser.
5. ``DONE`` -- the optimised solution has been returned.

Only ``DEFINE`` and ``SOLVE`` accept mutations.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Sequence

from modresolver.config import SolverConfig
from modresolver.core.engine.backend import ExplainingBackend, OptimisingBackend
from modresolver.core.engine.definitions import (
    AtLeast,
    AtLeastOneOf,
    AtMost,
    Between,
    Exactly,
    RuleDefinition,
)
from modresolver.core.options import LoadOption, is_negated, negate, resolve_alias
from modresolver.core.rules import Rule, RuleDefiner, define_rule
from modresolver.exceptions import (
    DefinitionError,
    ModSolvingError,
    SolverStateError,
    SolverTimeoutError,
)

logger = logging.getLogger(__name__)


class SolveStep(Enum):
    """Lifecycle stage of a ``RuleContext``."""

    DEFINE = ("define", True)
    SOLVE = ("solve", True)
    RE_SOLVING = ("re_solving", False)
    OPTIMISE = ("optimise", False)
    DONE = ("done", False)

    def __init__(self, label: str, can_add: bool) -> None:
        self.label = label
        self.can_add = can_add


class RuleContext:
    """Incrementally built constraint problem over load options.

    The context is explicitly owned by one resolution driver and must not
    be used from two threads at once. The only exception is cancellation:
    ``cancel``, ``cancel_if`` and ``hard_cancel`` may be called from any
    thread while a solve is running.

    Args:
        config: Solver settings. Defaults to ``SolverConfig()``.
    """

    def __init__(self, config: SolverConfig | None = None) -> None:
        self.config = config if config is not None else SolverConfig()
        self._step = SolveStep.DEFINE

        self._options: list[LoadOption | None] = []
        self._weights: list[int] = []
        self._rules: list[Rule | None] = []
        self._definitions: list[list[RuleDefinition]] = []

        self._rules_changed = False
        self._last_result: bool | None = None
        self._error: list[Rule] | None = None

        self._explainer: ExplainingBackend | None = None
        self._optimiser: OptimisingBackend | None = None
        self._feasible_model: list[int] = []

        # Backend currently inside a solver call, for cross-thread cancel.
        self._active: ExplainingBackend | OptimisingBackend | None = None
        self._cancelled = False

    @property
    def step(self) -> SolveStep:
        return self._step

    def options(self) -> list[LoadOption]:
        """Return every registered option, in registration order."""
        return [option for option in self._options if option is not None]

    def rules(self) -> list[Rule]:
        """Return every registered rule, in registration order."""
        return [rule for rule in self._rules if rule is not None]

    def weight_of(self, option: LoadOption) -> int:
        return self._weights[self._option_index(option)]

    def definitions_of(self, rule: Rule) -> list[RuleDefinition]:
        """Return the clause shapes *rule* currently contributes."""
        return list(self._definitions[self._rule_index(rule)])

    # -----------------------------------------------------------------------
    # Defining
    # -----------------------------------------------------------------------

    def add_option(self, option: LoadOption, weight: int = 0) -> None:
        """Register *option* with the given weight.

        Every registered rule is notified, and the rules that report
        themselves stale are redefined.

        Raises:
            SolverStateError: Outside ``DEFINE``/``SOLVE``, or if the option
                is already registered.
            DefinitionError: If *option* is a negation.
        """
        self._validate_can_add()
        if is_negated(option):
            raise DefinitionError(f"Cannot register the negated option {option!r}")
        if option.index is not None:
            raise SolverStateError(f"{option!r} is already registered")

        option.index = len(self._options)
        self._options.append(option)
        self._weights.append(weight)
        self._rules_changed = True
        self._trace("Adding option %r with weight %d", option, weight)

        stale = [rule for rule in self.rules() if rule.on_option_added(option)]
        for rule in stale:
            self.redefine(rule)

    def set_weight(self, option: LoadOption, weight: int) -> None:
        self._validate_can_add()
        self._weights[self._option_index(option)] = weight

    def remove_option(self, option: LoadOption) -> None:
        """Unregister *option* and redefine every rule that referenced it."""
        self._validate_can_add()
        index = self._option_index(option)
        self._trace("Removing option %r", option)

        self._options[index] = None
        self._weights[index] = 0
        option.index = None
        self._rules_changed = True

        stale = [rule for rule in self.rules() if rule.on_option_removed(option)]
        for rule in stale:
            self.redefine(rule)

    def add_rule(self, rule: Rule) -> None:
        """Register *rule*, replay every known option through it and define it once."""
        self._validate_can_add()
        if rule.index is not None:
            raise SolverStateError(f"{rule!r} is already registered")

        rule.index = len(self._rules)
        self._rules.append(rule)
        self._definitions.append([])
        self._rules_changed = True
        self._trace("Adding rule %r", rule)

        for option in self.options():
            rule.on_option_added(option)
        self._define(rule)

    def remove_rule(self, rule: Rule) -> None:
        self._validate_can_add()
        index = self._rule_index(rule)
        self._trace("Removing rule %r", rule)

        self._rules[index] = None
        self._definitions[index] = []
        rule.index = None
        self._rules_changed = True

    def redefine(self, rule: Rule) -> None:
        """Discard every clause *rule* emitted so far and define it again."""
        self._validate_can_add()
        self._rule_index(rule)
        self._trace("Redefining rule %r", rule)
        self._rules_changed = True
        self._define(rule)

    def _define(self, rule: Rule) -> None:
        definer = _ContextDefiner(self, rule)
        define_rule(rule, definer)
        self._definitions[rule.index] = definer.definitions
        for definition in definer.definitions:
            self._trace("  %r := %s", rule, definition)

    def _validate_can_add(self) -> None:
        if not self._step.can_add:
            raise SolverStateError(
                f"Cannot add new options/rules during {self._step.label}"
            )

    # -----------------------------------------------------------------------
    # Solving
    # -----------------------------------------------------------------------

    def has_solution(self) -> bool:
        """Check whether every registered rule can hold at once.

        On success the optimiser is prepared and the step moves to
        ``RE_SOLVING``.

        Raises:
            SolverStateError: If called after a solution was found.
            SolverTimeoutError: If the check was cancelled.
        """
        self._check_cancelled()

        if self._step is SolveStep.DEFINE or (
            self._step is SolveStep.SOLVE and self._rules_changed
        ):
            if self._step is SolveStep.SOLVE:
                self._trace("Rules changed, rebuilding the explaining backend")
            self._build_explainer()
        elif self._step is not SolveStep.SOLVE:
            raise SolverStateError(
                f"Wrong step to call has_solution! ({self._step.label})"
            )

        self._step = SolveStep.SOLVE
        self._last_result = None
        self._error = None

        success = self._run(self._explainer, self._explainer.solve)
        self._last_result = success
        if not success:
            self._trace("No solution exists for the current rules")
            return False

        self._trace("Found a valid solution, preparing to optimise it")
        self._feasible_model = self._explainer.model()
        self._explainer.delete()
        self._explainer = None
        self._optimiser = OptimisingBackend(
            self.config.sat_solver,
            len(self._options),
            [d for _, defs in self._live_definitions() for d in defs],
            self._literal,
            self._objective(),
        )
        self._step = SolveStep.RE_SOLVING
        return True

    def get_error(self) -> list[Rule]:
        """Return the rules of a minimal unsatisfiable core.

        Raises:
            SolverStateError: Unless the last ``has_solution()`` returned
                False and nothing changed since.
        """
        self._check_cancelled()
        if (
            self._step is not SolveStep.SOLVE
            or self._last_result is not False
            or self._rules_changed
        ):
            raise SolverStateError(
                "get_error() is only valid right after has_solution() returned False"
            )
        if self._error is None:
            indices = self._run(self._explainer, self._explainer.minimal_core)
            self._error = [self._rules[index] for index in sorted(indices)]
        return list(self._error)

    def get_solution(self) -> list[LoadOption]:
        """Optimise and return every option that is true in the best solution.

        Alias options are included whenever their root is. If the
        optimisation is cancelled (or the configured timeout fires) the
        first valid solution found by ``has_solution()`` is returned
        instead; only a hard cancel makes this raise.

        Raises:
            SolverStateError: If not in ``RE_SOLVING``.
            SolverTimeoutError: After ``hard_cancel()``.
            ModSolvingError: If the optimiser fails or its model violates a
                rule. This indicates a bug, never bad input.
        """
        self._check_cancelled()
        if self._step is not SolveStep.RE_SOLVING:
            raise SolverStateError(
                f"Wrong step to call get_solution! ({self._step.label})"
            )

        self._step = SolveStep.OPTIMISE
        self._trace("Starting optimisation")
        timer = None
        if self.config.optimise_timeout is not None:
            timer = threading.Timer(
                self.config.optimise_timeout, self.cancel_if, args=(SolveStep.OPTIMISE,)
            )
            timer.daemon = True
            timer.start()

        try:
            model = self._run(self._optimiser, self._optimiser.compute)
            self._trace("Found optimal solution with cost %d", self._optimiser.cost)
        except SolverTimeoutError:
            if self._cancelled:
                raise
            logger.warning("Aborted optimisation, using the first valid solution found")
            model = self._feasible_model
        finally:
            if timer is not None:
                timer.cancel()

        self._optimiser.delete()
        self._optimiser = None

        value_of = self._value_function(model)
        self._verify(value_of)
        solution = [option for option in self.options() if value_of(option)]
        self._step = SolveStep.DONE
        return solution

    def _live_definitions(self) -> list[tuple[int, list[RuleDefinition]]]:
        return [
            (index, definitions)
            for index, definitions in enumerate(self._definitions)
            if self._rules[index] is not None
        ]

    def _build_explainer(self) -> None:
        if self._explainer is not None:
            self._explainer.delete()
        self._rules_changed = False
        self._explainer = ExplainingBackend(
            self.config.sat_solver,
            len(self._options),
            self._live_definitions(),
            self._literal,
        )

    def _objective(self) -> list[tuple[int, int]]:
        # Aliases share their root's variable, so their weights add up.
        totals: dict[int, int] = {}
        for option, weight in zip(self._options, self._weights):
            if option is None or weight == 0:
                continue
            var = self._literal(option)
            totals[var] = totals.get(var, 0) + weight
        return sorted(totals.items())

    def _value_function(self, model: Sequence[int]) -> Callable[[LoadOption], bool]:
        true_vars = {lit for lit in model if lit > 0}

        def value_of(option: LoadOption) -> bool:
            root = resolve_alias(option)
            if is_negated(root):
                return not value_of(root.not_)
            return root.index is not None and root.index + 1 in true_vars

        return value_of

    def _verify(self, value_of: Callable[[LoadOption], bool]) -> None:
        for index, definitions in self._live_definitions():
            for definition in definitions:
                if not definition.holds(value_of):
                    raise ModSolvingError(
                        f"Solution violates {definition} of {self._rules[index]!r}"
                        " - something has gone wrong internally!"
                    )

    # -----------------------------------------------------------------------
    # Cancellation
    # -----------------------------------------------------------------------

    def cancel(self) -> bool:
        """Interrupt the solver call currently running, if there is one.

        Returns:
            True if a running call was interrupted.
        """
        backend = self._active
        if backend is None:
            return False
        backend.interrupt()
        return True

    def cancel_if(self, step: SolveStep) -> bool:
        """Like ``cancel``, but only while the context is in *step*."""
        if self._step is not step:
            return False
        return self.cancel()

    def hard_cancel(self) -> None:
        """Cancel the current call and make every later call fail fast."""
        self._cancelled = True
        self.cancel()

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise SolverTimeoutError("Mod solving was cancelled")

    def _run(self, backend, call):
        self._active = backend
        try:
            return call()
        finally:
            self._active = None

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    def _option_index(self, option: LoadOption) -> int:
        index = option.index
        if index is None or index >= len(self._options) or self._options[index] is not option:
            raise SolverStateError(f"{option!r} is not registered with this context")
        return index

    def _rule_index(self, rule: Rule) -> int:
        index = rule.index
        if index is None or index >= len(self._rules) or self._rules[index] is not rule:
            raise SolverStateError(f"{rule!r} is not registered with this context")
        return index

    def _literal(self, option: LoadOption) -> int:
        root = resolve_alias(option)
        negated = is_negated(root)
        if negated:
            root = root.not_
        index = root.index
        if index is None or index >= len(self._options) or self._options[index] is not root:
            raise DefinitionError(f"{root!r} is not registered with this context")
        return -(index + 1) if negated else index + 1

    def _trace(self, msg: str, *args: object) -> None:
        if self.config.debug_solving:
            logger.debug(msg, *args)


class _ContextDefiner(RuleDefiner):
    """Collects the definitions of one rule for its ``RuleContext``."""

    def __init__(self, ctx: RuleContext, rule: Rule) -> None:
        self._ctx = ctx
        self._rule = rule
        self.definitions: list[RuleDefinition] = []

    def negate(self, option: LoadOption) -> LoadOption:
        return negate(resolve_alias(option))

    def _put(self, shape: type, options: tuple[LoadOption, ...], *bounds: int) -> None:
        self._ctx._validate_can_add()
        resolved = tuple(resolve_alias(option) for option in options)
        self.definitions.append(shape(self._rule, resolved, *bounds))

    def at_least_one_of(self, *options: LoadOption) -> None:
        if not options:
            raise DefinitionError(
                "Cannot define 'at_least_one_of' with an empty options array!"
            )
        self._put(AtLeastOneOf, options)

    def at_least(self, count: int, *options: LoadOption) -> None:
        if len(options) < count:
            raise DefinitionError(
                f"Cannot define 'at_least({count})' with a smaller options array! {options!r}"
            )
        self._put(AtLeast, options, count)

    def at_most(self, count: int, *options: LoadOption) -> None:
        if count < 0:
            raise DefinitionError(f"Cannot define 'at_most({count})' with a negative count!")
        self._put(AtMost, options, count)

    def exactly(self, count: int, *options: LoadOption) -> None:
        if count < 0:
            raise DefinitionError(f"Cannot define 'exactly({count})' with a negative count!")
        if len(options) < count:
            raise DefinitionError(
                f"Cannot define 'exactly({count})' with a smaller options array! {options!r}"
            )
        self._put(Exactly, options, count)

    def between(self, minimum: int, maximum: int, *options: LoadOption) -> None:
        if len(options) < minimum:
            raise DefinitionError(
                f"Cannot define 'between({minimum}, {maximum})' with a smaller options array!"
                f" {options!r}"
            )
        if maximum < minimum:
            raise DefinitionError(
                f"Cannot define 'between({minimum}, {maximum})' with a max lower than min!"
            )
        self._put(Between, options, minimum, maximum)
