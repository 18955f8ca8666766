"""Rule base types and the clause-emission contract.

A rule is a named relationship over one or more load options. Rules never
talk to a SAT backend directly: the engine hands each rule a ``RuleDefiner``
and the rule describes itself through a handful of primitive clause shapes
(disjunctions and cardinality constraints).

Rules form a tagged union. Every rule carries a ``RuleKind`` and the
clause-emitting code for each kind lives in a plain function, selected by
``modresolver.core.rules.define.define_rule``. The classes below only hold
per-rule state and the hooks the engine needs while options come and go.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from modresolver.core.options import LoadOption


class RuleKind(Enum):
    """Tag identifying the variant of a rule."""

    MANDATORY = "mandatory"
    OPTIONAL_SET = "optional_set"
    OVERRIDDEN_SET = "overridden_set"
    DEPENDS_ONLY = "depends_only"
    DEPENDS_ANY = "depends_any"
    BREAKS_ONLY = "breaks_only"
    BREAKS_ALL = "breaks_all"
    CUSTOM = "custom"


# ---------------------------------------------------------------------------
# RuleDefiner: what a rule may emit
# ---------------------------------------------------------------------------


class RuleDefiner(ABC):
    """Receives the clauses a single rule emits.

    Every option passed in is copied and alias-resolved before it is stored.
    Malformed calls raise ``DefinitionError`` immediately.
    """

    @abstractmethod
    def negate(self, option: LoadOption) -> LoadOption:
        """Return the alias-resolved negation of *option*."""

    @abstractmethod
    def at_least_one_of(self, *options: LoadOption) -> None:
        """Require at least one of *options* to be true.

        Raises:
            DefinitionError: If *options* is empty.
        """

    @abstractmethod
    def at_least(self, count: int, *options: LoadOption) -> None:
        """Require at least *count* of *options* to be true."""

    @abstractmethod
    def at_most(self, count: int, *options: LoadOption) -> None:
        """Require at most *count* of *options* to be true."""

    @abstractmethod
    def exactly(self, count: int, *options: LoadOption) -> None:
        """Require exactly *count* of *options* to be true."""

    @abstractmethod
    def between(self, minimum: int, maximum: int, *options: LoadOption) -> None:
        """Require between *minimum* and *maximum* (inclusive) of *options*."""


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


class Rule:
    """Base class for every constraint registered with a ``RuleContext``.

    Attributes:
        kind: The variant tag used to dispatch clause emission.
        index: Dense arena slot assigned by the engine, None while the rule
            is not registered.
    """

    kind: RuleKind = RuleKind.CUSTOM

    def __init__(self) -> None:
        self.index: int | None = None

    def on_option_added(self, option: LoadOption) -> bool:
        """Notify the rule of a newly registered option.

        Returns:
            True if the rule's clauses are now stale and must be redefined.
        """
        return False

    def on_option_removed(self, option: LoadOption) -> bool:
        """Notify the rule that *option* was unregistered.

        Returns:
            True if the rule's clauses are now stale and must be redefined.
        """
        return False

    def nodes_from(self) -> list[LoadOption]:
        """Options this rule points away from (e.g. a dependency's source)."""
        return []

    def nodes_to(self) -> list[LoadOption]:
        """Options this rule points at (e.g. a dependency's targets)."""
        return []

    def fallback_error_description(self) -> str:
        """Describe this rule when no specific error renderer applies."""
        return str(self)

    def __str__(self) -> str:
        return f"{self.kind.value} rule"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} #{self.index}: {self}>"


class CustomRule(Rule):
    """A rule whose clauses come from a caller-supplied callback.

    Used by plugins that need clause shapes outside the built-in variants.

    Args:
        name: Human readable name shown in diagnostics.
        define: Called with a ``RuleDefiner`` every time the rule is
            (re)defined.
        watch: Optional predicate; options for which it returns True are
            collected into ``watched`` and make the rule stale.
    """

    kind = RuleKind.CUSTOM

    def __init__(
        self,
        name: str,
        define: Callable[[RuleDefiner], None],
        watch: Callable[[LoadOption], bool] | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.define = define
        self.watch = watch
        self.watched: list[LoadOption] = []

    def on_option_added(self, option: LoadOption) -> bool:
        if self.watch is not None and self.watch(option):
            self.watched.append(option)
            return True
        return False

    def on_option_removed(self, option: LoadOption) -> bool:
        if option in self.watched:
            self.watched.remove(option)
            return True
        return False

    def __str__(self) -> str:
        return self.name
