"""Primitive clause shapes emitted by rules.

Each ``RuleDefinition`` remembers the rule that emitted it and the
alias-resolved literals it constrains. It can encode itself to CNF for a
python-sat backend and evaluate itself against a finished assignment, which
the engine uses to double-check every optimised model.

Cardinality constraints use the sequential counter encoding from
``pysat.card``; the trivial bounds (nothing to enforce, plain clause, unit
clauses) are emitted directly without auxiliary variables.

References
----------
.. [Sinz05] Sinz, C. (2005). "Towards an Optimal CNF Encoding of Boolean
   Cardinality Constraints." CP 2005.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from pysat.card import CardEnc, EncType
from pysat.formula import IDPool

from modresolver.core.options import LoadOption

if TYPE_CHECKING:
    from modresolver.core.rules import Rule

LiteralOf = Callable[[LoadOption], int]
ValueOf = Callable[[LoadOption], bool]


def encode_at_least(lits: list[int], bound: int, pool: IDPool) -> list[list[int]]:
    """CNF for "at least *bound* of *lits* are true"."""
    if bound <= 0:
        return []
    if bound == 1:
        return [list(lits)]
    if bound == len(lits):
        return [[lit] for lit in lits]
    return CardEnc.atleast(
        lits=lits, bound=bound, vpool=pool, encoding=EncType.seqcounter
    ).clauses


def encode_at_most(lits: list[int], bound: int, pool: IDPool) -> list[list[int]]:
    """CNF for "at most *bound* of *lits* are true"."""
    if bound >= len(lits):
        return []
    if bound <= 0:
        return [[-lit] for lit in lits]
    return CardEnc.atmost(
        lits=lits, bound=bound, vpool=pool, encoding=EncType.seqcounter
    ).clauses


@dataclass(frozen=True)
class RuleDefinition(ABC):
    """One clause shape emitted by ``rule``.

    Attributes:
        rule: The rule that emitted this definition.
        options: Alias-resolved literals, possibly negated.
    """

    rule: Rule
    options: tuple[LoadOption, ...]

    @abstractmethod
    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        """Translate this definition to CNF clauses."""

    @abstractmethod
    def holds(self, value_of: ValueOf) -> bool:
        """Evaluate this definition against an assignment."""

    def count_true(self, value_of: ValueOf) -> int:
        return sum(1 for option in self.options if value_of(option))

    def _lits(self, literal_of: LiteralOf) -> list[int]:
        return [literal_of(option) for option in self.options]

    def _describe_options(self) -> str:
        return ", ".join(repr(option) for option in self.options)


@dataclass(frozen=True)
class AtLeastOneOf(RuleDefinition):
    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        return [self._lits(literal_of)]

    def holds(self, value_of: ValueOf) -> bool:
        return self.count_true(value_of) >= 1

    def __str__(self) -> str:
        return f"at_least_one_of({self._describe_options()})"


@dataclass(frozen=True)
class AtLeast(RuleDefinition):
    count: int

    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        return encode_at_least(self._lits(literal_of), self.count, pool)

    def holds(self, value_of: ValueOf) -> bool:
        return self.count_true(value_of) >= self.count

    def __str__(self) -> str:
        return f"at_least({self.count}, {self._describe_options()})"


@dataclass(frozen=True)
class AtMost(RuleDefinition):
    count: int

    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        return encode_at_most(self._lits(literal_of), self.count, pool)

    def holds(self, value_of: ValueOf) -> bool:
        return self.count_true(value_of) <= self.count

    def __str__(self) -> str:
        return f"at_most({self.count}, {self._describe_options()})"


@dataclass(frozen=True)
class Exactly(RuleDefinition):
    count: int

    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        lits = self._lits(literal_of)
        return encode_at_least(lits, self.count, pool) + encode_at_most(
            lits, self.count, pool
        )

    def holds(self, value_of: ValueOf) -> bool:
        return self.count_true(value_of) == self.count

    def __str__(self) -> str:
        return f"exactly({self.count}, {self._describe_options()})"


@dataclass(frozen=True)
class Between(RuleDefinition):
    minimum: int
    maximum: int

    def encode(self, literal_of: LiteralOf, pool: IDPool) -> list[list[int]]:
        lits = self._lits(literal_of)
        return encode_at_least(lits, self.minimum, pool) + encode_at_most(
            lits, self.maximum, pool
        )

    def holds(self, value_of: ValueOf) -> bool:
        return self.minimum <= self.count_true(value_of) <= self.maximum

    def __str__(self) -> str:
        return f"between({self.minimum}, {self.maximum}, {self._describe_options()})"
