"""Constraint Engine: the rule context and its python-sat backends.

All public names are re-exported here so callers can write
``from modresolver.core.engine import RuleContext``.
"""

from modresolver.core.engine.backend import (
    CancellableRC2,
    ExplainingBackend,
    OptimisingBackend,
)
from modresolver.core.engine.context import RuleContext, SolveStep
from modresolver.core.engine.definitions import (
    AtLeast,
    AtLeastOneOf,
    AtMost,
    Between,
    Exactly,
    RuleDefinition,
)

__all__ = [
    "AtLeast",
    "AtLeastOneOf",
    "AtMost",
    "Between",
    "CancellableRC2",
    "Exactly",
    "ExplainingBackend",
    "OptimisingBackend",
    "RuleContext",
    "RuleDefinition",
    "SolveStep",
]
