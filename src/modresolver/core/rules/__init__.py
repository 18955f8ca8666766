"""Rule Model: declarative constraints over load options.

All public names are re-exported here so callers can write
``from modresolver.core.rules import DependsOnlyRule``.
"""

from modresolver.core.rules.base import CustomRule, Rule, RuleDefiner, RuleKind
from modresolver.core.rules.breaks import (
    BreakageRule,
    BreaksAllRule,
    BreaksOnlyRule,
    create_breakage_rule,
)
from modresolver.core.rules.define import define_rule
from modresolver.core.rules.depends import (
    DependencyRule,
    DependsAnyRule,
    DependsOnlyRule,
    create_dependency_rule,
)
from modresolver.core.rules.modid import (
    MandatoryModIdDefinition,
    ModIdDefinition,
    OptionalModIdDefinition,
    OverriddenModIdDefinition,
)

__all__ = [
    "BreakageRule",
    "BreaksAllRule",
    "BreaksOnlyRule",
    "CustomRule",
    "DependencyRule",
    "DependsAnyRule",
    "DependsOnlyRule",
    "MandatoryModIdDefinition",
    "ModIdDefinition",
    "OptionalModIdDefinition",
    "OverriddenModIdDefinition",
    "Rule",
    "RuleDefiner",
    "RuleKind",
    "create_breakage_rule",
    "create_dependency_rule",
    "define_rule",
]
