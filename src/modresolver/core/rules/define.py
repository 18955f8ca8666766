"""Clause emission dispatch for every rule variant."""

from __future__ import annotations

from typing import Callable

from modresolver.core.rules.base import CustomRule, Rule, RuleDefiner, RuleKind
from modresolver.core.rules.breaks import define_breaks_all, define_breaks_only
from modresolver.core.rules.depends import define_depends_any, define_depends_only
from modresolver.core.rules.modid import (
    define_mandatory,
    define_optional_set,
    define_overridden_set,
)
from modresolver.exceptions import DefinitionError


def _define_custom(rule: CustomRule, definer: RuleDefiner) -> None:
    rule.define(definer)


_DEFINERS: dict[RuleKind, Callable[[Rule, RuleDefiner], None]] = {
    RuleKind.MANDATORY: define_mandatory,
    RuleKind.OPTIONAL_SET: define_optional_set,
    RuleKind.OVERRIDDEN_SET: define_overridden_set,
    RuleKind.DEPENDS_ONLY: define_depends_only,
    RuleKind.DEPENDS_ANY: define_depends_any,
    RuleKind.BREAKS_ONLY: define_breaks_only,
    RuleKind.BREAKS_ALL: define_breaks_all,
    RuleKind.CUSTOM: _define_custom,
}


def define_rule(rule: Rule, definer: RuleDefiner) -> None:
    """Emit every clause of *rule* through *definer*.

    Raises:
        DefinitionError: If the rule's kind has no clause emitter, or the
            emitted clauses are malformed.
    """
    emit = _DEFINERS.get(rule.kind)
    if emit is None:
        raise DefinitionError(f"No clause emitter for rule kind {rule.kind!r}")
    emit(rule, definer)
