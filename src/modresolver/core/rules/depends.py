"""Dependency rules: a source option requires a matching target option.

``DependsOnlyRule`` watches every option claiming the target mod id and
splits them into *valid* (group and version match) and *invalid* ones.
``DependsAnyRule`` owns one ``DependsOnlyRule`` per alternative, each hanging
off a synthetic ``DepOption``, and requires one of those branches whenever
its source is loaded.

An ``unless`` clause is itself a dependency rule on a fresh ``DepOption``;
that option appears positively in the parent's clauses, so satisfying the
``unless`` dependency releases the parent constraint.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modresolver.core.metadata import (
    DependencyAll,
    DependencyAny,
    DependencyOnly,
    ModDependency,
)
from modresolver.core.options import DepOption, LoadOption, ModLoadOption
from modresolver.core.rules.base import Rule, RuleDefiner, RuleKind
from modresolver.exceptions import DefinitionError

if TYPE_CHECKING:
    from modresolver.core.engine.context import RuleContext


class DependencyRule(Rule):
    """Common base of the "depends" variants."""

    def __init__(self, source: LoadOption) -> None:
        super().__init__()
        self.source = source

    def has_any_valid_options(self) -> bool:
        raise NotImplementedError

    def nodes_from(self) -> list[LoadOption]:
        return [self.source]


class DependsOnlyRule(DependencyRule):
    """``source`` depends on one mod id, optionally constrained by version.

    Args:
        source: The option that declares the dependency.
        dependency: The declaration itself.
        unless: Rule for the declaration's ``unless`` clause, if any.
    """

    kind = RuleKind.DEPENDS_ONLY

    def __init__(
        self,
        source: LoadOption,
        dependency: DependencyOnly,
        unless: DependencyRule | None = None,
    ) -> None:
        super().__init__(source)
        dependency.versions.validate()
        self.dependency = dependency
        self.unless = unless
        self.valid_options: list[ModLoadOption] = []
        self.invalid_options: list[ModLoadOption] = []
        self.all_options: list[ModLoadOption] = []

    def on_option_added(self, option: LoadOption) -> bool:
        if not isinstance(option, ModLoadOption):
            return False
        if option.mod_id != self.dependency.mod_id:
            return False
        self.all_options.append(option)
        if self.dependency.matches_group(option.group) and self.dependency.matches(
            option.version
        ):
            self.valid_options.append(option)
        else:
            self.invalid_options.append(option)
        return True

    def on_option_removed(self, option: LoadOption) -> bool:
        changed = False
        for options in (self.valid_options, self.invalid_options):
            if option in options:
                options.remove(option)
                changed = True
        if option in self.all_options:
            self.all_options.remove(option)
        return changed

    def has_any_valid_options(self) -> bool:
        return bool(self.valid_options)

    def nodes_to(self) -> list[LoadOption]:
        return list(self.all_options)

    def fallback_error_description(self) -> str:
        dep = self.dependency
        kind = "Optional dependency" if dep.optional else "Dependency"
        lines = [
            f"{kind} for {self.source!r} on {dep.mod_id} versions {dep.versions}"
            f" ({len(self.valid_options)} valid options,"
            f" {len(self.invalid_options)} invalid options)"
        ]
        lines.extend(f"\t+ {option.full_string()}" for option in self.valid_options)
        lines.extend(f"\tx {option.full_string()}" for option in self.invalid_options)
        return "\n".join(lines)

    def __str__(self) -> str:
        return str(self.dependency)


class DependsAnyRule(DependencyRule):
    """``source`` depends on at least one of several alternatives."""

    kind = RuleKind.DEPENDS_ANY

    def __init__(
        self,
        source: LoadOption,
        dependency: DependencyAny,
        branches: list[DependsOnlyRule],
    ) -> None:
        super().__init__(source)
        self.dependency = dependency
        self.branches = list(branches)

    def has_any_valid_options(self) -> bool:
        return any(branch.has_any_valid_options() for branch in self.branches)

    def nodes_to(self) -> list[LoadOption]:
        return [branch.source for branch in self.branches]

    def fallback_error_description(self) -> str:
        lines = [f"Dependency for {self.source!r} on any of:"]
        lines.extend(f"\t- {branch.source!r}" for branch in self.branches)
        return "\n".join(lines)

    def __str__(self) -> str:
        return str(self.dependency)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def create_unless_rule(
    ctx: RuleContext, dependency: DependencyOnly
) -> DependencyRule | None:
    """Register the ``unless`` branch of *dependency* with *ctx*.

    Returns:
        The registered rule, or None when the declaration has no ``unless``.
    """
    if dependency.unless is None:
        return None
    option = DepOption(dependency.unless)
    ctx.add_option(option)
    rule = create_dependency_rule(ctx, option, dependency.unless)
    ctx.add_rule(rule)
    return rule


def create_dependency_rule(
    ctx: RuleContext, source: LoadOption, dependency: ModDependency
) -> DependencyRule:
    """Build the rule for a "depends" declaration of *source*.

    Nested options and rules (``any`` branches, ``unless`` clauses) are
    registered with *ctx* as they are created. The returned rule itself is
    not: the caller adds it.

    Raises:
        DefinitionError: If *dependency* is an "all" expression, which is
            only meaningful for breakages, or a version constraint is
            malformed.
    """
    if isinstance(dependency, DependencyAny):
        branches = []
        for only in dependency.options:
            option = DepOption(only)
            ctx.add_option(option)
            branch = create_dependency_rule(ctx, option, only)
            ctx.add_rule(branch)
            branches.append(branch)
        return DependsAnyRule(source, dependency, branches)
    if isinstance(dependency, DependencyAll):
        raise DefinitionError(
            f"'all of' is only valid for breakages, not for the dependency {dependency}"
        )
    return DependsOnlyRule(source, dependency, create_unless_rule(ctx, dependency))


# ---------------------------------------------------------------------------
# Clause emission
# ---------------------------------------------------------------------------


def define_depends_only(rule: DependsOnlyRule, definer: RuleDefiner) -> None:
    unless = rule.unless.source if rule.unless is not None else None

    if rule.dependency.optional:
        # Absent is fine; a present target must be a valid one.
        for invalid in rule.invalid_options:
            clause = [definer.negate(invalid), definer.negate(rule.source)]
            if unless is not None:
                clause.append(unless)
            definer.at_least_one_of(*clause)
        return

    clause = [*rule.valid_options, definer.negate(rule.source)]
    if unless is not None:
        clause.append(unless)
    definer.at_least_one_of(*clause)


def define_depends_any(rule: DependsAnyRule, definer: RuleDefiner) -> None:
    definer.at_least_one_of(
        *(branch.source for branch in rule.branches), definer.negate(rule.source)
    )
