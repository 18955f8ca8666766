"""Breakage rules: a source option cannot be loaded alongside its targets.

``BreaksOnlyRule`` watches every option claiming the target mod id and
splits them into *conflicting* (group and version match) and *okay* ones.
``BreaksAllRule`` owns one ``BreaksOnlyRule`` per member, each on a synthetic
``DepOption``, and only fires when every member is present at once.
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
from modresolver.core.rules.depends import DependencyRule, create_unless_rule
from modresolver.exceptions import DefinitionError

if TYPE_CHECKING:
    from modresolver.core.engine.context import RuleContext


class BreakageRule(Rule):
    """Common base of the "breaks" variants."""

    def __init__(self, source: LoadOption) -> None:
        super().__init__()
        self.source = source

    def has_any_conflicting_options(self) -> bool:
        raise NotImplementedError

    def nodes_from(self) -> list[LoadOption]:
        return [self.source]


class BreaksOnlyRule(BreakageRule):
    """``source`` breaks every matching version of one mod id.

    ``optional`` on the declaration is meaningless for breakages and ignored.
    """

    kind = RuleKind.BREAKS_ONLY

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
        self.conflicting_options: list[ModLoadOption] = []
        self.okay_options: list[ModLoadOption] = []
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
            self.conflicting_options.append(option)
            return True
        self.okay_options.append(option)
        return False

    def on_option_removed(self, option: LoadOption) -> bool:
        changed = False
        if option in self.conflicting_options:
            self.conflicting_options.remove(option)
            changed = True
        if option in self.okay_options:
            self.okay_options.remove(option)
        if option in self.all_options:
            self.all_options.remove(option)
        return changed

    def has_any_conflicting_options(self) -> bool:
        return bool(self.conflicting_options)

    def nodes_to(self) -> list[LoadOption]:
        return list(self.all_options)

    def fallback_error_description(self) -> str:
        dep = self.dependency
        lines = [
            f"Breakage for {self.source!r} on {dep.mod_id} versions {dep.versions}"
            f" ({len(self.conflicting_options)} breaking options,"
            f" {len(self.okay_options)} okay options)"
        ]
        lines.extend(f"\tx {option.full_string()}" for option in self.conflicting_options)
        lines.extend(f"\t+ {option.full_string()}" for option in self.okay_options)
        return "\n".join(lines)

    def __str__(self) -> str:
        return str(self.dependency)


class BreaksAllRule(BreakageRule):
    """``source`` breaks the combination of every member being present."""

    kind = RuleKind.BREAKS_ALL

    def __init__(
        self,
        source: LoadOption,
        dependency: DependencyAll,
        branches: list[BreaksOnlyRule],
    ) -> None:
        super().__init__(source)
        self.dependency = dependency
        self.branches = list(branches)

    def has_any_conflicting_options(self) -> bool:
        return any(branch.has_any_conflicting_options() for branch in self.branches)

    def nodes_to(self) -> list[LoadOption]:
        return [branch.source for branch in self.branches]

    def fallback_error_description(self) -> str:
        lines = [f"Breakage for {self.source!r} on all of:"]
        lines.extend(f"\t- {branch.source!r}" for branch in self.branches)
        return "\n".join(lines)

    def __str__(self) -> str:
        return str(self.dependency)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def create_breakage_rule(
    ctx: RuleContext, source: LoadOption, dependency: ModDependency
) -> BreakageRule:
    """Build the rule for a "breaks" declaration of *source*.

    Nested options and rules are registered with *ctx*; the returned rule is
    left for the caller to add.

    Raises:
        DefinitionError: If *dependency* is an "any" expression, which is
            only meaningful for dependencies.
    """
    if isinstance(dependency, DependencyAll):
        branches = []
        for only in dependency.options:
            option = DepOption(only)
            ctx.add_option(option)
            branch = BreaksOnlyRule(option, only, create_unless_rule(ctx, only))
            ctx.add_rule(branch)
            branches.append(branch)
        return BreaksAllRule(source, dependency, branches)
    if isinstance(dependency, DependencyAny):
        raise DefinitionError(
            f"'any of' is only valid for dependencies, not for the breakage {dependency}"
        )
    return BreaksOnlyRule(source, dependency, create_unless_rule(ctx, dependency))


# ---------------------------------------------------------------------------
# Clause emission
# ---------------------------------------------------------------------------


def define_breaks_only(rule: BreaksOnlyRule, definer: RuleDefiner) -> None:
    unless = rule.unless.source if rule.unless is not None else None
    for conflict in rule.conflicting_options:
        clause = [definer.negate(conflict), definer.negate(rule.source)]
        if unless is not None:
            clause.append(unless)
        definer.at_least_one_of(*clause)


def define_breaks_all(rule: BreaksAllRule, definer: RuleDefiner) -> None:
    if not rule.branches:
        return
    # With the source loaded, at least one member branch must be clear.
    members = [definer.negate(branch.source) for branch in rule.branches]
    definer.at_most(len(members), *members, rule.source)
