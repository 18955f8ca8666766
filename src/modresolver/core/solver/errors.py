"""Error decomposition: turn one infeasible problem into independent errors.

When ``RuleContext.has_solution()`` fails, a single unsatisfiable core
rarely tells the whole story: a mod folder with two unrelated problems
should report both. Decomposition repeatedly

1. asks the engine for a minimal unsatisfiable core,
2. splits it into mandatory *roots* and the other rules (*causes*),
3. renders a message for it, preferring a specific renderer over the
   generic fallback,
4. removes exactly one cause from the engine,

until the problem becomes solvable or nothing more can be removed. Every
iteration removes a rule, so the loop is bounded by the number of rules and
never blames the same rule twice.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modresolver.core.options import (
    LoadOption,
    MainModLoadOption,
    ModLoadOption,
    resolve_alias,
)
from modresolver.core.rules import (
    BreakageRule,
    BreaksOnlyRule,
    DependencyRule,
    DependsOnlyRule,
    MandatoryModIdDefinition,
    OptionalModIdDefinition,
    OverriddenModIdDefinition,
    Rule,
)
from modresolver.core.solver.models import SolverErrorReport

if TYPE_CHECKING:
    from modresolver.core.engine import RuleContext

logger = logging.getLogger(__name__)


def decompose_errors(
    ctx: RuleContext, max_errors: int | None = None
) -> list[SolverErrorReport]:
    """Collect every independent reason why *ctx* has no solution.

    Args:
        ctx: A context in the ``DEFINE`` or ``SOLVE`` step.
        max_errors: Stop after this many errors. None for no limit.

    Returns:
        The errors in discovery order; empty if *ctx* is solvable. A
        non-empty result may leave *ctx* either solvable (every cause was
        removed) or still unsolvable (nothing more could be removed).

    Raises:
        SolverTimeoutError: If any solve is cancelled.
    """
    errors: list[SolverErrorReport] = []

    while not ctx.has_solution():
        involved = ctx.get_error()
        roots = [rule for rule in involved if isinstance(rule, MandatoryModIdDefinition)]
        causes = [rule for rule in involved if not isinstance(rule, MandatoryModIdDefinition)]

        message = describe_error(roots, causes)
        if message is None:
            message = fallback_error_description(roots, causes)

        cause = blame_single_rule(ctx, causes)
        errors.append(
            SolverErrorReport(
                root_ids=sorted({root.mod_id for root in roots}),
                message=message,
                cause=cause,
                involved=involved,
            )
        )
        logger.debug("Error %d blames %r", len(errors), cause)

        if cause is None:
            break
        if max_errors is not None and len(errors) >= max_errors:
            break

    return errors


def blame_single_rule(ctx: RuleContext, causes: list[Rule]) -> Rule | None:
    """Remove the most likely culprit among *causes* from *ctx*.

    Dependencies without any valid option go first, then breakages, then
    anything else. Removing the obvious culprit first avoids reporting
    spurious follow-on errors.

    Returns:
        The removed rule, or None if *causes* is empty.
    """
    for rule in causes:
        if isinstance(rule, DependencyRule) and not rule.has_any_valid_options():
            ctx.remove_rule(rule)
            return rule

    for rule in causes:
        if isinstance(rule, BreakageRule):
            ctx.remove_rule(rule)
            return rule

    for rule in causes:
        ctx.remove_rule(rule)
        return rule

    return None


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def describe_option(option: LoadOption) -> str:
    """``'Name' (id) v1.2.3`` for mod options, ``repr`` otherwise."""
    if isinstance(option, MainModLoadOption):
        return f"{option.candidate.display_name()} v{option.version.friendly()}"
    return repr(option)


def describe_error(
    roots: list[MandatoryModIdDefinition], causes: list[Rule]
) -> str | None:
    """Render a specific message for a well-known error shape.

    Returns:
        The message, or None when no specific renderer applies (the caller
        then uses ``fallback_error_description``).
    """
    for renderer in (_describe_missing_dependency, _describe_breakage, _describe_duplicate):
        message = renderer(roots, causes)
        if message is not None:
            return message
    return None


def fallback_error_description(
    roots: list[MandatoryModIdDefinition], causes: list[Rule]
) -> str:
    """Generic message listing every rule of the core."""
    if roots:
        plural = "s" if len(roots) > 1 else ""
        names = ", ".join(describe_option(root.option) for root in roots)
        lines = [f"Unhandled error involving mod{plural} {names}:"]
    else:
        lines = ["Unhandled error:"]
    lines.extend(cause.fallback_error_description() for cause in causes)
    return "\n".join(lines)


def _describe_missing_dependency(
    roots: list[MandatoryModIdDefinition], causes: list[Rule]
) -> str | None:
    if len(roots) != 1:
        return None

    root = roots[0].option
    current: LoadOption = root
    via: list[LoadOption] = []
    visited = {id(root)}

    while True:
        dep = _dependency_from(current, causes)
        if dep is None:
            return None
        if not dep.has_any_valid_options():
            return _render_missing(root, via, dep)
        if len(dep.valid_options) != 1:
            return None
        current = resolve_alias(dep.valid_options[0])
        if id(current) in visited:
            return None
        visited.add(id(current))
        via.append(current)


def _dependency_from(option: LoadOption, causes: list[Rule]) -> DependsOnlyRule | None:
    for rule in causes:
        if (
            isinstance(rule, DependsOnlyRule)
            and not rule.dependency.optional
            and resolve_alias(rule.source) is option
        ):
            return rule
    return None


def _render_missing(
    root: MainModLoadOption, via: list[LoadOption], dep: DependsOnlyRule
) -> str:
    requirement = dep.dependency.versions.describe()
    verb = "transitively requires" if via else "requires"
    prefix = f"Mod {describe_option(root)} {verb} {requirement} of "

    if dep.invalid_options:
        present = dep.invalid_options[0]
        target = _describe_target(present)
        versions = ", ".join(
            sorted({option.version.friendly() for option in dep.invalid_options})
        )
        lines = [
            prefix + f"{target}, but only the wrong version is present: {versions}!",
            f"\t - You must install {requirement} of {target}.",
        ]
    else:
        target = f"mod {dep.dependency.mod_id}"
        lines = [
            prefix + f"{target}, which is missing!",
            f"\t - You must install {requirement} of {dep.dependency.mod_id}.",
        ]

    if via:
        chain = " -> ".join(describe_option(option) for option in via)
        lines.append(f"\t - Required through: {chain}")
    if dep.dependency.reason:
        lines.append(f"\t - Reason: {dep.dependency.reason}")
    return "\n".join(lines)


def _describe_breakage(
    roots: list[MandatoryModIdDefinition], causes: list[Rule]
) -> str | None:
    root_options = {id(root.option) for root in roots}
    for rule in causes:
        if not isinstance(rule, BreaksOnlyRule):
            continue
        source = resolve_alias(rule.source)
        if id(source) not in root_options:
            continue
        for conflict in rule.conflicting_options:
            if id(resolve_alias(conflict)) not in root_options:
                continue
            version = conflict.version.friendly()
            target = _describe_target(conflict)
            requirement = rule.dependency.versions.describe()
            lines = [
                f"Mod {describe_option(source)} is incompatible with {requirement}"
                f" of {target}, but a matching version is present: {version}!",
                f"\t - The developer(s) of {describe_option(source)} have found that"
                f" version {version} of {target} critically conflicts with their mod.",
                "\t - You must remove one of the mods.",
            ]
            if rule.dependency.reason:
                lines.append(f"\t - Reason: {rule.dependency.reason}")
            return "\n".join(lines)
    return None


def _describe_duplicate(
    roots: list[MandatoryModIdDefinition], causes: list[Rule]
) -> str | None:
    root_options = {id(root.option) for root in roots}
    for rule in causes:
        if isinstance(rule, OverriddenModIdDefinition):
            claimants: list[LoadOption] = [rule.mandatory]
        elif isinstance(rule, OptionalModIdDefinition):
            claimants = []
        else:
            continue
        for source in rule.sources():
            owner = resolve_alias(source)
            if id(owner) in root_options and all(owner is not c for c in claimants):
                claimants.append(owner)
        if len(claimants) < 2:
            continue
        names = [describe_option(option) for option in claimants]
        subject = " and ".join(names) if len(names) == 2 else ", ".join(names)
        quantifier = "both" if len(names) == 2 else "all"
        return "\n".join(
            [
                f"Mods {subject} {quantifier} provide mod '{rule.mod_id}',"
                " but only one of them can be loaded!",
                "\t - You must remove one of the mods.",
            ]
        )
    return None


def _describe_target(option: ModLoadOption) -> str:
    if isinstance(option, MainModLoadOption):
        return option.candidate.display_name()
    return f"mod {option.mod_id}"
