"""Rules that decide how many options may claim a single mod id.

- ``MandatoryModIdDefinition``: a user-placed candidate must be loaded.
- ``OptionalModIdDefinition``: at most one candidate (or provider) of an id
  may be loaded, exactly one when any candidate is ``LoadType.ALWAYS``.
- ``OverriddenModIdDefinition``: an id already claimed by a mandatory
  candidate; every other claimant is forced off.
"""

from __future__ import annotations

from modresolver.core.metadata import LoadType
from modresolver.core.options import (
    LoadOption,
    MainModLoadOption,
    ModLoadOption,
    resolve_alias,
)
from modresolver.core.rules.base import Rule, RuleDefiner, RuleKind


class ModIdDefinition(Rule):
    """Base for rules that own one mod id."""

    @property
    def mod_id(self) -> str:
        raise NotImplementedError

    def sources(self) -> list[ModLoadOption]:
        """Return every option that can load this mod id."""
        raise NotImplementedError

    def friendly_name(self) -> str:
        return self.mod_id


class MandatoryModIdDefinition(ModIdDefinition):
    """The given candidate must be loaded."""

    kind = RuleKind.MANDATORY

    def __init__(self, option: MainModLoadOption) -> None:
        super().__init__()
        self.option = option

    @property
    def mod_id(self) -> str:
        return self.option.mod_id

    def sources(self) -> list[ModLoadOption]:
        return [self.option]

    def friendly_name(self) -> str:
        return self.option.candidate.display_name()

    def fallback_error_description(self) -> str:
        return f"Mandatory mod {self.friendly_name()} v{self.option.version.friendly()}"

    def __str__(self) -> str:
        return self.option.full_string()


class OptionalModIdDefinition(ModIdDefinition):
    """At most one of the options claiming ``mod_id`` may be loaded."""

    kind = RuleKind.OPTIONAL_SET

    def __init__(self, mod_id: str) -> None:
        super().__init__()
        self._mod_id = mod_id
        self._sources: list[ModLoadOption] = []

    @property
    def mod_id(self) -> str:
        return self._mod_id

    def sources(self) -> list[ModLoadOption]:
        return list(self._sources)

    def any_always(self) -> bool:
        """True when a concrete candidate of this id must always load."""
        return any(
            isinstance(option, MainModLoadOption)
            and option.candidate.load_type is LoadType.ALWAYS
            for option in self._sources
        )

    def on_option_added(self, option: LoadOption) -> bool:
        if isinstance(option, ModLoadOption) and option.mod_id == self._mod_id:
            self._sources.append(option)
            return True
        return False

    def on_option_removed(self, option: LoadOption) -> bool:
        if option in self._sources:
            self._sources.remove(option)
            return True
        return False

    def fallback_error_description(self) -> str:
        lines = [str(self)]
        lines.extend(f"\t - {option.full_string()}" for option in self._sources)
        return "\n".join(lines)

    def __str__(self) -> str:
        count = len(self._sources)
        if count == 0:
            return f"unknown mod '{self._mod_id}'"
        if count == 1:
            return f"optional mod '{self._mod_id}' (1 source)"
        return f"optional mod '{self._mod_id}' ({count} sources)"


class OverriddenModIdDefinition(ModIdDefinition):
    """Every option claiming ``mod_id`` other than the mandated one is off.

    Args:
        mandatory: The mandated candidate's option. It is never one of this
            rule's sources, nor is any alias resolving to it.
    """

    kind = RuleKind.OVERRIDDEN_SET

    def __init__(self, mandatory: MainModLoadOption) -> None:
        super().__init__()
        self.mandatory = mandatory
        self._sources: list[ModLoadOption] = []

    @property
    def mod_id(self) -> str:
        return self.mandatory.mod_id

    def sources(self) -> list[ModLoadOption]:
        return list(self._sources)

    def on_option_added(self, option: LoadOption) -> bool:
        if not isinstance(option, ModLoadOption) or option.mod_id != self.mod_id:
            return False
        if resolve_alias(option) is self.mandatory:
            return False
        self._sources.append(option)
        return True

    def on_option_removed(self, option: LoadOption) -> bool:
        if option in self._sources:
            self._sources.remove(option)
            return True
        return False

    def fallback_error_description(self) -> str:
        lines = [str(self)]
        lines.extend(f"\t x {option.full_string()}" for option in self._sources)
        return "\n".join(lines)

    def __str__(self) -> str:
        return (
            f"overridden mod '{self.mod_id}' ({len(self._sources)} other sources,"
            f" replaced by {self.mandatory.full_string()})"
        )


# ---------------------------------------------------------------------------
# Clause emission
# ---------------------------------------------------------------------------


def _distinct_roots(options: list[ModLoadOption]) -> list[LoadOption]:
    # A provider and its own provided alias are the same variable.
    seen: set[int] = set()
    roots: list[LoadOption] = []
    for option in options:
        root = resolve_alias(option)
        if id(root) not in seen:
            seen.add(id(root))
            roots.append(root)
    return roots


def define_mandatory(rule: MandatoryModIdDefinition, definer: RuleDefiner) -> None:
    definer.at_least_one_of(rule.option)


def define_optional_set(rule: OptionalModIdDefinition, definer: RuleDefiner) -> None:
    options = _distinct_roots(rule.sources())
    if rule.any_always():
        definer.exactly(1, *options)
    else:
        definer.at_most(1, *options)


def define_overridden_set(rule: OverriddenModIdDefinition, definer: RuleDefiner) -> None:
    definer.at_most(0, *_distinct_roots(rule.sources()))
