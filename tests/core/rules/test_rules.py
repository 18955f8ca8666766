"""Tests for rule state tracking and clause emission.

Rules are exercised against a recording ``RuleDefiner`` so the emitted clause
shapes can be checked without a SAT backend.
"""

from __future__ import annotations

import pytest

from modresolver.core.metadata import (
    DependencyOnly,
    LoadType,
    ModCandidate,
    ModProvided,
    VersionConstraint,
)
from modresolver.core.options import (
    DepOption,
    LoadOption,
    MainModLoadOption,
    ProvidedModOption,
    negate,
    resolve_alias,
)
from modresolver.core.rules import (
    BreaksAllRule,
    BreaksOnlyRule,
    CustomRule,
    DependsAnyRule,
    DependsOnlyRule,
    MandatoryModIdDefinition,
    OptionalModIdDefinition,
    OverriddenModIdDefinition,
    Rule,
    RuleDefiner,
    RuleKind,
    define_rule,
)
from modresolver.exceptions import DefinitionError


# ===========================================================================
# Helpers
# ===========================================================================


class RecordingDefiner(RuleDefiner):
    """Records every clause shape instead of encoding it."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def negate(self, option: LoadOption) -> LoadOption:
        return negate(resolve_alias(option))

    def at_least_one_of(self, *options: LoadOption) -> None:
        self.calls.append(("at_least_one_of", options))

    def at_least(self, count: int, *options: LoadOption) -> None:
        self.calls.append(("at_least", count, options))

    def at_most(self, count: int, *options: LoadOption) -> None:
        self.calls.append(("at_most", count, options))

    def exactly(self, count: int, *options: LoadOption) -> None:
        self.calls.append(("exactly", count, options))

    def between(self, minimum: int, maximum: int, *options: LoadOption) -> None:
        self.calls.append(("between", minimum, maximum, options))


def _main(
    mod_id: str, version: str = "1.0.0", **kwargs
) -> MainModLoadOption:
    return MainModLoadOption(ModCandidate(mod_id, version, **kwargs))


def _emit(rule: Rule) -> list[tuple]:
    definer = RecordingDefiner()
    define_rule(rule, definer)
    return definer.calls


def _feed(rule: Rule, *options: LoadOption) -> list[bool]:
    return [rule.on_option_added(option) for option in options]


# ===========================================================================
# Mod id rules
# ===========================================================================


class TestMandatoryModIdDefinition:

    def test_requires_the_option(self) -> None:
        option = _main("core", mandatory=True)
        assert _emit(MandatoryModIdDefinition(option)) == [("at_least_one_of", (option,))]

    def test_kind_and_sources(self) -> None:
        option = _main("core", mandatory=True)
        rule = MandatoryModIdDefinition(option)
        assert rule.kind is RuleKind.MANDATORY
        assert rule.mod_id == "core"
        assert rule.sources() == [option]

    def test_fallback_description(self) -> None:
        rule = MandatoryModIdDefinition(_main("core", "2.0", name="Core"))
        assert rule.fallback_error_description() == "Mandatory mod 'Core' (core) v2.0"


class TestOptionalModIdDefinition:

    def test_collects_matching_mod_options_only(self) -> None:
        rule = OptionalModIdDefinition("lib")
        v1, v2, other = _main("lib", "1"), _main("lib", "2"), _main("other")
        assert _feed(rule, v1, v2, other, DepOption(DependencyOnly("lib"))) == [
            True, True, False, False,
        ]
        assert rule.sources() == [v1, v2]

    def test_at_most_one(self) -> None:
        rule = OptionalModIdDefinition("lib")
        v1, v2 = _main("lib", "1"), _main("lib", "2")
        _feed(rule, v1, v2)
        assert _emit(rule) == [("at_most", 1, (v1, v2))]

    def test_exactly_one_when_always(self) -> None:
        rule = OptionalModIdDefinition("lib")
        v1 = _main("lib", "1", load_type=LoadType.ALWAYS)
        v2 = _main("lib", "2")
        _feed(rule, v1, v2)
        assert rule.any_always()
        assert _emit(rule) == [("exactly", 1, (v1, v2))]

    def test_provided_options_emit_their_provider(self) -> None:
        rule = OptionalModIdDefinition("api")
        provider = _main("impl")
        provided = ProvidedModOption(provider, ModProvided("api"))
        own = _main("api")
        _feed(rule, own, provided)
        assert _emit(rule) == [("at_most", 1, (own, provider))]

    def test_provider_and_alias_are_not_counted_twice(self) -> None:
        rule = OptionalModIdDefinition("api")
        provider = _main("api")
        provided = ProvidedModOption(provider, ModProvided("api"))
        _feed(rule, provider, provided)
        assert _emit(rule) == [("at_most", 1, (provider,))]

    def test_removed_option_is_forgotten(self) -> None:
        rule = OptionalModIdDefinition("lib")
        v1 = _main("lib", "1")
        _feed(rule, v1)
        assert rule.on_option_removed(v1)
        assert rule.sources() == []
        assert not rule.on_option_removed(v1)

    @pytest.mark.parametrize(
        ("count", "text"),
        [
            (0, "unknown mod 'lib'"),
            (1, "optional mod 'lib' (1 source)"),
            (3, "optional mod 'lib' (3 sources)"),
        ],
    )
    def test_str(self, count: int, text: str) -> None:
        rule = OptionalModIdDefinition("lib")
        _feed(rule, *(_main("lib", str(n)) for n in range(count)))
        assert str(rule) == text


class TestOverriddenModIdDefinition:

    def test_excludes_the_mandated_option(self) -> None:
        mandated = _main("lib", "2", mandatory=True)
        other = _main("lib", "1")
        rule = OverriddenModIdDefinition(mandated)
        assert _feed(rule, mandated, other) == [False, True]
        assert rule.sources() == [other]

    def test_excludes_aliases_of_the_mandated_option(self) -> None:
        mandated = _main("lib", mandatory=True)
        alias = ProvidedModOption(mandated, ModProvided("lib"))
        rule = OverriddenModIdDefinition(mandated)
        assert _feed(rule, alias) == [False]

    def test_forces_every_other_claimant_off(self) -> None:
        mandated = _main("api", mandatory=True)
        provider = _main("impl")
        provided = ProvidedModOption(provider, ModProvided("api"))
        rule = OverriddenModIdDefinition(mandated)
        _feed(rule, mandated, provided)
        assert _emit(rule) == [("at_most", 0, (provider,))]


# ===========================================================================
# Dependencies
# ===========================================================================


class TestDependsOnlyRule:

    def _rule(self, versions: str = "*", **kwargs) -> tuple[DependsOnlyRule, LoadOption]:
        source = _main("core")
        dependency = DependencyOnly("lib", VersionConstraint(versions), **kwargs)
        return DependsOnlyRule(source, dependency), source

    def test_splits_valid_and_invalid(self) -> None:
        rule, _ = self._rule(">=2")
        old, new = _main("lib", "1.0"), _main("lib", "2.0")
        assert _feed(rule, old, new, _main("other")) == [True, True, False]
        assert rule.valid_options == [new]
        assert rule.invalid_options == [old]
        assert rule.all_options == [old, new]
        assert rule.has_any_valid_options()

    def test_group_mismatch_is_invalid(self) -> None:
        rule, _ = self._rule(group="org.example")
        option = _main("lib", group="com.other")
        _feed(rule, option)
        assert rule.invalid_options == [option]

    def test_requires_a_valid_option(self) -> None:
        rule, source = self._rule(">=2")
        old, new = _main("lib", "1.0"), _main("lib", "2.0")
        _feed(rule, old, new)
        assert _emit(rule) == [("at_least_one_of", (new, negate(source)))]

    def test_without_valid_options_the_source_is_off(self) -> None:
        rule, source = self._rule()
        assert not rule.has_any_valid_options()
        assert _emit(rule) == [("at_least_one_of", (negate(source),))]

    def test_optional_only_forbids_invalid_options(self) -> None:
        rule, source = self._rule(">=2", optional=True)
        old, older, new = _main("lib", "1.0"), _main("lib", "0.9"), _main("lib", "2.0")
        _feed(rule, old, older, new)
        assert _emit(rule) == [
            ("at_least_one_of", (negate(old), negate(source))),
            ("at_least_one_of", (negate(older), negate(source))),
        ]

    def test_unless_releases_the_clause(self) -> None:
        source = _main("core")
        unless_option = DepOption(DependencyOnly("compat"))
        unless = DependsOnlyRule(unless_option, DependencyOnly("compat"))
        dependency = DependencyOnly("lib", unless=DependencyOnly("compat"))
        rule = DependsOnlyRule(source, dependency, unless)
        assert _emit(rule) == [("at_least_one_of", (negate(source), unless_option))]

    def test_removal_updates_lists(self) -> None:
        rule, _ = self._rule()
        option = _main("lib")
        _feed(rule, option)
        assert rule.on_option_removed(option)
        assert rule.valid_options == []
        assert rule.all_options == []

    def test_graph_nodes(self) -> None:
        rule, source = self._rule()
        option = _main("lib")
        _feed(rule, option)
        assert rule.nodes_from() == [source]
        assert rule.nodes_to() == [option]

    def test_fallback_description(self) -> None:
        rule, _ = self._rule(">=2")
        _feed(rule, _main("lib", "1.0"), _main("lib", "2.0"))
        assert rule.fallback_error_description() == (
            "Dependency for 'core' (core) v1.0.0 on lib versions >=2"
            " (1 valid options, 1 invalid options)\n"
            "\t+ 'lib' (lib) v2.0\n"
            "\tx 'lib' (lib) v1.0"
        )


class TestDependsAnyRule:

    def test_requires_one_branch(self) -> None:
        source = _main("core")
        first = DepOption(DependencyOnly("a"))
        second = DepOption(DependencyOnly("b"))
        branches = [
            DependsOnlyRule(first, DependencyOnly("a")),
            DependsOnlyRule(second, DependencyOnly("b")),
        ]
        rule = DependsAnyRule(source, None, branches)
        assert _emit(rule) == [("at_least_one_of", (first, second, negate(source)))]
        assert rule.nodes_to() == [first, second]

    def test_valid_when_any_branch_is_valid(self) -> None:
        first = DependsOnlyRule(DepOption(DependencyOnly("a")), DependencyOnly("a"))
        second = DependsOnlyRule(DepOption(DependencyOnly("b")), DependencyOnly("b"))
        rule = DependsAnyRule(_main("core"), None, [first, second])
        assert not rule.has_any_valid_options()
        second.on_option_added(_main("b"))
        assert rule.has_any_valid_options()


# ===========================================================================
# Breakages
# ===========================================================================


class TestBreaksOnlyRule:

    def _rule(self, versions: str = "*") -> tuple[BreaksOnlyRule, LoadOption]:
        source = _main("core")
        return BreaksOnlyRule(source, DependencyOnly("bad", VersionConstraint(versions))), source

    def test_only_conflicts_make_the_rule_stale(self) -> None:
        rule, _ = self._rule("<2")
        old, new = _main("bad", "1.0"), _main("bad", "2.0")
        assert _feed(rule, old, new) == [True, False]
        assert rule.conflicting_options == [old]
        assert rule.okay_options == [new]
        assert rule.has_any_conflicting_options()

    def test_each_conflict_excludes_the_source(self) -> None:
        rule, source = self._rule()
        first, second = _main("bad", "1"), _main("bad", "2")
        _feed(rule, first, second)
        assert _emit(rule) == [
            ("at_least_one_of", (negate(first), negate(source))),
            ("at_least_one_of", (negate(second), negate(source))),
        ]

    def test_no_conflicts_no_clauses(self) -> None:
        rule, _ = self._rule()
        assert _emit(rule) == []

    def test_unless_releases_each_clause(self) -> None:
        source = _main("core")
        unless_option = DepOption(DependencyOnly("compat"))
        unless = DependsOnlyRule(unless_option, DependencyOnly("compat"))
        rule = BreaksOnlyRule(source, DependencyOnly("bad"), unless)
        bad = _main("bad")
        _feed(rule, bad)
        assert _emit(rule) == [
            ("at_least_one_of", (negate(bad), negate(source), unless_option)),
        ]

    def test_removing_an_okay_option_is_not_stale(self) -> None:
        rule, _ = self._rule("<2")
        new = _main("bad", "2.0")
        _feed(rule, new)
        assert not rule.on_option_removed(new)
        assert rule.all_options == []


class TestBreaksAllRule:

    def test_at_least_one_member_must_be_clear(self) -> None:
        source = _main("core")
        first = DepOption(DependencyOnly("a"))
        second = DepOption(DependencyOnly("b"))
        branches = [
            BreaksOnlyRule(first, DependencyOnly("a")),
            BreaksOnlyRule(second, DependencyOnly("b")),
        ]
        rule = BreaksAllRule(source, None, branches)
        assert _emit(rule) == [
            ("at_most", 2, (negate(first), negate(second), source)),
        ]

    def test_no_members_no_clauses(self) -> None:
        assert _emit(BreaksAllRule(_main("core"), None, [])) == []


# ===========================================================================
# Dispatch and custom rules
# ===========================================================================


class TestDefineRule:

    def test_unknown_kind_raises(self) -> None:
        class Broken(Rule):
            kind = None

        with pytest.raises(DefinitionError, match="No clause emitter"):
            define_rule(Broken(), RecordingDefiner())

    def test_every_kind_has_an_emitter(self) -> None:
        from modresolver.core.rules.define import _DEFINERS

        assert set(_DEFINERS) == set(RuleKind)


class TestCustomRule:

    def test_callback_receives_the_definer(self) -> None:
        option = LoadOption()
        rule = CustomRule("force", lambda d: d.at_least_one_of(option))
        assert _emit(rule) == [("at_least_one_of", (option,))]
        assert str(rule) == "force"

    def test_watch_collects_options(self) -> None:
        rule = CustomRule(
            "watch libs", lambda d: None,
            watch=lambda o: isinstance(o, MainModLoadOption),
        )
        lib = _main("lib")
        assert _feed(rule, lib, LoadOption()) == [True, False]
        assert rule.watched == [lib]
        assert rule.on_option_removed(lib)
        assert rule.watched == []

    def test_repr_includes_index(self) -> None:
        rule = CustomRule("force", lambda d: None)
        rule.index = 4
        assert repr(rule) == "<CustomRule #4: force>"
