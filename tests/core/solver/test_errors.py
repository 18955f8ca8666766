"""Tests for error decomposition and the human readable error messages."""

from __future__ import annotations

import pytest

from modresolver.config import SolverConfig
from modresolver.core.engine import RuleContext, SolveStep
from modresolver.core.metadata import (
    DependencyOnly,
    ModCandidate,
    ModProvided,
    VersionConstraint,
)
from modresolver.core.options import LoadOption, MainModLoadOption
from modresolver.core.rules import (
    BreaksOnlyRule,
    CustomRule,
    DependsOnlyRule,
    MandatoryModIdDefinition,
    OverriddenModIdDefinition,
)
from modresolver.core.solver import (
    ModSolver,
    blame_single_rule,
    decompose_errors,
    describe_error,
    fallback_error_description,
)
from modresolver.exceptions import ModSolvingException


def _mod(mod_id: str, version: str = "1.0.0", **kwargs) -> ModCandidate:
    return ModCandidate(mod_id, version, **kwargs)


def _dep(mod_id: str, versions: str = "*", **kwargs) -> DependencyOnly:
    return DependencyOnly(mod_id, VersionConstraint(versions), **kwargs)


def _errors(candidates: list[ModCandidate], **config) -> list:
    with pytest.raises(ModSolvingException) as excinfo:
        ModSolver(SolverConfig(**config)).find_compatible_set(candidates)
    return excinfo.value.errors


# ===========================================================================
# Rendered messages
# ===========================================================================


class TestMissingDependencyMessages:

    def test_missing_mod(self) -> None:
        (error,) = _errors([_mod("core", name="Core", mandatory=True, depends=[_dep("lib")])])
        assert error.message == (
            "Mod 'Core' (core) v1.0.0 requires any version of mod lib, which is missing!\n"
            "\t - You must install any version of lib."
        )
        assert isinstance(error.cause, DependsOnlyRule)

    def test_wrong_version(self) -> None:
        (error,) = _errors([
            _mod("core", mandatory=True, depends=[_dep("lib", ">=2.0.0")]),
            _mod("lib", "1.0.0"),
        ])
        assert error.message.splitlines()[0] == (
            "Mod 'core' (core) v1.0.0 requires version 2.0.0 or later of 'lib' (lib),"
            " but only the wrong version is present: 1.0.0!"
        )

    def test_transitive_chain(self) -> None:
        (error,) = _errors([
            _mod("core", mandatory=True, depends=[_dep("lib")]),
            _mod("lib", depends=[_dep("deep")]),
        ])
        lines = error.message.splitlines()
        assert lines[0] == (
            "Mod 'core' (core) v1.0.0 transitively requires any version of mod deep,"
            " which is missing!"
        )
        assert "\t - Required through: 'lib' (lib) v1.0.0" in lines

    def test_reason_is_shown(self) -> None:
        (error,) = _errors([
            _mod("core", mandatory=True, depends=[_dep("lib", reason="Needs the new API")]),
        ])
        assert error.message.endswith("\t - Reason: Needs the new API")


class TestBreakageMessages:

    def test_incompatible_mandatory_mods(self) -> None:
        (error,) = _errors([
            _mod("a", mandatory=True, breaks=[_dep("b", "<2", reason="crashes on load")]),
            _mod("b", "1.5", mandatory=True),
        ])
        lines = error.message.splitlines()
        assert lines[0] == (
            "Mod 'a' (a) v1.0.0 is incompatible with any version before 2 of 'b' (b),"
            " but a matching version is present: 1.5!"
        )
        assert "\t - You must remove one of the mods." in lines
        assert lines[-1] == "\t - Reason: crashes on load"
        assert isinstance(error.cause, BreaksOnlyRule)


class TestDuplicateMessages:

    def test_provided_id_clashes_with_mandatory_mod(self) -> None:
        (error,) = _errors([
            _mod("a", mandatory=True, provides=[ModProvided("x")]),
            _mod("x", mandatory=True),
        ])
        assert error.message.splitlines()[0] == (
            "Mods 'x' (x) v1.0.0 and 'a' (a) v1.0.0 both provide mod 'x',"
            " but only one of them can be loaded!"
        )
        assert isinstance(error.cause, OverriddenModIdDefinition)


# ===========================================================================
# Decomposition
# ===========================================================================


class TestDecomposeErrors:

    def test_independent_errors_are_all_reported(self) -> None:
        errors = _errors([
            _mod("one", mandatory=True, depends=[_dep("missing-a")]),
            _mod("two", mandatory=True, depends=[_dep("missing-b")]),
        ])
        assert sorted(e.root_ids[0] for e in errors) == ["one", "two"]
        assert len({id(e.cause) for e in errors}) == 2

    def test_max_errors(self) -> None:
        errors = _errors(
            [
                _mod("one", mandatory=True, depends=[_dep("missing-a")]),
                _mod("two", mandatory=True, depends=[_dep("missing-b")]),
            ],
            max_errors=1,
        )
        assert len(errors) == 1

    def test_solvable_context_has_no_errors(self) -> None:
        ctx = RuleContext()
        ctx.add_option(LoadOption())
        assert decompose_errors(ctx) == []

    def test_fallback_for_custom_rules(self) -> None:
        ctx = RuleContext()
        option = LoadOption()
        ctx.add_option(option)
        need = CustomRule("needs the option", lambda d: d.at_least_one_of(option))
        forbid = CustomRule(
            "forbids the option", lambda d: d.at_least_one_of(d.negate(option))
        )
        ctx.add_rule(need)
        ctx.add_rule(forbid)

        (error,) = decompose_errors(ctx)
        assert error.root_ids == []
        assert error.message == "Unhandled error:\nneeds the option\nforbids the option"
        assert error.cause is need
        assert error.involved == [need, forbid]
        assert ctx.step is SolveStep.RE_SOLVING

    def test_report_serialisation(self) -> None:
        (error,) = _errors([_mod("core", mandatory=True, depends=[_dep("lib")])])
        data = error.to_dict()
        assert data["root_ids"] == ["core"]
        assert data["message"].startswith("Mod 'core' (core)")


class TestBlameSingleRule:

    def test_dependency_without_valid_options_first(self) -> None:
        ctx = RuleContext()
        source = LoadOption()
        ctx.add_option(source)
        custom = CustomRule("custom", lambda d: None)
        breaks = BreaksOnlyRule(source, _dep("x"))
        depends = DependsOnlyRule(source, _dep("y"))
        for rule in (custom, breaks, depends):
            ctx.add_rule(rule)

        assert blame_single_rule(ctx, [custom, breaks, depends]) is depends
        assert depends.index is None
        assert blame_single_rule(ctx, [custom, breaks]) is breaks
        assert blame_single_rule(ctx, [custom]) is custom

    def test_nothing_to_blame(self) -> None:
        assert blame_single_rule(RuleContext(), []) is None


class TestFallbackDescription:

    def test_names_the_mandatory_mods(self) -> None:
        roots = [
            MandatoryModIdDefinition(MainModLoadOption(_mod("a", mandatory=True))),
            MandatoryModIdDefinition(MainModLoadOption(_mod("b", mandatory=True))),
        ]
        cause = CustomRule("strange rule", lambda d: None)
        assert fallback_error_description(roots, [cause]) == (
            "Unhandled error involving mods 'a' (a) v1.0.0, 'b' (b) v1.0.0:\nstrange rule"
        )

    def test_describe_error_declines_unknown_shapes(self) -> None:
        assert describe_error([], [CustomRule("strange rule", lambda d: None)]) is None
