"""Tests for ``modresolver resolve`` command.

Verifies:
    - A solvable manifest exits 0 and lists the selection.
    - JSON output for solved and infeasible manifests.
    - Infeasible manifests exit 1 and print every independent error.
    - Malformed manifests, bad configuration and duplicated mandatory
      mods exit 2.
    - A cancelled resolution exits 3.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

from click.testing import CliRunner

from modresolver.cli.main import cli
from modresolver.core.solver import ModSolver, TimedOut
from modresolver.exceptions import SolverTimeoutError


class TestResolveSolvable:
    """Manifests that have a valid selection."""

    def test_exits_with_code_0(self, runner: CliRunner, solvable_manifest: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest)])
        assert result.exit_code == 0, result.output

    def test_shows_summary(self, runner: CliRunner, solvable_manifest: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest)])
        assert "Resolution successful" in result.output
        assert "core" in result.output
        assert "1.2.0" in result.output
        assert "2 candidate(s) not loaded." in result.output

    def test_json_output(self, runner: CliRunner, solvable_manifest: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == {
            "status": "solved",
            "selected": {"core": "core@1.0.0", "lib": "lib@1.2.0"},
            "provided": {},
        }

    def test_format_is_case_insensitive(
        self, runner: CliRunner, solvable_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--format", "JSON"])
        assert json.loads(result.stdout)["status"] == "solved"

    def test_provided_mods_are_listed(
        self, runner: CliRunner, write_manifest: Callable[..., Path]
    ) -> None:
        manifest = write_manifest(
            "- id: core\n"
            "  version: 1.0.0\n"
            "  mandatory: true\n"
            "  depends: [api]\n"
            "- id: impl\n"
            "  version: 2.0.0\n"
            "  provides: [api]\n"
        )
        result = runner.invoke(cli, ["resolve", str(manifest), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["selected"] == {"core": "core@1.0.0", "impl": "impl@2.0.0"}
        assert data["provided"] == {"api": "impl@2.0.0"}

    def test_optimise_timeout_still_solves(
        self, runner: CliRunner, solvable_manifest: Path
    ) -> None:
        result = runner.invoke(
            cli, ["resolve", str(solvable_manifest), "--optimise-timeout", "30"]
        )
        assert result.exit_code == 0


class TestResolveInfeasible:
    """Manifests without any valid selection."""

    def test_exits_with_code_1(
        self, runner: CliRunner, missing_dependency_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(missing_dependency_manifest)])
        assert result.exit_code == 1

    def test_shows_the_error(
        self, runner: CliRunner, missing_dependency_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(missing_dependency_manifest)])
        assert "Resolution failed" in result.output
        assert "missing" in result.output
        assert "Error 1" in result.output

    def test_every_error_is_reported(
        self, runner: CliRunner, two_errors_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(two_errors_manifest), "--format", "json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["status"] == "infeasible"
        assert sorted(e["root_ids"][0] for e in data["errors"]) == ["one", "two"]

    def test_max_errors(self, runner: CliRunner, two_errors_manifest: Path) -> None:
        result = runner.invoke(
            cli,
            ["resolve", str(two_errors_manifest), "--format", "json", "--max-errors", "1"],
        )
        assert result.exit_code == 1
        assert len(json.loads(result.stdout)["errors"]) == 1

    def test_max_errors_from_environment(
        self, runner: CliRunner, two_errors_manifest: Path
    ) -> None:
        result = runner.invoke(
            cli,
            ["resolve", str(two_errors_manifest), "--format", "json"],
            env={"MODRESOLVER_MAX_ERRORS": "1"},
        )
        assert len(json.loads(result.stdout)["errors"]) == 1


class TestResolveInvalidInput:
    """Malformed manifests and configuration."""

    def test_malformed_yaml(
        self, runner: CliRunner, write_manifest: Callable[..., Path]
    ) -> None:
        manifest = write_manifest("- id: core\n  version: [1.0\n")
        result = runner.invoke(cli, ["resolve", str(manifest)])
        assert result.exit_code == 2
        assert "Malformed YAML" in result.output

    def test_missing_version(
        self, runner: CliRunner, write_manifest: Callable[..., Path]
    ) -> None:
        manifest = write_manifest("- id: core\n")
        result = runner.invoke(cli, ["resolve", str(manifest)])
        assert result.exit_code == 2
        assert "missing 'version'" in result.output

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2

    def test_duplicate_mandatory_mods(
        self, runner: CliRunner, write_manifest: Callable[..., Path]
    ) -> None:
        manifest = write_manifest(
            "- {id: core, version: 1.0.0, mandatory: true}\n"
            "- {id: core, version: 2.0.0, mandatory: true}\n"
        )
        result = runner.invoke(cli, ["resolve", str(manifest), "--format", "json"])
        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["status"] == "invalid"
        assert "core" in data["message"]

    def test_bad_environment(self, runner: CliRunner, solvable_manifest: Path) -> None:
        result = runner.invoke(
            cli, ["resolve", str(solvable_manifest)], env={"MODRESOLVER_MAX_ERRORS": "abc"}
        )
        assert result.exit_code == 2
        assert "MODRESOLVER_MAX_ERRORS" in result.output

    def test_non_positive_timeout_is_rejected(
        self, runner: CliRunner, solvable_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--timeout", "0"])
        assert result.exit_code == 2


class TestResolveTimeout:
    """Cancelled resolutions."""

    def test_exits_with_code_3(
        self, runner: CliRunner, solvable_manifest: Path, monkeypatch
    ) -> None:
        def cancelled(self, candidates):
            return TimedOut(SolverTimeoutError("Mod solving was cancelled"))

        monkeypatch.setattr(ModSolver, "solve", cancelled)
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--timeout", "5"])
        assert result.exit_code == 3
        assert "cancelled" in result.output

    def test_timeout_json(
        self, runner: CliRunner, solvable_manifest: Path, monkeypatch
    ) -> None:
        def cancelled(self, candidates):
            return TimedOut(SolverTimeoutError("Mod solving was cancelled"))

        monkeypatch.setattr(ModSolver, "solve", cancelled)
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--format", "json"])
        assert result.exit_code == 3
        assert json.loads(result.stdout) == {
            "status": "timeout",
            "message": "Mod solving was cancelled",
        }

    def test_generous_timeout_does_not_interfere(
        self, runner: CliRunner, solvable_manifest: Path
    ) -> None:
        result = runner.invoke(cli, ["resolve", str(solvable_manifest), "--timeout", "60"])
        assert result.exit_code == 0
