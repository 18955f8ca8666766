"""Shared fixtures for CLI tests.

Provides a Click runner and a helper that writes YAML candidate manifests
into a temporary directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[[str], Path]:
    """Return a function writing YAML text to ``mods.yaml`` and returning its path."""

    def write(text: str, name: str = "mods.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return write


@pytest.fixture
def solvable_manifest(write_manifest: Callable[[str], Path]) -> Path:
    """A mandatory mod whose dependency has an old and a new version available."""
    return write_manifest(
        "candidates:\n"
        "  - id: core\n"
        "    version: 1.0.0\n"
        "    name: Core\n"
        "    mandatory: true\n"
        "    depends:\n"
        "      - {id: lib, versions: '>=1.0.0'}\n"
        "  - id: lib\n"
        "    version: 1.0.0\n"
        "  - id: lib\n"
        "    version: 1.2.0\n"
        "  - id: extra\n"
        "    version: 0.1.0\n"
        "    load_type: if_required\n"
    )


@pytest.fixture
def missing_dependency_manifest(write_manifest: Callable[[str], Path]) -> Path:
    """A mandatory mod that depends on a mod nobody provides."""
    return write_manifest(
        "- id: core\n"
        "  version: 1.0.0\n"
        "  mandatory: true\n"
        "  depends: [lib]\n"
    )


@pytest.fixture
def two_errors_manifest(write_manifest: Callable[[str], Path]) -> Path:
    """Two mandatory mods, each missing a different dependency."""
    return write_manifest(
        "- id: one\n"
        "  version: 1.0.0\n"
        "  mandatory: true\n"
        "  depends: [gone-a]\n"
        "- id: two\n"
        "  version: 1.0.0\n"
        "  mandatory: true\n"
        "  depends: [gone-b]\n"
    )
