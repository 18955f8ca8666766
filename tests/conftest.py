"""Shared fixtures for modresolver tests."""

from __future__ import annotations

import pytest

from modresolver.config import SolverConfig
from modresolver.core.engine import RuleContext
from modresolver.core.solver import ModSolver


@pytest.fixture
def config() -> SolverConfig:
    """Default solver settings with step tracing enabled."""
    return SolverConfig(debug_solving=True)


@pytest.fixture
def ctx(config: SolverConfig) -> RuleContext:
    """A fresh rule context in the DEFINE step."""
    return RuleContext(config)


@pytest.fixture
def solver(config: SolverConfig) -> ModSolver:
    """A resolution driver with default settings."""
    return ModSolver(config)
