"""Solver configuration.

Settings are plain dataclass fields with sensible defaults. ``from_env``
overlays values from ``MODRESOLVER_*`` environment variables so that the
upstream loader (or a user debugging a broken mod folder) can tweak the
solver without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from modresolver.exceptions import ConfigError

ENV_SAT_SOLVER = "MODRESOLVER_SAT_SOLVER"
ENV_OPTIMISE_TIMEOUT = "MODRESOLVER_OPTIMISE_TIMEOUT"
ENV_DEBUG_SOLVING = "MODRESOLVER_DEBUG_SOLVING"
ENV_MAX_ERRORS = "MODRESOLVER_MAX_ERRORS"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class SolverConfig:
    """Tunable knobs for the constraint engine and the resolution driver.

    Attributes:
        sat_solver: python-sat solver name used by both backends. Must
            support ``solve_limited`` interrupts (Glucose and MiniSat
            family solvers do).
        optimise_timeout: Seconds the weighted optimisation may run before
            it is cancelled and the first valid solution is used. None (or a
            non-positive environment value) disables the timer.
        debug_solving: Emit a DEBUG log line for every option, rule and
            solve step.
        max_errors: Upper bound on errors collected by error decomposition.
            None means "until no more progress can be made".
    """

    sat_solver: str = "g3"
    optimise_timeout: float | None = 5.0
    debug_solving: bool = False
    max_errors: int | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> SolverConfig:
        """Build a config from ``MODRESOLVER_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            A ``SolverConfig`` with every unset variable left at its default.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        timeout = defaults.optimise_timeout
        raw_timeout = env.get(ENV_OPTIMISE_TIMEOUT, "").strip()
        if raw_timeout:
            timeout = _parse_number(ENV_OPTIMISE_TIMEOUT, raw_timeout, float)
            if timeout <= 0:
                timeout = None

        max_errors = defaults.max_errors
        raw_max = env.get(ENV_MAX_ERRORS, "").strip()
        if raw_max:
            max_errors = _parse_number(ENV_MAX_ERRORS, raw_max, int)

        return cls(
            sat_solver=env.get(ENV_SAT_SOLVER, "").strip() or defaults.sat_solver,
            optimise_timeout=timeout,
            debug_solving=env.get(ENV_DEBUG_SOLVING, "").strip().lower() in _TRUTHY,
            max_errors=max_errors,
        )


def _parse_number(name: str, raw: str, kind: type) -> float | int:
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
