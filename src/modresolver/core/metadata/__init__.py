"""Typed candidate metadata: versions, constraints, candidates and dependencies.

All public names are re-exported here so callers can write
``from modresolver.core.metadata import ModCandidate``.
"""

from modresolver.core.metadata.models import (
    DependencyAll,
    DependencyAny,
    DependencyOnly,
    LoadType,
    ModCandidate,
    ModDependency,
    ModProvided,
)
from modresolver.core.metadata.versions import Version, VersionConstraint

__all__ = [
    "DependencyAll",
    "DependencyAny",
    "DependencyOnly",
    "LoadType",
    "ModCandidate",
    "ModDependency",
    "ModProvided",
    "Version",
    "VersionConstraint",
]
