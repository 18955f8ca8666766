"""Candidate metadata consumed by the resolver.

These are the typed inputs produced by upstream discovery: one
``ModCandidate`` per concrete mod version found, each carrying its declared
dependencies, breakages and provided aliases. They are plain data holders
with no solver logic, so discovery code can build them without importing
the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from modresolver.core.metadata.versions import Version, VersionConstraint


class LoadType(Enum):
    """How eagerly a non-mandatory candidate should be loaded.

    ALWAYS       -- exactly one candidate of the id must be loaded.
    IF_POSSIBLE  -- load whenever nothing prevents it (negative weight).
    IF_REQUIRED  -- load only when another mod needs it (positive weight).
    """

    ALWAYS = "always"
    IF_POSSIBLE = "if_possible"
    IF_REQUIRED = "if_required"


# ---------------------------------------------------------------------------
# Provided aliases
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModProvided:
    """An additional mod id that a candidate provides.

    When the providing candidate is loaded, ``mod_id`` counts as loaded too,
    at ``version`` (or the provider's own version when None).

    Attributes:
        mod_id: The provided mod id.
        version: The provided version, or None to reuse the provider's.
        group: Optional maven-style group of the provided id.
    """

    mod_id: str
    version: Version | None = None
    group: str = ""


# ---------------------------------------------------------------------------
# Dependency expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyOnly:
    """A dependency on (or breakage with) a single mod id.

    Attributes:
        mod_id: Target mod id.
        versions: Versions of the target the declaration applies to.
        group: Required maven group of the target, "" for any.
        optional: For dependencies: the target need not be present, but if
            it is, it must match ``versions``. Meaningless for breakages.
        unless: A nested dependency which, when satisfied, suppresses this
            declaration entirely.
        reason: Free-form explanation supplied by the mod author.
    """

    mod_id: str
    versions: VersionConstraint = field(default_factory=VersionConstraint.any)
    group: str = ""
    optional: bool = False
    unless: ModDependency | None = None
    reason: str = ""

    def matches(self, version: Version) -> bool:
        return self.versions.satisfies(version)

    def matches_group(self, group: str) -> bool:
        return not self.group or self.group == group

    def __str__(self) -> str:
        text = self.mod_id if not self.group else f"{self.group}:{self.mod_id}"
        if not self.versions.is_any:
            text += f" {self.versions.raw}"
        if self.unless is not None:
            text += f" unless {self.unless}"
        return text


@dataclass(frozen=True)
class DependencyAny:
    """A dependency satisfied by any one of several alternatives."""

    options: tuple[DependencyOnly, ...]

    def __str__(self) -> str:
        return "any of [" + ", ".join(str(o) for o in self.options) + "]"


@dataclass(frozen=True)
class DependencyAll:
    """A breakage that only applies when all of its members are present."""

    options: tuple[DependencyOnly, ...]

    def __str__(self) -> str:
        return "all of [" + ", ".join(str(o) for o in self.options) + "]"


ModDependency = Union[DependencyOnly, DependencyAny, DependencyAll]


# ---------------------------------------------------------------------------
# ModCandidate: one concrete version competing for a mod id
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class ModCandidate:
    """One concrete mod version competing for its mod id.

    Candidates are compared by identity: two jars with identical metadata
    are still two different candidates.

    Attributes:
        mod_id: The mod id this candidate loads as.
        version: Parsed version of the candidate.
        key: Stable identifier reported back to materialisation. Defaults
            to ``"<mod_id>@<version>"``.
        name: Human readable mod name, defaults to the id.
        group: Maven-style group, "" when unknown.
        mandatory: True when the user placed this mod directly (it must load).
        load_type: Preference for non-mandatory candidates.
        weight: Adjustment added to the weight the resolver derives from
            ``load_type`` and the candidate's version rank. None adds nothing.
        depends: Declared dependencies.
        breaks: Declared breakages.
        provides: Provided aliases.
        source: Where the candidate was found (for diagnostics only).
    """

    mod_id: str
    version: Version
    key: str = ""
    name: str = ""
    group: str = ""
    mandatory: bool = False
    load_type: LoadType = LoadType.IF_POSSIBLE
    weight: int | None = None
    depends: list[ModDependency] = field(default_factory=list)
    breaks: list[ModDependency] = field(default_factory=list)
    provides: list[ModProvided] = field(default_factory=list)
    source: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.version, Version):
            self.version = Version.parse(self.version)
        if not self.key:
            self.key = f"{self.mod_id}@{self.version.raw}"
        if not self.name:
            self.name = self.mod_id

    def display_name(self) -> str:
        """Return ``'Name' (id)`` as used in error messages."""
        return f"'{self.name}' ({self.mod_id})"

    def __repr__(self) -> str:
        flag = ", mandatory" if self.mandatory else ""
        return f"ModCandidate({self.key!r}{flag})"
