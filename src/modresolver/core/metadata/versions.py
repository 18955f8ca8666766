"""Versions and version constraints for mod candidates.

Mods publish either *semantic* versions (``1.2.3``, ``0.4.1-beta.2+mc1.19``,
any number of numeric components) or arbitrary *generic* strings. Semantic
versions order numerically, with a pre-release ordered before the release it
precedes; generic versions order by their raw text. Every version is
comparable with every other, which the resolver relies on to pre-sort
candidate pools into a stable, total order.

Constraint syntax follows the npm/pip conventions:

- Exact match ``==1.0.0`` (a bare ``1.0.0`` means the same)
- Not-equal ``!=1.0.0``
- Ranges ``>=``, ``<=``, ``>``, ``<``
- Caret ``^1.2.0`` (same major) and tilde ``~1.2.0`` (same major.minor)
- Wildcard ``*``
- Compound, comma-separated, all must hold: ``>=1.0.0,<2.0.0``
- Alternatives separated by ``||``, any may hold: ``1.18.x || >=1.19``

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering

from modresolver.exceptions import DefinitionError

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^v?(?P<numbers>(?:0|[1-9]\d*)(?:\.(?:0|[1-9]\d*))*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)


def _pre_release_key(pre: str) -> tuple[tuple[int, int | str], ...]:
    """Order pre-release identifiers per SemVer 2.0.0 section 11.

    Numeric identifiers sort before alphanumeric ones and compare
    numerically.
    """
    parts: list[tuple[int, int | str]] = []
    for ident in pre.split("."):
        if ident.isdigit():
            parts.append((0, int(ident)))
        else:
            parts.append((1, ident))
    return tuple(parts)


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A parsed mod version.

    Attributes:
        raw: The version string as authored.
        numbers: Numeric components for semantic versions, empty for
            generic ones.
        pre: Pre-release tag (semantic versions only), or "".
        build: Build metadata (ignored for ordering), or "".
    """

    raw: str
    numbers: tuple[int, ...] = ()
    pre: str = ""
    build: str = ""

    @classmethod
    def parse(cls, raw: str) -> Version:
        """Parse *raw*, falling back to a generic version when it is not semantic."""
        text = str(raw).strip()
        m = _SEMVER_RE.match(text)
        if not m:
            return cls(raw=text)
        numbers = tuple(int(n) for n in m.group("numbers").split("."))
        return cls(
            raw=text,
            numbers=numbers,
            pre=m.group("pre") or "",
            build=m.group("build") or "",
        )

    @property
    def is_semantic(self) -> bool:
        return bool(self.numbers)

    def friendly(self) -> str:
        """Return the version as it should be shown to a user."""
        return self.raw

    def component(self, index: int) -> int:
        """Return numeric component *index*, padding missing ones with 0."""
        return self.numbers[index] if index < len(self.numbers) else 0

    def _compare_key(self, width: int) -> tuple:
        padded = self.numbers + (0,) * (width - len(self.numbers))
        pre_key = ((1,),) if not self.pre else ((0,), _pre_release_key(self.pre))
        return (padded, pre_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._cmp(other) == 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._cmp(other) < 0

    def __hash__(self) -> int:
        if not self.is_semantic:
            return hash(self.raw)
        numbers = list(self.numbers)
        while len(numbers) > 1 and numbers[-1] == 0:
            numbers.pop()
        return hash((tuple(numbers), self.pre))

    def _cmp(self, other: Version) -> int:
        if self.is_semantic and other.is_semantic:
            width = max(len(self.numbers), len(other.numbers))
            a = self._compare_key(width)
            b = other._compare_key(width)
        elif self.is_semantic != other.is_semantic:
            # Generic versions sort below every semantic version.
            return 1 if self.is_semantic else -1
        else:
            a, b = self.raw, other.raw
        return (a > b) - (a < b)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"Version({self.raw!r})"


# ---------------------------------------------------------------------------
# VersionConstraint: Declarative version requirement
# ---------------------------------------------------------------------------

# A single constraint atom like ">=1.2.3", "^0.4", "1.18.x" or "==1.0.0-beta".
_CONSTRAINT_ATOM_RE = re.compile(
    r"^\s*(?P<op>==|!=|>=|<=|>|<|\^|~|=)?\s*(?P<ver>[0-9A-Za-z\-.+*]+)\s*$"
)

_WILDCARD_PARTS = frozenset({"x", "X", "*"})


@dataclass(frozen=True)
class VersionConstraint:
    """A version constraint specification, analogous to npm/pip constraint syntax.

    The constraint is kept as its raw text and parsed lazily; an invalid
    atom raises ``DefinitionError`` the first time it is evaluated.

    Attributes:
        raw: The raw constraint string as authored (e.g., ">=1.0.0,<2.0.0").
    """

    raw: str = "*"
    _alternatives: tuple[tuple[tuple[str, Version], ...], ...] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def any(cls) -> VersionConstraint:
        return cls("*")

    @property
    def is_any(self) -> bool:
        return any(not atoms for atoms in self._parsed())

    def validate(self) -> None:
        """Parse the constraint now.

        Raises:
            DefinitionError: If the constraint text is malformed.
        """
        self._parsed()

    def satisfies(self, version: Version | str) -> bool:
        """Check whether a version satisfies this constraint.

        Alternatives (``||``) are OR-ed, comma-separated atoms inside an
        alternative are AND-ed.

        Args:
            version: A ``Version`` or a raw version string.

        Returns:
            True if at least one alternative is fully satisfied.

        Raises:
            DefinitionError: If the constraint text is malformed.
        """
        if not isinstance(version, Version):
            version = Version.parse(version)
        for atoms in self._parsed():
            if all(_atom_satisfies(op, target, version) for op, target in atoms):
                return True
        return False

    def describe(self) -> str:
        """Render the constraint as human-readable text.

        Examples: "any version", "version 1.2.0 or later",
        "version 1.x", "any version before 2.0.0".
        """
        rendered = []
        for atoms in self._parsed():
            if not atoms:
                return "any version"
            rendered.append(" and ".join(_describe_atom(op, v) for op, v in atoms))
        return " or ".join(rendered)

    def _parsed(self) -> tuple[tuple[tuple[str, Version], ...], ...]:
        if self._alternatives is None:
            object.__setattr__(self, "_alternatives", _parse_constraint(self.raw))
        return self._alternatives  # type: ignore[return-value]

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r})"


def _parse_constraint(raw: str) -> tuple[tuple[tuple[str, Version], ...], ...]:
    alternatives = []
    for alternative in raw.split("||"):
        atoms = []
        for atom in alternative.split(","):
            atom = atom.strip()
            if not atom or atom == "*":
                continue
            atoms.append(_parse_atom(atom))
        alternatives.append(tuple(atoms))
    if not alternatives:
        alternatives.append(())
    return tuple(alternatives)


def _parse_atom(atom: str) -> tuple[str, Version]:
    m = _CONSTRAINT_ATOM_RE.match(atom)
    if not m:
        raise DefinitionError(f"Invalid constraint atom: {atom!r}")
    op = m.group("op") or "=="
    if op == "=":
        op = "=="
    text = m.group("ver")

    # "1.18.x" style wildcards: same prefix of components.
    parts = text.split(".")
    if op == "==" and len(parts) > 1 and parts[-1] in _WILDCARD_PARTS:
        while parts and parts[-1] in _WILDCARD_PARTS:
            parts.pop()
        prefix = ".".join(parts)
        if any(p in _WILDCARD_PARTS for p in parts):
            raise DefinitionError(f"Invalid constraint atom: {atom!r}")
        return ("prefix", Version.parse(prefix))
    if any(p in _WILDCARD_PARTS for p in parts):
        raise DefinitionError(f"Invalid constraint atom: {atom!r}")
    return (op, Version.parse(text))


def _atom_satisfies(op: str, target: Version, version: Version) -> bool:
    """Evaluate a single constraint atom against a parsed version."""
    if op == "==":
        return version == target
    elif op == "!=":
        return version != target
    elif op == ">=":
        return version >= target
    elif op == "<=":
        return version <= target
    elif op == ">":
        return version > target
    elif op == "<":
        return version < target
    elif op == "prefix":
        if not (version.is_semantic and target.is_semantic):
            return version.raw.startswith(target.raw)
        return version.numbers[: len(target.numbers)] == target.numbers
    elif op == "^":
        if not (version.is_semantic and target.is_semantic):
            return version >= target
        # Caret: compatible with (same major, >= target). If major is 0,
        # same major.minor and >= target.
        if target.component(0) == 0:
            return (
                version.component(0) == 0
                and version.component(1) == target.component(1)
                and version >= target
            )
        return version.component(0) == target.component(0) and version >= target
    elif op == "~":
        if not (version.is_semantic and target.is_semantic):
            return version >= target
        return (
            version.component(0) == target.component(0)
            and version.component(1) == target.component(1)
            and version >= target
        )
    else:  # pragma: no cover
        raise ValueError(f"Unknown operator: {op!r}")


def _describe_atom(op: str, target: Version) -> str:
    version = target.friendly()
    if op == "==":
        return f"version {version}"
    elif op == "!=":
        return f"any version except {version}"
    elif op == ">=":
        return f"version {version} or later"
    elif op == "<=":
        return f"version {version} or earlier"
    elif op == ">":
        return f"any version after {version}"
    elif op == "<":
        return f"any version before {version}"
    elif op == "prefix":
        return f"version {version}.x"
    elif op == "^":
        keep = 2 if target.component(0) == 0 else 1
        return "version " + _mask_components(target, keep)
    elif op == "~":
        return "version " + _mask_components(target, 2)
    return "unknown version"  # pragma: no cover


def _mask_components(target: Version, keep: int) -> str:
    """Render ``1.2.3`` as ``1.x`` (keep=1) or ``1.2.x`` (keep=2)."""
    if not target.is_semantic:
        return target.friendly()
    width = max(len(target.numbers), keep + 1)
    parts = [str(target.component(i)) for i in range(keep)]
    parts.extend("x" for _ in range(width - keep))
    return ".".join(parts)
