"""YAML candidate manifests for the ``modresolver`` CLI.

A manifest lists every candidate discovery found, either as a top-level
list or under a ``candidates`` key::

    candidates:
      - id: core
        version: 1.0.0
        mandatory: true
        depends:
          - lib                          # any version of "lib"
          - {id: api, versions: ">=2.0", optional: true}
          - any: [fabric-api, qsl]
        breaks:
          - {id: oldmod, versions: "<3", unless: compat}
        provides:
          - core-api
      - id: lib
        version: 2.1.0
        load_type: if_required

Dependency and breakage entries are either a bare mod id or a mapping with
``id``, ``versions``, ``group``, ``optional``, ``unless`` and ``reason``;
``any:`` / ``all:`` wrap a list of such entries.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from modresolver.core.metadata import (
    DependencyAll,
    DependencyAny,
    DependencyOnly,
    LoadType,
    ModCandidate,
    ModDependency,
    ModProvided,
    Version,
    VersionConstraint,
)
from modresolver.exceptions import ManifestError

_LOAD_TYPES = {load_type.value: load_type for load_type in LoadType}


def load_manifest(path: Path) -> list[ModCandidate]:
    """Read and parse the manifest at *path*.

    Raises:
        ManifestError: If the file cannot be read, is not valid YAML, or
            does not describe a list of candidates.
    """
    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ManifestError(f"Malformed YAML in {path}: {exc}") from exc
    return parse_manifest(data, source=str(path))


def parse_manifest(data: Any, source: str = "") -> list[ModCandidate]:
    """Build candidates from already-loaded manifest data."""
    if isinstance(data, dict):
        data = data.get("candidates")
    if not isinstance(data, list):
        raise ManifestError("A manifest must be a list of candidates")
    return [_parse_candidate(entry, number, source) for number, entry in enumerate(data, 1)]


def _parse_candidate(entry: Any, number: int, source: str) -> ModCandidate:
    where = f"candidate #{number}"
    if not isinstance(entry, dict):
        raise ManifestError(f"{where} must be a mapping")
    mod_id = _require_str(entry, "id", where)
    where = f"candidate {mod_id!r}"
    if "version" not in entry:
        raise ManifestError(f"{where} is missing 'version'")

    load_type = entry.get("load_type", LoadType.IF_POSSIBLE.value)
    if load_type not in _LOAD_TYPES:
        raise ManifestError(
            f"{where} has unknown load_type {load_type!r}"
            f" (expected one of {', '.join(sorted(_LOAD_TYPES))})"
        )

    weight = entry.get("weight")
    if weight is not None and (isinstance(weight, bool) or not isinstance(weight, int)):
        raise ManifestError(f"{where} has a non-integer weight {weight!r}")

    return ModCandidate(
        mod_id=mod_id,
        version=Version.parse(str(entry["version"])),
        key=str(entry.get("key", "")),
        name=str(entry.get("name", "")),
        group=str(entry.get("group", "")),
        mandatory=bool(entry.get("mandatory", False)),
        load_type=_LOAD_TYPES[load_type],
        weight=weight,
        depends=[_parse_dependency(d, where) for d in _as_list(entry, "depends", where)],
        breaks=[_parse_dependency(d, where) for d in _as_list(entry, "breaks", where)],
        provides=[_parse_provided(p, where) for p in _as_list(entry, "provides", where)],
        source=str(entry.get("source", source)),
    )


def _parse_dependency(entry: Any, where: str) -> ModDependency:
    if isinstance(entry, str):
        return DependencyOnly(mod_id=entry)
    if not isinstance(entry, dict):
        raise ManifestError(f"{where} has a malformed dependency entry {entry!r}")
    if "any" in entry:
        return DependencyAny(options=_parse_members(entry["any"], "any", where))
    if "all" in entry:
        return DependencyAll(options=_parse_members(entry["all"], "all", where))

    mod_id = _require_str(entry, "id", where)
    versions = VersionConstraint(str(entry.get("versions", "*")))
    try:
        versions.is_any
    except ValueError as exc:
        raise ManifestError(f"{where} has an invalid version range for {mod_id!r}: {exc}") from exc

    unless = entry.get("unless")
    return DependencyOnly(
        mod_id=mod_id,
        versions=versions,
        group=str(entry.get("group", "")),
        optional=bool(entry.get("optional", False)),
        unless=_parse_dependency(unless, where) if unless is not None else None,
        reason=str(entry.get("reason", "")),
    )


def _parse_members(entries: Any, key: str, where: str) -> tuple[DependencyOnly, ...]:
    if not isinstance(entries, list):
        raise ManifestError(f"{where}: '{key}' must be a list")
    members = []
    for entry in entries:
        member = _parse_dependency(entry, where)
        if not isinstance(member, DependencyOnly):
            raise ManifestError(f"{where}: '{key}' entries cannot be nested")
        members.append(member)
    return tuple(members)


def _parse_provided(entry: Any, where: str) -> ModProvided:
    if isinstance(entry, str):
        return ModProvided(mod_id=entry)
    if not isinstance(entry, dict):
        raise ManifestError(f"{where} has a malformed provides entry {entry!r}")
    version = entry.get("version")
    return ModProvided(
        mod_id=_require_str(entry, "id", where),
        version=Version.parse(str(version)) if version is not None else None,
        group=str(entry.get("group", "")),
    )


def _as_list(entry: dict, key: str, where: str) -> list:
    value = entry.get(key) or []
    if not isinstance(value, list):
        raise ManifestError(f"{where}: '{key}' must be a list")
    return value


def _require_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ManifestError(f"{where} is missing '{key}'")
    return value
