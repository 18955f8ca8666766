"""Boolean decision variables ("load options") for the constraint engine.

A ``LoadOption`` is either completely loaded or not loaded. Options are
compared by *identity*: two options are never equal unless they are the same
object, which is why ``__eq__`` and ``__hash__`` are left untouched.

Variants:

- **Root options** -- ``MainModLoadOption`` (a concrete candidate) and
  ``DepOption`` (a synthetic switch for one branch of a dependency
  expression).
- **Negated options** -- ``NegatedLoadOption`` wraps a non-negated option.
  ``negate`` collapses double negation and caches the wrapper, so negating
  the same option twice yields the identical object.
- **Alias options** -- ``ProvidedModOption`` declares a *target* option it
  must always agree with. ``resolve_alias`` follows those links to the root
  before any clause is emitted, so aliases never become separate SAT
  variables.

When an option is registered with a ``RuleContext`` it receives a dense
``index`` (its arena slot), which the engine uses instead of object identity
to key per-option state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modresolver.core.metadata import (
        DependencyOnly,
        ModCandidate,
        ModDependency,
        ModProvided,
        Version,
    )


class LoadOption:
    """Base class for anything that can either be loaded or not loaded."""

    def __init__(self) -> None:
        self.index: int | None = None
        self._negation: NegatedLoadOption | None = None

    def describe(self) -> str:
        """Describe this option for error reports."""
        return repr(self)


class NegatedLoadOption(LoadOption):
    """The "not loaded" condition of another option.

    Only created through ``negate``; never wraps another negation.
    """

    def __init__(self, not_: LoadOption) -> None:
        if isinstance(not_, NegatedLoadOption):
            raise TypeError("Found double-negated negated load option!")
        super().__init__()
        self.not_ = not_

    def describe(self) -> str:
        return f"NOT {self.not_.describe()}"

    def __repr__(self) -> str:
        return f"NOT {self.not_!r}"


class AliasedLoadOption(LoadOption):
    """An option that must always carry the same value as its ``target``."""

    @property
    def target(self) -> LoadOption:
        raise NotImplementedError


def negate(option: LoadOption) -> LoadOption:
    """Return the negation of *option*.

    ``negate(negate(o)) is o`` always holds, and repeated calls on the same
    option return the same ``NegatedLoadOption`` instance.
    """
    if isinstance(option, NegatedLoadOption):
        return option.not_
    negation = option._negation
    if negation is None:
        negation = option._negation = NegatedLoadOption(option)
    return negation


def is_negated(option: LoadOption) -> bool:
    return isinstance(option, NegatedLoadOption)


def resolve_alias(option: LoadOption) -> LoadOption:
    """Follow alias links from *option* to its root option.

    Negations are preserved: the alias inside a negation is resolved and the
    result negated again.
    """
    if isinstance(option, NegatedLoadOption):
        root = resolve_alias(option.not_)
        return option if root is option.not_ else negate(root)
    seen: set[int] = set()
    while isinstance(option, AliasedLoadOption):
        if id(option) in seen:
            raise ValueError(f"Alias cycle detected at {option!r}")
        seen.add(id(option))
        target = option.target
        if target is None:
            break
        option = target
    return option


# ---------------------------------------------------------------------------
# Mod options
# ---------------------------------------------------------------------------


class ModLoadOption(LoadOption):
    """An option which, when true, loads a mod under ``mod_id``."""

    def __init__(self, candidate: ModCandidate) -> None:
        super().__init__()
        self.candidate = candidate

    @property
    def mod_id(self) -> str:
        return self.candidate.mod_id

    @property
    def version(self) -> Version:
        return self.candidate.version

    @property
    def group(self) -> str:
        return self.candidate.group

    def short_string(self) -> str:
        raise NotImplementedError

    def full_string(self) -> str:
        text = self.short_string()
        if self.candidate.source:
            text += f" from {self.candidate.source}"
        return text

    def describe(self) -> str:
        return self.full_string()

    def __repr__(self) -> str:
        return self.short_string()


class MainModLoadOption(ModLoadOption):
    """The root option of a concrete candidate.

    Attributes:
        rank: Position of the candidate in its version-sorted pool, or -1 when
            it is the only (or the mandated) candidate for its id.
    """

    def __init__(self, candidate: ModCandidate, rank: int = -1) -> None:
        super().__init__(candidate)
        self.rank = rank

    def short_string(self) -> str:
        text = f"{self.candidate.display_name()} v{self.version.friendly()}"
        if self.candidate.mandatory:
            text = "mandatory " + text
        return text


class ProvidedModOption(ModLoadOption, AliasedLoadOption):
    """A mod id provided from the jar of a different mod.

    Aliases its provider's ``MainModLoadOption``: the provided id is loaded
    exactly when the provider is.
    """

    def __init__(self, provider: MainModLoadOption, provided: ModProvided) -> None:
        super().__init__(provider.candidate)
        self.provider = provider
        self.provided = provided

    @property
    def mod_id(self) -> str:
        return self.provided.mod_id

    @property
    def version(self) -> Version:
        if self.provided.version is not None:
            return self.provided.version
        return self.provider.version

    @property
    def group(self) -> str:
        return self.provided.group or self.provider.group

    @property
    def target(self) -> LoadOption:
        return self.provider

    def short_string(self) -> str:
        return (
            f"provided mod '{self.mod_id}' version '{self.version.friendly()}'"
            f" from {self.provider.short_string()}"
        )


class DepOption(LoadOption):
    """A synthetic option standing for one branch of a dependency expression.

    Created for each alternative of an "any" dependency, each member of an
    "all" breakage and each ``unless`` clause. When true, the branch's own
    rule must hold.
    """

    def __init__(self, dependency: ModDependency | DependencyOnly) -> None:
        super().__init__()
        self.dependency = dependency

    def __repr__(self) -> str:
        return f"dependency branch {self.dependency}"
