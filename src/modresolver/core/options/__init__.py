"""Option Model: boolean decision variables for the constraint engine.

All public names are re-exported here so callers can write
``from modresolver.core.options import MainModLoadOption``.
"""

from modresolver.core.options.models import (
    AliasedLoadOption,
    DepOption,
    LoadOption,
    MainModLoadOption,
    ModLoadOption,
    NegatedLoadOption,
    ProvidedModOption,
    is_negated,
    negate,
    resolve_alias,
)

__all__ = [
    "AliasedLoadOption",
    "DepOption",
    "LoadOption",
    "MainModLoadOption",
    "ModLoadOption",
    "NegatedLoadOption",
    "ProvidedModOption",
    "is_negated",
    "negate",
    "resolve_alias",
]
