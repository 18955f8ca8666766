"""modresolver CLI — Pick a valid, preferred set of mods to load.

Entry point for the ``modresolver`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    resolve — Resolve the candidates listed in a YAML manifest.

Usage::

    modresolver resolve mods.yaml
    modresolver resolve mods.yaml --format json
    modresolver resolve mods.yaml --timeout 30 --max-errors 5
"""

from __future__ import annotations

import click

from modresolver import __version__
from modresolver.cli.resolve import resolve_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """modresolver: weighted SAT based mod dependency resolution.

    Selects exactly one version of every mandatory mod, satisfies every
    dependency and breakage, and explains every independent conflict when
    no valid selection exists.
    """


cli.add_command(resolve_command)
