"""
SciDigest CLI: the research library from the command line.

Command groups live in their own modules and are attached to the main
Click group through register functions.

Entry point: scidigest.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="scidigest")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def main(verbose: bool):
    """SciDigest, your personal research library.

    Collect, shelve and annotate papers. Sync them, encrypted.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .library import register_library_commands
from .diagnostics import register_diagnostics_commands
from .backup import register_backup_commands
from .sync_cmd import register_sync_commands

register_library_commands(main)
register_diagnostics_commands(main)
register_backup_commands(main)
register_sync_commands(main)
