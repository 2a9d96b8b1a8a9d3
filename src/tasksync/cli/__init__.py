"""
tasksync CLI — daily tasks from the command line.

Each command group lives in its own module and registers itself on
the main Click group.

Entry point: tasksync.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="tasksync")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
def main(verbose: bool):
    """tasksync — daily tasks, synced by passphrase."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups from modular files
# ---------------------------------------------------------------------------

from .task_cmd import register_task_commands
from .sync_cmd import register_sync_commands
from .profile_cmd import register_profile_commands

register_task_commands(main)
register_sync_commands(main)
register_profile_commands(main)
