"""Command-line interface for factsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Configure the remote log and local store
- transact: Author a local transaction
- head: Show local and remote heads
- sync: Synchronize with the remote log
- server: Log service commands
"""

from __future__ import annotations

import click

from factsync.client.cli.server import server
from factsync.client.cli.store import head, init, transact
from factsync.client.cli.sync import sync


@click.group()
@click.version_option(package_name="factsync")
def cli() -> None:
    """factsync - Transaction log synchronization for an embedded fact store."""


# Store commands
cli.add_command(init)
cli.add_command(transact)
cli.add_command(head)

# Sync commands
cli.add_command(sync)

# Server commands
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
