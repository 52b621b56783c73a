"""Sync command for the factsync CLI.

Commands:
- sync: Run one pull/push pass against the remote log
"""

from __future__ import annotations

import logging

import click

from factsync.client.cli.config import get_store_path, require_remote_config
from factsync.core.errors import FactSyncError


@click.command()
@click.option(
    "--retries",
    "-r",
    type=int,
    default=3,
    show_default=True,
    help="Re-run the whole pass this many times on network errors.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every request.")
def sync(retries: int, verbose: bool) -> None:
    """Synchronize the local store with the remote log.

    Pulls and applies remote transactions, then pushes local ones.
    """
    from factsync.client.api import RemoteLogClient
    from factsync.client.state import LocalStore
    from factsync.client.sync import Synchronizer, retry_with_backoff
    from factsync.server.app import setup_logging

    setup_logging(level=logging.DEBUG if verbose else logging.INFO)

    remote_config = require_remote_config()
    store = LocalStore(get_store_path())
    try:
        with RemoteLogClient(remote_config) as client:
            synchronizer = Synchronizer(store, client)
            result = retry_with_backoff(synchronizer.sync, max_retries=retries)
    except FactSyncError as e:
        raise click.ClickException(f"Sync failed: {e}") from e
    finally:
        store.close()

    if result.is_noop:
        click.echo("Already up to date.")
    else:
        click.echo(f"Pulled {len(result.pulled)} transaction(s), pushed {len(result.pushed)}.")
    click.echo(f"Head: {result.local_head}")
